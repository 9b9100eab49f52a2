"""Main CLI entry point for site-sync."""  # pragma: no cover

from site_sync.cli.app import app  # pragma: no cover

# Register commands
from site_sync.cli.commands import status, sync, watch  # pragma: no cover

__all__ = ["status", "sync", "watch"]  # pragma: no cover

if __name__ == "__main__":  # pragma: no cover
    app()
