"""CLI commands for site-sync."""

from . import status, sync, watch

__all__ = ["status", "sync", "watch"]
