"""Watch command for site-sync CLI."""

import asyncio
from pathlib import Path
from typing import Optional

import typer
from loguru import logger

from site_sync.cli.app import app
from site_sync.cli.commands.command_utils import build_config, get_sync_service
from site_sync.exceptions import SiteSyncError
from site_sync.sync.watch_service import WatchService


async def run_watch(source_dir: Optional[Path] = None, **overrides):  # pragma: no cover
    config = build_config(source_dir=source_dir, **overrides)
    sync_service = get_sync_service(config)
    watch_service = WatchService(sync_service=sync_service, config=config)
    await watch_service.run()


@app.command()
def watch(
    source: Optional[Path] = typer.Option(None, "--source", "-s", help="Source directory"),
    bucket: Optional[str] = typer.Option(None, "--bucket", "-b", help="Target bucket"),
    distribution_id: Optional[str] = typer.Option(
        None, "--distribution-id", "-d", help="CloudFront distribution to invalidate"
    ),
    delete: Optional[bool] = typer.Option(
        None, "--delete/--no-delete", help="Delete remote objects removed locally"
    ),
) -> None:  # pragma: no cover
    """Sync now, then keep syncing whenever the source directory changes."""
    try:
        asyncio.run(
            run_watch(
                source,
                bucket=bucket,
                distribution_id=distribution_id,
                delete_removed=delete,
            )
        )
    except KeyboardInterrupt:
        typer.echo("Stopped watching.")
    except SiteSyncError as e:
        logger.error(f"Watch failed: {e}")
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1)
