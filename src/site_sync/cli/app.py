from typing import Optional

import typer

from site_sync.config import SyncConfig
from site_sync.utils import setup_logging


def version_callback(value: bool) -> None:
    """Show version and exit."""
    if value:  # pragma: no cover
        import site_sync

        typer.echo(f"site-sync version: {site_sync.__version__}")
        raise typer.Exit()


app = typer.Typer(name="site-sync")


@app.callback()
def app_callback(
    ctx: typer.Context,
    debug: bool = typer.Option(
        False,
        "--debug",
        help="Log debug output to the console.",
    ),
    version: Optional[bool] = typer.Option(
        None,
        "--version",
        "-V",
        help="Show version and exit.",
        callback=version_callback,
        is_eager=True,
    ),
) -> None:
    """site-sync - publish a static site directory to S3 and CloudFront."""

    if ctx.invoked_subcommand is not None:
        config = SyncConfig()
        setup_logging(
            log_file=config.log_path,
            log_level="DEBUG" if debug else config.log_level,
        )
