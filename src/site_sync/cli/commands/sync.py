"""Command module for site-sync sync operations."""

import asyncio
from pathlib import Path
from typing import Optional

import typer
from loguru import logger
from rich.console import Console
from rich.panel import Panel
from rich.text import Text
from rich.tree import Tree

from site_sync.cli.app import app
from site_sync.cli.commands.command_utils import build_config, get_sync_service
from site_sync.exceptions import DigestError, SiteSyncError, SyncError
from site_sync.sync.utils import SyncRun

console = Console()


def display_sync_summary(run: SyncRun):
    """Display a one-line summary of sync changes."""
    plan, result = run.plan, run.result
    if plan.total_changes == 0:
        console.print("[green]Everything up to date[/green]")
    else:
        # Format as: "Synced X files (A new, B modified, C deleted)"
        changes = []
        new_count = len(plan.added)
        mod_count = len(plan.modified)
        del_count = result.deleted

        if new_count:
            changes.append(f"[green]{new_count} new[/green]")
        if mod_count:
            changes.append(f"[yellow]{mod_count} modified[/yellow]")
        if del_count:
            changes.append(f"[red]{del_count} deleted[/red]")

        total = result.uploaded + result.deleted
        console.print(f"Synced {total} files ({', '.join(changes)})")

    display_warnings(run)
    display_invalidation(run)


def display_detailed_sync_results(run: SyncRun):
    """Display detailed sync results with trees."""
    plan = run.plan
    if plan.total_changes == 0:
        console.print("\n[green]Everything up to date[/green]")
    else:
        console.print("\n[bold]Sync Results[/bold]")
        tree = Tree("[bold]Objects[/bold]")
        if plan.added:
            created = tree.add("[green]Uploaded (new)[/green]")
            for path in sorted(plan.added):
                checksum = plan.checksums.get(path, "")
                created.add(f"[green]{path}[/green] ({checksum[:8]})")
        if plan.modified:
            modified = tree.add("[yellow]Uploaded (modified)[/yellow]")
            for path in sorted(plan.modified):
                checksum = plan.checksums.get(path, "")
                modified.add(f"[yellow]{path}[/yellow] ({checksum[:8]})")
        warned = {w.relative_path for w in run.result.warnings}
        deleted_paths = sorted(plan.to_delete - warned)
        if deleted_paths:
            deleted = tree.add("[red]Deleted[/red]")
            for path in deleted_paths:
                deleted.add(f"[red]{path}[/red]")
        console.print(tree)
        console.print(f"[dim]{run.result.unchanged} unchanged[/dim]")

    display_warnings(run)
    display_invalidation(run)


def display_warnings(run: SyncRun):
    for warning in run.result.warnings:
        console.print(f"[yellow]Warning:[/yellow] {warning}")


def display_invalidation(run: SyncRun):
    decision = run.decision
    if decision is None or not decision.changed:
        return
    if run.invalidation_id:
        console.print(
            f"Invalidation [blue]{run.invalidation_id}[/blue] requested for {', '.join(decision.paths)}"
        )
    else:
        console.print(f"Content fingerprint changed ({decision.new_aggregate[:8]})")


def display_sync_error(error: SiteSyncError):
    """Show which file failed and why."""
    relative_path = getattr(error, "relative_path", None)
    cause = getattr(error, "cause", error)
    body = [("Sync failed", "bold red")]
    if relative_path:
        body += ["\nFile: ", (relative_path, "yellow")]
    body += ["\nCause: ", (str(cause), "red")]
    if isinstance(error, (SyncError, DigestError)):
        body += [
            "\n\nObjects uploaded before the failure are recorded. Run ",
            ("site-sync sync", "bold cyan"),
            " again to resume.",
        ]
    console.print(Panel(Text.assemble(*body), expand=False))


async def run_sync(source_dir: Optional[Path] = None, verbose: bool = False, **overrides) -> SyncRun:
    """Run sync operation."""
    config = build_config(source_dir=source_dir, **overrides)
    sync_service = get_sync_service(config)

    run = await sync_service.run(config.source_dir)

    # Display results
    if verbose:
        display_detailed_sync_results(run)
    else:
        display_sync_summary(run)
    return run


@app.command()
def sync(
    source: Optional[Path] = typer.Option(None, "--source", "-s", help="Source directory"),
    bucket: Optional[str] = typer.Option(None, "--bucket", "-b", help="Target bucket"),
    prefix: Optional[str] = typer.Option(None, "--prefix", help="Key prefix for all objects"),
    distribution_id: Optional[str] = typer.Option(
        None, "--distribution-id", "-d", help="CloudFront distribution to invalidate"
    ),
    state_file: Optional[Path] = typer.Option(None, "--state-file", help="Local state file"),
    delete: Optional[bool] = typer.Option(
        None, "--delete/--no-delete", help="Delete remote objects removed locally"
    ),
    concurrency: Optional[int] = typer.Option(None, "--concurrency", "-c", help="Parallel uploads"),
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-v",
        help="Show detailed sync information.",
    ),
) -> None:
    """Upload changed files and invalidate the CDN when content changed."""
    try:
        asyncio.run(
            run_sync(
                source,
                verbose,
                bucket=bucket,
                prefix=prefix,
                distribution_id=distribution_id,
                state_file=state_file,
                delete_removed=delete,
                concurrency=concurrency,
            )
        )
    except SiteSyncError as e:
        logger.error(f"Sync failed: {e}")
        display_sync_error(e)
        raise typer.Exit(1)
