"""Status command for site-sync CLI."""

import asyncio
from pathlib import Path
from typing import Dict, Optional, Set

import typer
from loguru import logger
from rich.console import Console
from rich.panel import Panel
from rich.tree import Tree

from site_sync.cli.app import app
from site_sync.cli.commands.command_utils import build_config, get_sync_service
from site_sync.exceptions import SiteSyncError
from site_sync.sync.utils import SyncPlan

# Create rich console
console = Console()


def add_files_to_tree(
    tree: Tree, paths: Set[str], style: str, checksums: Optional[Dict[str, str]] = None
):
    """Add files to tree, grouped by top-level directory."""
    by_dir: Dict[str, list] = {}
    for path in sorted(paths):
        parts = path.split("/", 1)
        dir_name = parts[0] if len(parts) > 1 else ""
        file_name = parts[1] if len(parts) > 1 else parts[0]
        by_dir.setdefault(dir_name, []).append((file_name, path))

    for dir_name, files in sorted(by_dir.items()):
        if dir_name:
            branch = tree.add(f"[bold]{dir_name}/[/bold]")
        else:
            branch = tree

        for file_name, full_path in sorted(files):
            if checksums and full_path in checksums:
                checksum_short = checksums[full_path][:8]
                branch.add(f"[{style}]{file_name}[/{style}] ({checksum_short})")
            else:
                branch.add(f"[{style}]{file_name}[/{style}]")


def display_changes(title: str, plan: SyncPlan, verbose: bool = False):
    """Display pending changes as a tree."""
    tree = Tree(title)

    if plan.total_changes == 0:
        tree.add("No changes")
        console.print(Panel(tree, expand=False))
        return

    kept = plan.removed - plan.to_delete

    if not verbose:
        # Group by top-level directory and count changes
        by_dir: Dict[str, Dict[str, int]] = {}
        for change_type, paths in [
            ("new", plan.added),
            ("modified", plan.modified),
            ("deleted", plan.to_delete),
        ]:
            for path in paths:
                dir_name = path.split("/", 1)[0] if "/" in path else "."
                by_dir.setdefault(dir_name, {"new": 0, "modified": 0, "deleted": 0})
                by_dir[dir_name][change_type] += 1

        for dir_name, counts in sorted(by_dir.items()):
            summary_parts = []
            if counts["new"]:
                summary_parts.append(f"[green]+{counts['new']} new[/green]")
            if counts["modified"]:
                summary_parts.append(f"[yellow]~{counts['modified']} modified[/yellow]")
            if counts["deleted"]:
                summary_parts.append(f"[red]-{counts['deleted']} deleted[/red]")
            tree.add(f"[bold]{dir_name}/[/bold] {' '.join(summary_parts)}")

    else:
        summary = []
        if plan.added:
            summary.append(f"[green]{len(plan.added)} new[/green]")
        if plan.modified:
            summary.append(f"[yellow]{len(plan.modified)} modified[/yellow]")
        if plan.to_delete:
            summary.append(f"[red]{len(plan.to_delete)} deleted[/red]")
        tree.add(f"Found {', '.join(summary)}")

        if plan.added:
            new_branch = tree.add("[green]New Files[/green]")
            add_files_to_tree(new_branch, plan.added, "green", plan.checksums)

        if plan.modified:
            mod_branch = tree.add("[yellow]Modified[/yellow]")
            add_files_to_tree(mod_branch, plan.modified, "yellow", plan.checksums)

        if plan.to_delete:
            del_branch = tree.add("[red]Deleted[/red]")
            add_files_to_tree(del_branch, plan.to_delete, "red")

    if kept:
        tree.add(f"[dim]{len(kept)} removed locally, kept remotely (deletion disabled)[/dim]")

    console.print(Panel(tree, expand=False))


async def run_status(source_dir: Path, verbose: bool = False, **overrides):
    """Check pending changes between the source tree and the last sync."""
    config = build_config(source_dir=source_dir, **overrides)
    sync_service = get_sync_service(config)
    plan = await sync_service.plan(config.source_dir)
    display_changes(str(config.source_dir), plan, verbose)
    return plan


@app.command()
def status(
    source: Optional[Path] = typer.Option(None, "--source", "-s", help="Source directory"),
    bucket: Optional[str] = typer.Option(None, "--bucket", "-b", help="Target bucket"),
    delete: Optional[bool] = typer.Option(
        None, "--delete/--no-delete", help="Plan deletion of removed files"
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Show detailed file information"),
):
    """Show what the next sync would upload and delete."""
    try:
        asyncio.run(run_status(source, verbose, bucket=bucket, delete_removed=delete))
    except SiteSyncError as e:
        logger.error(f"Error checking status: {e}")
        typer.echo(f"Error checking status: {e}", err=True)
        raise typer.Exit(1)
