"""Watch service for site-sync."""

import os
from datetime import datetime
from pathlib import Path
from typing import List, Optional

from loguru import logger
from pydantic import BaseModel, Field
from rich.console import Console
from watchfiles import Change, awatch

from site_sync.config import SyncConfig
from site_sync.exceptions import SiteSyncError
from site_sync.ignore_utils import load_ignore_patterns, should_ignore
from site_sync.sync.sync_service import SyncService
from site_sync.sync.utils import SyncRun
from site_sync.utils import to_posix_key

console = Console()


class WatchEvent(BaseModel):
    timestamp: datetime
    path: str
    action: str  # uploaded, deleted, invalidated, sync
    status: str  # success, error
    checksum: Optional[str] = None
    error: Optional[str] = None


class WatchServiceState(BaseModel):
    # Service status
    running: bool = False
    start_time: datetime = Field(default_factory=datetime.now)
    pid: int = Field(default_factory=os.getpid)

    # Stats
    error_count: int = 0
    last_error: Optional[datetime] = None
    last_scan: Optional[datetime] = None

    # Object counts
    synced_files: int = 0
    invalidations: int = 0

    # Recent activity
    recent_events: List[WatchEvent] = Field(default_factory=list)

    def add_event(
        self,
        path: str,
        action: str,
        status: str,
        checksum: Optional[str] = None,
        error: Optional[str] = None,
    ) -> WatchEvent:
        event = WatchEvent(
            timestamp=datetime.now(),
            path=path,
            action=action,
            status=status,
            checksum=checksum,
            error=error,
        )
        self.recent_events.insert(0, event)
        self.recent_events = self.recent_events[:100]  # Keep last 100
        return event

    def record_error(self, error: str):
        self.error_count += 1
        self.add_event(path="", action="sync", status="error", error=error)
        self.last_error = datetime.now()


class WatchService:
    def __init__(self, sync_service: SyncService, config: SyncConfig):
        self.sync_service = sync_service
        self.config = config
        self.source_dir = config.source_dir.resolve()
        self.state = WatchServiceState()
        self.status_path = config.watch_status_path
        self.status_path.parent.mkdir(parents=True, exist_ok=True)
        self.ignore_patterns = load_ignore_patterns(self.source_dir, config.exclude_patterns)

    async def run(self):
        """Sync once, then sync again whenever the source tree changes."""
        self.state.running = True
        self.state.start_time = datetime.now()
        await self.write_status()

        try:
            await self.handle_changes(self.source_dir)
            console.print(f"\n[cyan]Watching {self.source_dir} for changes...[/cyan]")
            async for changes in awatch(
                self.source_dir,
                watch_filter=self.filter_changes,
                debounce=self.config.sync_delay,
                recursive=True,
            ):
                logger.debug(f"{len(changes)} change(s) detected")
                # just sync the whole dir
                await self.handle_changes(self.source_dir)

        except Exception as e:
            self.state.record_error(str(e))
            await self.write_status()
            raise
        finally:
            self.state.running = False
            await self.write_status()

    async def write_status(self):
        """Write current state to status file"""
        self.status_path.write_text(WatchServiceState.model_dump_json(self.state, indent=2))

    def filter_changes(self, change: Change, path: str) -> bool:
        """Only react to files that would be published."""
        try:
            rel_path = to_posix_key(Path(path).resolve(), self.source_dir)
        except ValueError:
            return False
        return not should_ignore(rel_path, self.ignore_patterns)

    async def handle_changes(self, directory: Path) -> Optional[SyncRun]:
        """Run one sync and record what it did. Sync errors are recorded, not raised."""
        logger.debug(f"handling change in directory: {directory} ...")
        try:
            run = await self.sync_service.run(directory)
        except SiteSyncError as e:
            self.state.record_error(str(e))
            console.print(f"[red]Sync failed:[/red] {e}")
            await self.write_status()
            return None

        self.state.last_scan = datetime.now()
        plan, result = run.plan, run.result
        self.state.synced_files = len(result.final_state)

        for path in sorted(plan.to_upload):
            event = self.state.add_event(
                path=path, action="uploaded", status="success", checksum=plan.checksums[path]
            )
            label = "New" if path in plan.added else "Modified"
            color = "green" if path in plan.added else "yellow"
            console.print(
                f"{event.timestamp.isoformat(timespec='minutes')} {label}:\t [{color}]{path}[/{color}] ({event.checksum[:8]})"
            )
        warned = {w.relative_path for w in result.warnings}
        for path in sorted(plan.to_delete):
            if path in warned:
                continue
            event = self.state.add_event(path=path, action="deleted", status="success")
            console.print(f"{event.timestamp.isoformat(timespec='minutes')} Deleted:\t [red]{path}[/red]")
        for warning in result.warnings:
            self.state.add_event(
                path=warning.relative_path, action="deleted", status="error", error=str(warning.cause)
            )
            console.print(f"[yellow]Warning:[/yellow] {warning}")
        if run.decision and run.decision.changed:
            self.state.invalidations += 1
            self.state.add_event(path="/*", action="invalidated", status="success")
            if run.invalidation_id:
                console.print(f"Invalidation requested: [blue]{run.invalidation_id}[/blue]")

        await self.write_status()
        return run
