"""State persisted as a JSON file on the local filesystem."""

from pathlib import Path

import aiofiles
from loguru import logger
from pydantic import ValidationError

from site_sync.exceptions import StateError
from site_sync.models import SyncState, utcnow


class JsonFileStateStore:
    """Keeps SyncState in a JSON file, written atomically via a temp file."""

    def __init__(self, path: Path):
        self.path = path

    async def load(self) -> SyncState:
        if not self.path.exists():
            logger.debug(f"No state file at {self.path}, starting empty")
            return SyncState()

        try:
            async with aiofiles.open(self.path, "r", encoding="utf-8") as f:
                content = await f.read()
            return SyncState.model_validate_json(content)
        except (OSError, ValidationError) as e:
            logger.error(f"Failed to read state file {self.path}: {e}")
            raise StateError(f"Failed to read state file {self.path}: {e}") from e

    async def save(self, state: SyncState) -> None:
        state.updated_at = utcnow()
        temp_path = self.path.with_suffix(".tmp")
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            async with aiofiles.open(temp_path, "w", encoding="utf-8") as f:
                await f.write(state.model_dump_json(indent=2))
            temp_path.replace(self.path)
        except OSError as e:
            temp_path.unlink(missing_ok=True)
            logger.error(f"Failed to write state file {self.path}: {e}")
            raise StateError(f"Failed to write state file {self.path}: {e}") from e
        logger.debug(f"Saved state for {len(state.objects)} objects to {self.path}")
