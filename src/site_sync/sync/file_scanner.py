"""Enumerate the files of a source directory."""

import os
from pathlib import Path
from typing import List, Optional, Set

from loguru import logger

from site_sync.exceptions import DigestError, ScanError
from site_sync.ignore_utils import load_ignore_patterns, should_ignore
from site_sync.sync.content_types import ContentTyper
from site_sync.sync.fingerprint import FingerprintStore
from site_sync.sync.utils import FileRecord
from site_sync.utils import to_posix_key


class FileScanner:
    """
    Produces a sorted list of FileRecords for every file below a root.
    The filesystem is treated as the source of truth.
    """

    def __init__(
        self,
        content_typer: Optional[ContentTyper] = None,
        exclude: Optional[List[str]] = None,
    ):
        self.content_typer = content_typer or ContentTyper()
        self.exclude = exclude or []

    def list_files(self, root_dir: Path, ignore_patterns: Set[str]) -> List[str]:
        """Relative POSIX paths of all non-ignored files, sorted.

        Raises:
            ScanError: If root_dir is missing, not a directory or unreadable
        """
        if not root_dir.exists():
            raise ScanError(f"Source directory does not exist: {root_dir}")
        if not root_dir.is_dir():
            raise ScanError(f"Source path is not a directory: {root_dir}")

        def on_error(e: OSError) -> None:
            raise ScanError(f"Failed to read {e.filename}: {e.strerror}") from e

        paths = []
        try:
            for dirpath, dirnames, filenames in os.walk(root_dir, onerror=on_error):
                current = Path(dirpath)
                # prune ignored directories so we never descend into them
                dirnames[:] = [
                    d
                    for d in dirnames
                    if not should_ignore(to_posix_key(current / d, root_dir) + "/", ignore_patterns)
                ]
                for filename in filenames:
                    full = current / filename
                    if not full.is_file():
                        continue
                    rel_path = to_posix_key(full, root_dir)
                    if should_ignore(rel_path, ignore_patterns):
                        logger.debug(f"Ignoring: {rel_path}")
                        continue
                    paths.append(rel_path)
        except OSError as e:
            raise ScanError(f"Failed to scan {root_dir}: {e}") from e

        return sorted(paths)

    async def scan(self, root_dir: Path) -> List[FileRecord]:
        """
        Scan a directory for files and their digests.

        Args:
            root_dir: Directory to scan

        Returns:
            List of FileRecord sorted by relative_path

        Raises:
            ScanError: If the directory cannot be enumerated
            DigestError: If any file cannot be read
        """
        root_dir = root_dir.resolve()
        logger.debug(f"Scanning directory: {root_dir}")

        ignore_patterns = load_ignore_patterns(root_dir, self.exclude)
        records = []
        for rel_path in self.list_files(root_dir, ignore_patterns):
            absolute_path = root_dir / rel_path
            digest = await FingerprintStore.digest_file(absolute_path, rel_path)
            try:
                size = absolute_path.stat().st_size
            except OSError as e:
                raise DigestError(rel_path, e) from e
            records.append(
                FileRecord(
                    relative_path=rel_path,
                    absolute_path=absolute_path,
                    digest=digest,
                    content_type=self.content_typer.classify(rel_path),
                    size=size,
                )
            )
            logger.debug(f"Found file: {rel_path} ({digest[:8]})")

        logger.debug(f"Found {len(records)} files")
        return records
