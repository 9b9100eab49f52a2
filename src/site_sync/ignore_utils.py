"""Ignore patterns for files that should never be published."""

import fnmatch
from pathlib import Path
from typing import Iterable, Optional, Set

from loguru import logger

IGNORE_FILE_NAME = ".syncignore"

# Editor, OS and VCS artifacts that never belong in a published site
DEFAULT_IGNORE_PATTERNS = {
    ".git",
    ".hg",
    ".svn",
    ".DS_Store",
    "Thumbs.db",
    "desktop.ini",
    "*.swp",
    "*~",
    IGNORE_FILE_NAME,
}


def load_ignore_patterns(base_path: Path, extra: Optional[Iterable[str]] = None) -> Set[str]:
    """Default patterns, plus extra patterns, plus lines of a .syncignore in base_path.

    Args:
        base_path: Source directory that may contain a .syncignore file
        extra: Additional patterns from configuration

    Returns:
        Set of patterns to ignore
    """
    patterns = set(DEFAULT_IGNORE_PATTERNS)
    if extra:
        patterns.update(p for p in extra if p)

    ignore_file = base_path / IGNORE_FILE_NAME
    if ignore_file.is_file():
        try:
            with ignore_file.open("r", encoding="utf-8") as f:
                for line in f:
                    line = line.strip()
                    if line and not line.startswith("#"):
                        patterns.add(line)
        except OSError as e:
            logger.warning(f"Could not read {ignore_file}: {e}")

    return patterns


def should_ignore(relative_path: str, ignore_patterns: Set[str]) -> bool:
    """Check a POSIX relative path against gitignore-style patterns.

    Supported forms:
    - "/name" or "/dir/" anchored at the source root
    - "dir/" matching a directory at any depth
    - "name" matching any path component exactly
    - globs matched against the whole relative path or the file name
    """
    parts = relative_path.split("/")
    name = parts[-1]

    for pattern in ignore_patterns:
        if pattern.startswith("/"):
            anchored = pattern[1:]
            if anchored.endswith("/"):
                if len(parts) > 1 and parts[0] == anchored[:-1]:
                    return True
            elif fnmatch.fnmatchcase(relative_path, anchored):
                return True
            continue

        if pattern.endswith("/"):
            # directory components only, the last part is the file itself
            if pattern[:-1] in parts[:-1]:
                return True
            continue

        if pattern in parts:
            return True

        if fnmatch.fnmatchcase(relative_path, pattern) or fnmatch.fnmatchcase(name, pattern):
            return True

    return False
