"""Utility functions for site-sync."""

import sys
from pathlib import Path, PurePosixPath
from typing import Optional

from loguru import logger


def setup_logging(
    log_file: Optional[Path] = None,
    log_level: str = "INFO",
    console: bool = True,
) -> None:  # pragma: no cover
    """
    Configure loguru sinks:
    - stderr at the requested level, if console is set
    - a rotating debug log file, if log_file is given
    """
    logger.remove()

    if console:
        logger.add(sys.stderr, level=log_level, backtrace=True, diagnose=False, colorize=True)

    if log_file:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        logger.add(
            str(log_file),
            level="DEBUG",
            rotation="10 MB",
            retention="10 days",
            backtrace=True,
            diagnose=False,
            enqueue=True,
        )


def to_posix_key(path: Path, root: Path) -> str:
    """Relative POSIX-style key for a path below root, regardless of host separator."""
    return PurePosixPath(*path.relative_to(root).parts).as_posix()


def remote_key(prefix: str, relative_path: str) -> str:
    """Object key for a relative path under an (already normalized) prefix."""
    return f"{prefix}{relative_path}"
