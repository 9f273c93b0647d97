"""Locate assistant conversation logs on disk."""

from __future__ import annotations

import logging
from pathlib import Path

logger = logging.getLogger(__name__)

LOG_SUFFIX = ".jsonl"


def default_log_root() -> Path:
    """Directory the assistant writes its per-project logs to."""
    return Path.home() / ".claude" / "projects"


def find_log_files(root: Path) -> list[Path]:
    """Collect ``*.jsonl`` files under ``root``, newest first.

    A file path is returned as-is, whatever its suffix. A missing root
    yields an empty list.
    """
    if root.is_file():
        return [root]
    if not root.is_dir():
        logger.debug("Log root %s does not exist", root)
        return []

    files = [p for p in root.rglob(f"*{LOG_SUFFIX}") if p.is_file()]
    files.sort(key=_mtime, reverse=True)
    return files


def _mtime(path: Path) -> float:
    try:
        return path.stat().st_mtime
    except OSError:
        return 0.0
