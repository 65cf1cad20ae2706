"""
Helpers shared by the JSON-file backed stores.

Several processes (the scheduler and ad-hoc CLI commands) may hold their own
store instance on the same file, so each read-modify-write is guarded by a
lock file next to the data file, and writes go through a unique temp file
that replaces the target in one step.
"""

import os
import tempfile
from pathlib import Path

from filelock import FileLock


def file_lock(path: Path, timeout: float = 30.0) -> FileLock:
    """Inter-process lock for `path` (reentrant within a thread)."""
    path.parent.mkdir(parents=True, exist_ok=True)
    return FileLock(str(path) + ".lock", timeout=timeout)


def atomic_write_text(path: Path, text: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", suffix=".tmp", dir=str(path.parent))
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as fh:
            fh.write(text)
        os.replace(tmp_name, path)
    except BaseException:
        if os.path.exists(tmp_name):
            os.unlink(tmp_name)
        raise
