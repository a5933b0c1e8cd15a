"""Local filesystem JSON documents.

Uses ``anyio.to_thread.run_sync`` for non-blocking file I/O.

Writes are atomic: data is written to a temporary file in the same directory,
then renamed to the target path.  Another process reading the registry or a
marker concurrently sees either the old or the new document, never a partial
one.  Concurrent writers can still lose each other's update (last rename
wins); there is no locking.
"""

from __future__ import annotations

import contextlib
import json
import os
import tempfile
from functools import partial
from pathlib import Path
from typing import Any

from anyio import to_thread


class LocalJsonDocument:
    """Local filesystem implementation of the ``JsonDocument`` protocol."""

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)

    def __repr__(self) -> str:
        return f"LocalJsonDocument({str(self.path)!r})"

    async def read(self) -> Any:
        return await to_thread.run_sync(partial(read_json, self.path))

    async def write(self, data: Any) -> None:
        await to_thread.run_sync(partial(write_json, self.path, data))

    async def exists(self) -> bool:
        return await to_thread.run_sync(self.path.is_file)


# -- Sync helpers (run in thread pool) -----------------------------------------


def read_json(path: Path) -> Any:
    """Read and parse a JSON file.  Raises ``FileNotFoundError`` if missing."""
    return json.loads(path.read_text(encoding="utf-8"))


def write_json(path: Path, data: Any) -> None:
    _atomic_write(path, json.dumps(data, indent=2) + "\n")


def _atomic_write(path: Path, data: str) -> None:
    """Write data atomically: temp file + rename.

    The temp file is created in the same directory so ``os.replace`` is atomic.
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_path = tempfile.mkstemp(dir=path.parent, suffix=".tmp")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(data)
        os.replace(tmp_path, path)
    except BaseException:
        with contextlib.suppress(OSError):
            os.unlink(tmp_path)
        raise
