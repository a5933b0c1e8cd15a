"""Workspace root resolution -- "which workspace is this path in?".

Resolution order for each directory, walking from the input path up to the
filesystem root (first match wins):

1. A valid ``.rapidkit-workspace`` marker (any current or legacy form).
2. ``.rapidkit/config.json`` with ``"type": "workspace"`` (npm CLI workspaces).
3. ``.rapidkit/context.json`` with ``"engine": "pip"`` (pre-marker workspaces).

If no ancestor matches, the registry is consulted: the first registered
workspace whose path contains the input path wins.  By default containment
requires a path-separator boundary, so ``/ws`` does not claim ``/ws-other``;
``strict_prefix=False`` restores plain string-prefix matching.
"""

from __future__ import annotations

import os
from functools import partial
from pathlib import Path
from typing import TYPE_CHECKING, Any

from anyio import to_thread

from rapidkit_workspace.detection import PROJECT_METADATA_DIR
from rapidkit_workspace.marker import has_valid_marker
from rapidkit_workspace.store.local import read_json

if TYPE_CHECKING:
    from collections.abc import Iterable

    from rapidkit_workspace.registry import WorkspaceRegistry


def _read_field(path: Path, field: str) -> Any:
    try:
        data = read_json(path)
    except (OSError, ValueError):
        return None
    return data.get(field) if isinstance(data, dict) else None


def matches_workspace_rules(directory: Path) -> bool:
    if has_valid_marker(directory):
        return True
    meta = directory / PROJECT_METADATA_DIR
    if _read_field(meta / "config.json", "type") == "workspace":
        return True
    # Legacy heuristic, kept for workspaces created before markers existed.
    return _read_field(meta / "context.json", "engine") == "pip"


def walk_for_root(start: str | os.PathLike[str]) -> Path | None:
    """Nearest ancestor of *start* (inclusive) that matches the workspace rules."""
    current = Path(os.path.abspath(start))
    while True:
        if matches_workspace_rules(current):
            return current
        parent = current.parent
        if parent == current:
            return None
        current = parent


def match_registered(path: str, registered: Iterable[str], *, strict_prefix: bool = True) -> str | None:
    """First registered workspace path containing *path*."""
    for ws in registered:
        if not strict_prefix:
            if path.startswith(ws):
                return ws
            continue
        base = ws.rstrip(os.sep) or os.sep
        if path == base or path.startswith(base if base.endswith(os.sep) else base + os.sep):
            return ws
    return None


class WorkspaceRootResolver:
    """Resolves the enclosing workspace root for arbitrary paths.

    For a fixed filesystem and registry the result is deterministic.
    """

    def __init__(self, registry: WorkspaceRegistry, *, strict_prefix: bool = True) -> None:
        self._registry = registry
        self._strict_prefix = strict_prefix

    async def find_root(self, path: str | os.PathLike[str]) -> Path | None:
        """Return the workspace root for *path*, or ``None``."""
        root = await to_thread.run_sync(partial(walk_for_root, path))
        if root is not None:
            return root

        match = match_registered(
            os.path.abspath(os.fspath(path)),
            self._registry.paths,
            strict_prefix=self._strict_prefix,
        )
        return Path(match) if match is not None else None

    async def is_inside_workspace(self, path: str | os.PathLike[str]) -> bool:
        """True if *path* lives inside a workspace other than itself."""
        root = await self.find_root(path)
        return root is not None and root != Path(os.path.abspath(path))
