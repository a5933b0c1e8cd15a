"""Persistent registry of known workspaces.

Backed by ``workspaces.json`` in the user's RapidKit config directory, shared
with the npm CLI and other editor windows.  The registry is reconstructible
(re-adding or re-discovering rebuilds it), so a corrupt file degrades to an
empty registry instead of failing.
"""

from __future__ import annotations

import os
import time
from collections.abc import Callable, Iterable, Sequence
from functools import partial
from pathlib import Path
from typing import TYPE_CHECKING, Any

from anyio import to_thread
from loguru import logger
from pydantic import ValidationError

from rapidkit_workspace.detection import discover_projects, is_workspace_dir, workspace_mode
from rapidkit_workspace.models.workspace import WorkspaceRecord
from rapidkit_workspace.notify import LogNotifier, Notifier

if TYPE_CHECKING:
    from rapidkit_workspace.store.base import JsonDocument


class WorkspaceNotFoundError(LookupError):
    """Raised when a workspace is not registered."""

    def __init__(self, path: str) -> None:
        super().__init__(f"Workspace '{path}' is not registered")


def normalize_path(path: str | os.PathLike[str]) -> str:
    return os.path.abspath(os.path.expanduser(os.fspath(path)))


def _epoch_millis() -> int:
    return int(time.time() * 1000)


class WorkspaceRegistry:
    """In-memory list of ``WorkspaceRecord`` mirrored to a JSON document.

    Every mutation persists immediately.  There is no file locking: two
    processes writing at once can lose one update (accepted limitation).
    """

    def __init__(
        self,
        store: JsonDocument,
        *,
        notifier: Notifier | None = None,
        discovery_dirs: Sequence[str | os.PathLike[str]] = (),
        now_ms: Callable[[], int] = _epoch_millis,
    ) -> None:
        self._store = store
        self._notifier = notifier or LogNotifier()
        self._discovery_dirs = [Path(d) for d in discovery_dirs]
        self._now_ms = now_ms
        self._records: list[WorkspaceRecord] = []

    # -- Persistence -----------------------------------------------------------

    async def load(self) -> list[WorkspaceRecord]:
        """Read the registry, upgrade legacy records and prune missing paths.

        The cleaned list is written back immediately.  Raises
        ``PermissionError`` if the file exists but cannot be read.
        """
        try:
            raw = await self._store.read()
        except FileNotFoundError:
            self._records = []
            return self.all_workspaces()
        except PermissionError:
            raise
        except (OSError, ValueError) as exc:
            logger.error("Registry: failed to read {} ({}), starting empty", self._store, exc)
            self._notifier.warning(f"Workspace registry is unreadable and was ignored: {self._store}")
            self._records = []
            return self.all_workspaces()

        records = self._parse_records(raw)
        existing = await to_thread.run_sync(partial(_existing_paths, [r.path for r in records]))
        pruned = [r for r in records if r.path in existing]
        if len(pruned) != len(records):
            logger.info("Registry: pruned {} workspace(s) whose path no longer exists", len(records) - len(pruned))

        self._records = pruned
        await self._save()
        return self.all_workspaces()

    @staticmethod
    def _parse_records(raw: Any) -> list[WorkspaceRecord]:
        items = raw.get("workspaces") if isinstance(raw, dict) else None
        if not isinstance(items, list):
            if raw is not None:
                logger.warning("Registry: unexpected document shape, ignoring contents")
            return []

        records: list[WorkspaceRecord] = []
        seen: set[str] = set()
        for item in items:
            try:
                record = WorkspaceRecord.model_validate(item)
            except ValidationError as exc:
                # Only records without a usable path end up here.
                logger.warning("Registry: skipping malformed record: {}", exc.errors()[0].get("msg"))
                continue
            record.path = normalize_path(record.path)
            if record.path in seen:
                continue
            seen.add(record.path)
            records.append(record)
        return records

    async def _save(self) -> None:
        doc = {"workspaces": [r.model_dump(mode="json", by_alias=True, exclude_none=True) for r in self._records]}
        try:
            await self._store.write(doc)
        except OSError as exc:
            logger.error("Registry: failed to write {}: {}", self._store, exc)

    # -- Query -----------------------------------------------------------------

    def all_workspaces(self) -> list[WorkspaceRecord]:
        """Return a snapshot of all registered workspaces."""
        return list(self._records)

    def get(self, path: str | os.PathLike[str]) -> WorkspaceRecord | None:
        key = normalize_path(path)
        for record in self._records:
            if record.path == key:
                return record
        return None

    def require(self, path: str | os.PathLike[str]) -> WorkspaceRecord:
        """Like ``get`` but raises ``WorkspaceNotFoundError``."""
        record = self.get(path)
        if record is None:
            raise WorkspaceNotFoundError(normalize_path(path))
        return record

    def recent(self, limit: int | None = None) -> list[WorkspaceRecord]:
        """Workspaces ordered by ``last_accessed``, most recent first."""
        ordered = sorted(self._records, key=lambda r: r.last_accessed or 0, reverse=True)
        return ordered[:limit] if limit is not None else ordered

    @property
    def paths(self) -> list[str]:
        return [r.path for r in self._records]

    # -- Mutation --------------------------------------------------------------

    async def add(self, path: str | os.PathLike[str]) -> WorkspaceRecord | None:
        """Register *path* if it classifies as a workspace.

        Returns ``None`` (with a user-facing error) if the path does not
        exist, the existing record if already registered, and ``None``
        silently if the directory is not a workspace.
        """
        key = normalize_path(path)
        if not await to_thread.run_sync(os.path.exists, key):
            self._notifier.error(f"Path does not exist: {key}")
            return None

        existing = self.get(key)
        if existing is not None:
            return existing

        if not await to_thread.run_sync(is_workspace_dir, key):
            logger.debug("Registry: skipping non-workspace directory {}", key)
            return None

        record = await to_thread.run_sync(partial(self._build_record, key))
        self._records.append(record)
        await self._save()
        logger.info("Registry: added workspace {} ({} project(s))", key, len(record.projects))
        return record

    def _build_record(self, path: str) -> WorkspaceRecord:
        return WorkspaceRecord(
            name=os.path.basename(path),
            path=path,
            mode=workspace_mode(path),
            projects=discover_projects(path),
            last_accessed=self._now_ms(),
        )

    async def remove(self, path: str | os.PathLike[str]) -> bool:
        key = normalize_path(path)
        before = len(self._records)
        self._records = [r for r in self._records if r.path != key]
        await self._save()
        return len(self._records) != before

    async def update(self, path: str | os.PathLike[str]) -> WorkspaceRecord | None:
        """Re-derive ``mode`` and the child-project list of a registered workspace."""
        record = self.get(path)
        if record is None:
            return None
        record.mode = await to_thread.run_sync(workspace_mode, record.path)
        record.projects = await to_thread.run_sync(discover_projects, record.path)
        await self._save()
        return record

    async def touch(self, path: str | os.PathLike[str]) -> WorkspaceRecord | None:
        """Bump ``last_accessed`` only."""
        record = self.get(path)
        if record is None:
            return None
        record.last_accessed = self._now_ms()
        await self._save()
        return record

    # -- Discovery -------------------------------------------------------------

    async def auto_discover(self, open_folders: Iterable[str | os.PathLike[str]] = ()) -> list[WorkspaceRecord]:
        """Try ``add`` on open folders and on every child of the discovery dirs.

        Most candidates are not workspaces; those are skipped silently, as
        are open folders that no longer exist.  An unreadable directory is
        logged and scanning continues.  Returns the
        newly registered records.
        """
        candidates: list[str] = [normalize_path(p) for p in open_folders]
        for directory in self._discovery_dirs:
            try:
                candidates.extend(await to_thread.run_sync(_child_dirs, directory))
            except OSError as exc:
                logger.debug("Registry: cannot scan {}: {}", directory, exc)

        discovered: list[WorkspaceRecord] = []
        for candidate in candidates:
            if self.get(candidate) is not None:
                continue
            # A stale open folder is not worth an error popup.
            if not await to_thread.run_sync(os.path.isdir, candidate):
                continue
            try:
                record = await self.add(candidate)
            except OSError as exc:
                logger.debug("Registry: cannot inspect {}: {}", candidate, exc)
                continue
            if record is not None:
                discovered.append(record)

        if discovered:
            logger.info("Registry: discovered {} new workspace(s)", len(discovered))
        return discovered


# -- Sync helpers (run in thread pool) -----------------------------------------


def _existing_paths(paths: list[str]) -> set[str]:
    return {p for p in paths if os.path.exists(p)}


def _child_dirs(directory: Path) -> list[str]:
    """Immediate subdirectories of *directory*.  Missing directory -> empty."""
    if not directory.is_dir():
        return []
    return [str(entry) for entry in sorted(directory.iterdir()) if entry.is_dir()]
