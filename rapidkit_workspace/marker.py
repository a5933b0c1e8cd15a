"""Workspace marker codec.

Reads, validates and writes ``.rapidkit-workspace`` files.  The marker format
has changed across several tool generations; all of them must still be
recognised, so validity is a set-membership test over every signature and
producer ever shipped.

A missing, unreadable or non-JSON marker is reported as ``None`` -- it only
disqualifies the directory from marker-based detection.
"""

from __future__ import annotations

import json
from datetime import UTC, datetime
from functools import partial
from pathlib import Path
from typing import Any

from anyio import to_thread
from loguru import logger
from pydantic import ValidationError

from rapidkit_workspace.models.enums import MarkerProducer, MetadataNamespace
from rapidkit_workspace.models.marker import (
    ACCEPTED_PRODUCERS,
    ACCEPTED_SIGNATURES,
    CURRENT_SIGNATURE,
    MARKER_FILENAME,
    WorkspaceMarker,
)
from rapidkit_workspace.store.local import read_json, write_json


def marker_path(workspace: str | Path) -> Path:
    return Path(workspace) / MARKER_FILENAME


def read_marker(workspace: str | Path) -> WorkspaceMarker | None:
    """Parse the marker in *workspace*, or ``None`` if absent or corrupt."""
    path = marker_path(workspace)
    try:
        raw = read_json(path)
    except FileNotFoundError:
        return None
    except (OSError, ValueError) as exc:
        logger.debug("Ignoring unreadable marker {}: {}", path, exc)
        return None
    if not isinstance(raw, dict):
        return None
    try:
        return WorkspaceMarker.model_validate(raw)
    except ValidationError:
        logger.debug("Ignoring malformed marker {}", path)
        return None


def is_valid_marker(marker: WorkspaceMarker | None) -> bool:
    if marker is None:
        return False
    signature, producer = marker.signature, marker.created_by
    return (isinstance(signature, str) and signature in ACCEPTED_SIGNATURES) or (
        isinstance(producer, str) and producer in ACCEPTED_PRODUCERS
    )


def has_valid_marker(workspace: str | Path) -> bool:
    return is_valid_marker(read_marker(workspace))


def merge_metadata(existing: Any, update: dict[str, Any] | None) -> Any:
    """Merge *update* into *existing* one namespace at a time.

    Keys inside a namespace are overlaid when both sides are objects; any
    other incoming value replaces the namespace.  Namespaces missing from
    *update* are left exactly as they were.
    """
    if not update:
        return existing
    merged: dict[str, Any] = dict(existing) if isinstance(existing, dict) else {}
    for ns, values in update.items():
        current = merged.get(ns)
        if isinstance(current, dict) and isinstance(values, dict):
            merged[ns] = {**current, **values}
        else:
            merged[ns] = values
    return merged


def write_marker(workspace: str | Path, marker: WorkspaceMarker) -> WorkspaceMarker:
    """Write *marker*, preserving metadata written by other producers."""
    existing = read_marker(workspace)
    if existing is not None and existing.metadata is not None:
        marker = marker.model_copy(update={"metadata": merge_metadata(existing.metadata, marker.metadata)})
    write_json(marker_path(workspace), marker.to_json_dict())
    return marker


def update_marker_metadata(workspace: str | Path, update: dict[str, Any]) -> bool:
    marker = read_marker(workspace)
    if marker is None:
        return False
    merged = merge_metadata(marker.metadata, update)
    write_json(marker_path(workspace), marker.model_copy(update={"metadata": merged}).to_json_dict())
    return True


class MarkerCodec:
    """Async facade over the marker helpers (file I/O runs in a worker thread)."""

    namespaces = tuple(MetadataNamespace)

    async def read(self, workspace: str | Path) -> WorkspaceMarker | None:
        return await to_thread.run_sync(partial(read_marker, workspace))

    @staticmethod
    def is_valid(marker: WorkspaceMarker | None) -> bool:
        """True for any current or legacy signature, or a known producer."""
        return is_valid_marker(marker)

    async def write(self, workspace: str | Path, marker: WorkspaceMarker) -> WorkspaceMarker:
        """Write *marker*; returns what was actually written (merged metadata)."""
        return await to_thread.run_sync(partial(write_marker, workspace, marker))

    async def update_metadata(self, workspace: str | Path, update: dict[str, Any]) -> bool:
        """Merge *update* into an existing marker.  ``False`` if there is none."""
        unknown = set(update) - {ns.value for ns in self.namespaces}
        if unknown:
            msg = f"Unknown marker metadata namespace(s): {', '.join(sorted(unknown))}"
            raise ValueError(msg)
        return await to_thread.run_sync(partial(update_marker_metadata, workspace, update))

    async def create(
        self,
        workspace: str | Path,
        *,
        name: str | None = None,
        created_by: MarkerProducer = MarkerProducer.VSCODE,
        version: str = "0.0.0",
        metadata: dict[str, Any] | None = None,
    ) -> WorkspaceMarker:
        """Stamp *workspace* with a current-signature marker."""
        marker = WorkspaceMarker(
            signature=CURRENT_SIGNATURE,
            created_by=created_by.value,
            version=version,
            created_at=datetime.now(UTC).isoformat(),
            name=name or Path(workspace).name,
            metadata=metadata,
        )
        return await self.write(workspace, marker)


def dump_marker(marker: WorkspaceMarker) -> str:
    return json.dumps(marker.to_json_dict(), indent=2)
