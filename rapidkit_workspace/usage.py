"""Records editor usage of a workspace in its marker (``metadata.vscode``)."""

from __future__ import annotations

import os
from datetime import UTC, datetime
from typing import TYPE_CHECKING

from loguru import logger

from rapidkit_workspace.models.enums import MetadataNamespace
from rapidkit_workspace.registry import normalize_path

if TYPE_CHECKING:
    from rapidkit_workspace.marker import MarkerCodec
    from rapidkit_workspace.registry import WorkspaceRegistry


class UsageTracker:
    """Bumps ``openCount`` / ``lastOpenedAt`` once per workspace per process.

    Tracking is optional bookkeeping: failures are logged and ignored.
    """

    def __init__(self, codec: MarkerCodec, registry: WorkspaceRegistry, *, client_version: str) -> None:
        self._codec = codec
        self._registry = registry
        self._client_version = client_version
        self._tracked: set[str] = set()

    async def track_open(self, workspace: str | os.PathLike[str]) -> bool:
        """Return ``True`` if the marker was updated by this call."""
        key = normalize_path(workspace)
        if key in self._tracked:
            return False

        try:
            marker = await self._codec.read(key)
            if marker is None:
                return False

            ns = MetadataNamespace.VSCODE.value
            current = marker.namespace(ns)
            count = int(current.get("openCount") or 0) + 1
            await self._codec.update_metadata(
                key,
                {
                    ns: {
                        "extensionVersion": self._client_version,
                        "createdViaExtension": bool(current.get("createdViaExtension", False)),
                        "lastOpenedAt": datetime.now(UTC).isoformat(),
                        "openCount": count,
                    }
                },
            )
            await self._registry.touch(key)
        except (OSError, TypeError, ValueError) as exc:
            logger.debug("Failed to track workspace open {}: {}", key, exc)
            return False

        self._tracked.add(key)
        logger.debug("Tracked workspace open: {} (count: {})", key, count)
        return True
