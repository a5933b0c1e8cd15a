"""Per-workspace cache of RapidKit core version and health.

``get`` returns a cached ``VersionInfo`` while it is younger than the TTL and
refetches otherwise:

1. installed version: ``--version`` of the workspace ``.venv`` runner(s),
   then of the global executable; the first parseable answer wins;
2. nothing installed -> ``not-installed`` (no index lookup);
3. latest version from the package index (best effort);
4. ``update-available`` if latest is strictly newer, else ``up-to-date``.

An unexpected exception while fetching returns the previous entry, even if
expired, rather than an ``error`` status.  The cache is in-memory and
process-local.
"""

from __future__ import annotations

import os
import re
import time
from collections.abc import Callable
from typing import TYPE_CHECKING

from loguru import logger

from rapidkit_workspace.models.enums import VersionLocation, VersionStatus
from rapidkit_workspace.models.version import VersionInfo
from rapidkit_workspace.registry import normalize_path

if TYPE_CHECKING:
    from rapidkit_workspace.execution.bridge import RuntimeResolver
    from rapidkit_workspace.index import PackageIndex

DEFAULT_TTL = 5 * 60.0

_VERSION_TOKEN = re.compile(r"v?(\d+(?:\.\d+)*(?:(?:rc|a|b)\d+)?)")
_LEADING_DIGITS = re.compile(r"\d+")


def parse_version_token(output: str) -> str | None:
    """Extract the first version-looking token from ``--version`` output."""
    match = _VERSION_TOKEN.search(output)
    return match.group(1) if match else None


def version_key(version: str) -> tuple[int, int, int]:
    """Numeric (major, minor, patch).  Missing or non-numeric parts count as 0."""
    parts = version.strip().lstrip("v").split(".")[:3]
    numbers = []
    for part in parts:
        match = _LEADING_DIGITS.match(part)
        numbers.append(int(match.group()) if match else 0)
    numbers += [0] * (3 - len(numbers))
    return numbers[0], numbers[1], numbers[2]


def is_newer(latest: str, installed: str) -> bool:
    return version_key(latest) > version_key(installed)


class VersionCache:
    """TTL cache of ``VersionInfo`` keyed by workspace path."""

    def __init__(
        self,
        bridge: RuntimeResolver,
        index: PackageIndex,
        *,
        ttl: float = DEFAULT_TTL,
        probe_timeout: float = 5.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._bridge = bridge
        self._index = index
        self.ttl = ttl
        self.probe_timeout = probe_timeout
        self._clock = clock
        self._entries: dict[str, VersionInfo] = {}
        self._latest: tuple[str | None, float] | None = None

    def _fresh(self, timestamp: float) -> bool:
        return self._clock() - timestamp < self.ttl

    async def get(self, workspace: str | os.PathLike[str]) -> VersionInfo:
        key = normalize_path(workspace)
        cached = self._entries.get(key)
        if cached is not None and self._fresh(cached.timestamp):
            return cached

        try:
            info = await self._fetch(key)
        except Exception:
            if cached is not None:
                logger.opt(exception=True).warning("Version check failed for {}, serving stale result", key)
                return cached
            logger.opt(exception=True).error("Version check failed for {}", key)
            return VersionInfo(status=VersionStatus.ERROR, timestamp=self._clock())

        self._entries[key] = info
        return info

    def invalidate(self, workspace: str | os.PathLike[str] | None = None) -> None:
        """Drop one entry, or everything (including the latest-version memo)."""
        if workspace is None:
            self._entries.clear()
            self._latest = None
            return
        self._entries.pop(normalize_path(workspace), None)

    # -- Fetch -----------------------------------------------------------------

    async def _fetch(self, workspace: str) -> VersionInfo:
        installed = await self._installed_version(workspace)
        if installed is None:
            return VersionInfo(status=VersionStatus.NOT_INSTALLED, timestamp=self._clock())

        version, location, path = installed
        latest = await self._latest_version()
        status = VersionStatus.UP_TO_DATE
        if latest is not None and is_newer(latest, version):
            status = VersionStatus.UPDATE_AVAILABLE

        return VersionInfo(
            installed=version,
            latest=latest,
            status=status,
            location=location,
            path=path,
            timestamp=self._clock(),
        )

    async def _installed_version(self, workspace: str) -> tuple[str, VersionLocation, str] | None:
        candidates: list[tuple[str, VersionLocation]] = [
            (str(runner), VersionLocation.WORKSPACE) for runner in await self._bridge.workspace_runners(workspace)
        ]
        executable = self._bridge.global_executable()
        if executable is not None:
            candidates.append((executable, VersionLocation.GLOBAL))

        for executable, location in candidates:
            result = await self._bridge.probe([executable, "--version"], cwd=workspace, timeout=self.probe_timeout)
            if not result.ok:
                continue
            version = parse_version_token(result.stdout)
            if version is not None:
                return version, location, executable
        return None

    async def _latest_version(self) -> str | None:
        if self._latest is not None and self._fresh(self._latest[1]):
            return self._latest[0]
        version = await self._index.latest_version()
        self._latest = (version, self._clock())
        return version

    # -- Presentation ----------------------------------------------------------

    @staticmethod
    def status_message(info: VersionInfo) -> str:
        match info.status:
            case VersionStatus.UP_TO_DATE:
                return f"Up to date (v{info.installed})"
            case VersionStatus.UPDATE_AVAILABLE:
                return f"Update available: v{info.latest} (installed: v{info.installed})"
            case VersionStatus.DEPRECATED:
                return f"Version deprecated (v{info.installed})"
            case VersionStatus.NOT_INSTALLED:
                return "RapidKit Core not installed"
            case _:
                return "Error checking version"
