"""Bridge configuration loaded from RAPIDKIT_* environment variables."""

from __future__ import annotations

import os
import sys
from functools import lru_cache
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

REGISTRY_FILENAME = "workspaces.json"


def default_registry_dir(platform: str = sys.platform) -> Path:
    """Platform registry directory.

    Windows: ``%APPDATA%/rapidkit`` (or ``~/.config/rapidkit`` without APPDATA).
    Everything else: ``~/.rapidkit``, shared with the npm CLI.
    """
    if platform == "win32":
        appdata = os.environ.get("APPDATA")
        base = Path(appdata) if appdata else Path.home() / ".config"
        return base / "rapidkit"
    return Path.home() / ".rapidkit"


def default_discovery_dirs() -> list[Path]:
    home = Path.home()
    return [home / name for name in ("Projects", "Development", "Code", "Workspace", "workspace", "projects")]


class WorkspaceSettings(BaseSettings):
    """Workspace bridge settings.

    All fields are read from environment variables with the ``RAPIDKIT_``
    prefix.  For example, ``RAPIDKIT_LOG_LEVEL=DEBUG`` maps to ``log_level``.
    """

    model_config = SettingsConfigDict(
        env_prefix="RAPIDKIT_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # -- Logging ---------------------------------------------------------------
    log_level: str = "INFO"
    log_levels: dict[str, str] = Field(default_factory=dict)
    """Per-module overrides, e.g. ``RAPIDKIT_LOG_LEVELS='{"rapidkit_workspace.execution": "DEBUG"}'``."""

    # -- Registry --------------------------------------------------------------
    registry_dir: Path | None = None
    """Directory holding ``workspaces.json``.  Platform default when unset."""

    discovery_dirs: list[Path] = Field(default_factory=default_discovery_dirs)
    """Directories whose immediate children are scanned by auto-discovery."""

    resolver_strict_prefix: bool = True
    """Require a path-separator boundary when matching registered workspaces.

    ``False`` restores plain string-prefix matching, where a workspace at
    ``/ws`` also claims ``/ws-other/...``.
    """

    # -- External tool ---------------------------------------------------------
    tool_name: str = "rapidkit"
    fetch_runner: str = "npx"
    """Package runner used by the fetch-on-demand tier (``npx --yes <tool>``)."""

    python_commands: list[str] = Field(default_factory=lambda: ["python3", "python"])
    """Interpreters tried, in order, for ``python -m rapidkit`` engine calls."""

    command_timeout: float = 15.0
    engine_timeout: float = 8.0
    version_timeout: float = 5.0

    # -- Version checks --------------------------------------------------------
    package_name: str = "rapidkit-core"
    index_url: str = "https://pypi.org/pypi"
    index_timeout: float = 3.0
    version_cache_ttl: float = 300.0

    # -- Client identity -------------------------------------------------------
    client_version: str = "0.1.0"
    """Version recorded in marker metadata written by this package."""

    # -- Helpers ---------------------------------------------------------------

    def resolve_registry_dir(self) -> Path:
        return self.registry_dir if self.registry_dir is not None else default_registry_dir()

    @property
    def registry_file(self) -> Path:
        return self.resolve_registry_dir() / REGISTRY_FILENAME


@lru_cache(maxsize=1)
def get_settings() -> WorkspaceSettings:
    """Return a cached settings instance.

    Call ``get_settings.cache_clear()`` in tests to force a re-read after
    overriding env vars.
    """
    return WorkspaceSettings()
