"""Shared enumerations used across the workspace bridge."""

from __future__ import annotations

from enum import StrEnum

# -- Workspace ---------------------------------------------------------------


class WorkspaceMode(StrEnum):
    DEMO = "demo"
    FULL = "full"


class ProjectType(StrEnum):
    """Kind of child project found inside a workspace."""

    RAPIDKIT = "rapidkit"
    FASTAPI = "fastapi"
    GO = "go"
    NESTJS = "nestjs"


# -- Marker ------------------------------------------------------------------


class MetadataNamespace(StrEnum):
    """Marker metadata sections, each owned by a different producer."""

    VSCODE = "vscode"
    NPM = "npm"
    PYTHON = "python"
    CUSTOM = "custom"


class MarkerProducer(StrEnum):
    NPM = "rapidkit-npm"
    VSCODE = "rapidkit-vscode"
    CLI = "rapidkit-cli"


# -- Runtime -----------------------------------------------------------------


class RuntimeTier(StrEnum):
    """Where the invoked ``rapidkit`` executable came from."""

    WORKSPACE = "workspace"
    GLOBAL = "global"
    FETCH = "fetch"


# -- Versions ----------------------------------------------------------------


class VersionStatus(StrEnum):
    UP_TO_DATE = "up-to-date"
    UPDATE_AVAILABLE = "update-available"
    DEPRECATED = "deprecated"
    NOT_INSTALLED = "not-installed"
    ERROR = "error"


class VersionLocation(StrEnum):
    WORKSPACE = "workspace"
    GLOBAL = "global"
