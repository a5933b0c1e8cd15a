"""Data models for the workspace bridge."""

from rapidkit_workspace.models.command import (
    CommandResult,
    CoreVersionPayload,
    JsonResult,
    ModulesListPayload,
    ProjectDetectPayload,
)
from rapidkit_workspace.models.enums import (
    MarkerProducer,
    MetadataNamespace,
    ProjectType,
    RuntimeTier,
    VersionLocation,
    VersionStatus,
    WorkspaceMode,
)
from rapidkit_workspace.models.marker import WorkspaceMarker
from rapidkit_workspace.models.version import VersionInfo
from rapidkit_workspace.models.workspace import ProjectRef, RegistryDocument, WorkspaceRecord

__all__ = [
    # Command
    "CommandResult",
    "CoreVersionPayload",
    "JsonResult",
    # Enums
    "MarkerProducer",
    "MetadataNamespace",
    "ModulesListPayload",
    "ProjectDetectPayload",
    # Workspace
    "ProjectRef",
    "ProjectType",
    "RegistryDocument",
    "RuntimeTier",
    # Version
    "VersionInfo",
    "VersionLocation",
    "VersionStatus",
    # Marker
    "WorkspaceMarker",
    "WorkspaceMode",
    "WorkspaceRecord",
]
