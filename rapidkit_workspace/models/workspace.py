"""Workspace registry records.

A workspace is a directory that groups one or more generated projects.  The
registry file stores them as::

    {"workspaces": [{"name": ..., "path": ..., "mode": ..., "projects": [...]}]}
"""

from __future__ import annotations

import os
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from rapidkit_workspace.models.enums import WorkspaceMode


class ProjectRef(BaseModel):
    """A child project inside a workspace."""

    model_config = ConfigDict(extra="allow")

    name: str
    path: str


class WorkspaceRecord(BaseModel):
    """One entry of the workspace registry.  ``path`` is the unique key.

    Other writers of the registry may add keys of their own (``kit``, ...);
    those are kept and written back untouched.
    """

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    name: str
    path: str
    mode: WorkspaceMode = WorkspaceMode.FULL
    projects: list[ProjectRef] = Field(default_factory=list)
    last_accessed: int | None = Field(default=None, alias="lastAccessed", description="Epoch millis")

    @model_validator(mode="before")
    @classmethod
    def _upgrade_legacy_fields(cls, data: Any) -> Any:
        """Fill in what older or foreign writers left out.

        Only a missing ``path`` makes a record unusable.
        """
        if not isinstance(data, dict):
            return data
        path = data.get("path")
        if not isinstance(path, str) or not path:
            return data

        data = dict(data)
        if not isinstance(data.get("name"), str) or not data["name"]:
            data["name"] = os.path.basename(os.path.normpath(path))
        data["projects"] = _upgrade_projects(path, data.get("projects"))
        for key in ("lastAccessed", "last_accessed"):
            if key in data and (isinstance(data[key], bool) or not isinstance(data[key], int)):
                data.pop(key)
        return data

    @field_validator("mode", mode="before")
    @classmethod
    def _unknown_mode_is_full(cls, value: Any) -> Any:
        if isinstance(value, str) and value in {m.value for m in WorkspaceMode}:
            return value
        return WorkspaceMode.FULL


def _upgrade_projects(base: str, projects: Any) -> list[dict[str, Any]]:
    """Older registries stored ``projects`` as bare directory names."""
    if not isinstance(projects, list):
        return []
    upgraded: list[dict[str, Any]] = []
    for project in projects:
        if isinstance(project, str) and project:
            upgraded.append({"name": project, "path": os.path.join(base, project)})
        elif isinstance(project, dict) and isinstance(project.get("name"), str):
            path = project.get("path")
            if not isinstance(path, str):
                path = os.path.join(base, project["name"])
            upgraded.append({**project, "path": path})
    return upgraded


class RegistryDocument(BaseModel):
    """On-disk shape of ``workspaces.json``."""

    workspaces: list[WorkspaceRecord] = Field(default_factory=list)
