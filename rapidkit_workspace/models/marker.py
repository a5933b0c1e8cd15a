"""Workspace marker model (``.rapidkit-workspace``).

The marker is shared by every RapidKit producer (npm CLI, editor extension,
Python core).  Each producer owns one ``metadata`` namespace and must merge
into it rather than replace the whole document.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field

MARKER_FILENAME = ".rapidkit-workspace"

CURRENT_SIGNATURE = "RAPIDKIT_WORKSPACE"

# Append-only: every signature a released tool has ever written.
ACCEPTED_SIGNATURES: frozenset[str] = frozenset(
    {
        CURRENT_SIGNATURE,
        "rapidkit-vscode",
        "RAPIDKIT_VSCODE_WORKSPACE",
    }
)

ACCEPTED_PRODUCERS: frozenset[str] = frozenset({"rapidkit-npm", "rapidkit-vscode"})


class WorkspaceMarker(BaseModel):
    """Parsed marker file.

    Producers have not always agreed on field types (``version`` has been
    written as a number), so fields are untyped and any JSON object parses.
    Whether the marker identifies a workspace is decided by
    ``MarkerCodec.is_valid`` from ``signature`` and ``createdBy`` alone.
    """

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    signature: Any = None
    created_by: Any = Field(default=None, alias="createdBy")
    version: Any = None
    created_at: Any = Field(default=None, alias="createdAt")
    name: Any = None
    metadata: Any = None
    """Namespace -> producer-owned object.  Non-object values are kept as-is."""

    def namespace(self, ns: str) -> dict[str, Any]:
        """Metadata for *ns*, or an empty dict if absent or not an object."""
        section = self.metadata.get(ns) if isinstance(self.metadata, dict) else None
        return section if isinstance(section, dict) else {}

    def to_json_dict(self) -> dict[str, Any]:
        """Serialise with on-disk key names, dropping unset declared fields only."""
        declared = {field.alias or name for name, field in type(self).model_fields.items()}
        data = self.model_dump(by_alias=True)
        return {key: value for key, value in data.items() if value is not None or key not in declared}
