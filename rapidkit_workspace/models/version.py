"""Version / health information for the RapidKit core in a workspace."""

from __future__ import annotations

from pydantic import BaseModel, Field

from rapidkit_workspace.models.enums import VersionLocation, VersionStatus


class VersionInfo(BaseModel):
    installed: str | None = None
    latest: str | None = None
    status: VersionStatus
    location: VersionLocation | None = None
    path: str | None = None
    timestamp: float = Field(default=0.0, exclude=True)
    """Monotonic time of the fetch; drives TTL expiry."""
