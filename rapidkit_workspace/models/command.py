"""Subprocess results and the JSON payloads returned by the external tool.

JSON payloads are schema-versioned; callers must check ``schema_version``
before trusting any other field.
"""

from __future__ import annotations

from typing import Any, Generic, TypeVar

from pydantic import BaseModel, ConfigDict, Field

from rapidkit_workspace.models.enums import RuntimeTier

SUPPORTED_SCHEMA_VERSION = 1

T = TypeVar("T", bound=BaseModel)


class CommandResult(BaseModel):
    """Uniform result of one subprocess invocation."""

    stdout: str = ""
    stderr: str = ""
    exit_code: int
    command: list[str] = Field(default_factory=list)
    tier: RuntimeTier | None = None
    """Runtime tier that serviced the call (``None`` for direct probes)."""

    @property
    def ok(self) -> bool:
        return self.exit_code == 0


class JsonResult(BaseModel, Generic[T]):
    """Parsed JSON command output.  ``ok=False`` instead of raising."""

    ok: bool
    command: list[str] | None = None
    exit_code: int | None = None
    stdout: str | None = None
    stderr: str | None = None
    data: T | None = None


# -- Payloads ----------------------------------------------------------------


class _Payload(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="allow")

    schema_version: int


class CoreVersionPayload(_Payload):
    """``python -m rapidkit --version --json``."""

    version: str


class ProjectDetectPayload(_Payload):
    """``python -m rapidkit project detect --path P --json``."""

    input: str
    confidence: str = "none"
    is_rapidkit_project: bool = Field(default=False, alias="isRapidkitProject")
    project_root: str | None = Field(default=None, alias="projectRoot")
    engine: str | None = None
    markers: dict[str, Any] = Field(default_factory=dict)


class ModulesListPayload(_Payload):
    """``rapidkit modules list --json-schema 1``."""

    modules: list[dict[str, Any]]
    generated_at: str | None = None
    warnings: list[str] = Field(default_factory=list)
    errors: list[str] = Field(default_factory=list)
