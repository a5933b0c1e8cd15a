"""Workspace environment validation.

A workspace is usable when it has a ``.venv`` whose interpreter can import
the RapidKit core.
"""

from __future__ import annotations

import os
from typing import TYPE_CHECKING

from anyio import to_thread
from pydantic import BaseModel, Field

from rapidkit_workspace.execution.platform import venv_dir, venv_python

if TYPE_CHECKING:
    from rapidkit_workspace.execution.bridge import RuntimeResolver

_CORE_IMPORT_CHECK = "import rapidkit; print(rapidkit.__version__)"


class ValidationReport(BaseModel):
    valid: bool = False
    has_venv: bool = False
    has_core: bool = False
    venv_path: str | None = None
    python_path: str | None = None
    core_version: str | None = None
    errors: list[str] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)

    def summary(self) -> str:
        if self.valid:
            return "Workspace is valid"
        lines = ["Workspace validation failed:"]
        lines += [f"  error: {e}" for e in self.errors]
        lines += [f"  hint: {w}" for w in self.warnings]
        return "\n".join(lines)


async def validate_workspace(
    workspace: str | os.PathLike[str],
    bridge: RuntimeResolver,
    *,
    timeout: float = 3.0,
) -> ValidationReport:
    report = ValidationReport()
    workspace = os.fspath(workspace)

    if not await to_thread.run_sync(os.path.isdir, workspace):
        report.errors.append(f"Workspace directory does not exist: {workspace}")
        return report

    venv = venv_dir(workspace)
    if not await to_thread.run_sync(venv.is_dir):
        report.errors.append("Workspace does not have a virtual environment (.venv not found)")
        report.warnings.append('Run "npx rapidkit" in the workspace directory to create one')
        return report
    report.has_venv = True
    report.venv_path = str(venv)

    python = venv_python(venv)
    report.python_path = str(python)
    if not await to_thread.run_sync(python.is_file):
        report.errors.append(f"Python not found in venv: {python}")
        return report

    result = await bridge.probe([str(python), "-c", _CORE_IMPORT_CHECK], cwd=workspace, timeout=timeout)
    if result.ok:
        report.has_core = True
        report.core_version = result.stdout.strip() or None
    else:
        report.errors.append("rapidkit-core is not installed in the workspace virtual environment")
        report.warnings.append("Reinstall the workspace or run: pip install rapidkit-core")

    report.valid = report.has_venv and report.has_core
    return report
