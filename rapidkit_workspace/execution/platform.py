"""Platform-specific executable layout.

The only place that knows how a virtual environment is laid out on each OS.
"""

from __future__ import annotations

import os
import sys
from pathlib import Path


def is_windows(platform: str = sys.platform) -> bool:
    return platform == "win32"


def venv_dir(workspace: str | os.PathLike[str]) -> Path:
    return Path(workspace) / ".venv"


def workspace_runner_candidates(
    workspace: str | os.PathLike[str],
    tool: str = "rapidkit",
    platform: str = sys.platform,
) -> list[Path]:
    """Candidate runner paths inside the workspace ``.venv``, in priority order."""
    venv = venv_dir(workspace)
    if is_windows(platform):
        scripts = venv / "Scripts"
        return [scripts / f"{tool}.exe", scripts / f"{tool}.cmd", scripts / tool]
    return [venv / "bin" / tool]


def find_workspace_runners(
    workspace: str | os.PathLike[str],
    tool: str = "rapidkit",
    platform: str = sys.platform,
) -> list[Path]:
    """Candidates that exist on disk."""
    return [p for p in workspace_runner_candidates(workspace, tool, platform) if p.is_file()]


def venv_python(venv: str | os.PathLike[str], platform: str = sys.platform) -> Path:
    venv = Path(venv)
    return venv / "Scripts" / "python.exe" if is_windows(platform) else venv / "bin" / "python"
