"""Workspace and project classification.

Pure, synchronous filesystem checks.  Async callers run them through
``anyio.to_thread.run_sync``.

``is_workspace_dir`` tests one candidate directory directly; the upward
ancestor walk lives in ``rapidkit_workspace.resolver``.
"""

from __future__ import annotations

import json
from pathlib import Path

from rapidkit_workspace.marker import has_valid_marker
from rapidkit_workspace.models.enums import ProjectType, WorkspaceMode
from rapidkit_workspace.models.workspace import ProjectRef

PROJECT_METADATA_DIR = ".rapidkit"
PROJECT_METADATA_FILES = ("project.json", "context.json")

# Launcher the npm CLI drops next to pyproject.toml when it creates a workspace.
WRAPPER_SCRIPTS = ("rapidkit", "rapidkit.cmd")

DEMO_SCRIPT = "generate-demo.js"

GO_MARKERS = ("go.mod", "go.sum", "main.go", "cmd/main.go")
NESTJS_CORE_PACKAGE = "@nestjs/core"


def has_project_metadata(path: Path) -> bool:
    meta_dir = path / PROJECT_METADATA_DIR
    return any((meta_dir / name).is_file() for name in PROJECT_METADATA_FILES)


def is_workspace_dir(path: str | Path) -> bool:
    """Classify a candidate directory as a managed workspace.

    1. valid marker (current or legacy)
    2. ``pyproject.toml`` + ``.venv`` + wrapper script (tool-created, no marker)
    3. ``.rapidkit/project.json`` or ``.rapidkit/context.json`` (pre-marker installs)
    """
    path = Path(path)
    if not path.is_dir():
        return False
    if has_valid_marker(path):
        return True
    if (
        (path / "pyproject.toml").is_file()
        and (path / ".venv").is_dir()
        and any((path / script).is_file() for script in WRAPPER_SCRIPTS)
    ):
        return True
    return has_project_metadata(path)


def workspace_mode(path: str | Path) -> WorkspaceMode:
    return WorkspaceMode.DEMO if (Path(path) / DEMO_SCRIPT).is_file() else WorkspaceMode.FULL


def _depends_on_nestjs(package_json: Path) -> bool:
    try:
        pkg = json.loads(package_json.read_text(encoding="utf-8"))
    except (OSError, ValueError):
        return False
    deps = pkg.get("dependencies") if isinstance(pkg, dict) else None
    return isinstance(deps, dict) and NESTJS_CORE_PACKAGE in deps


def classify_project(path: str | Path) -> ProjectType | None:
    """Return the project type of *path*, or ``None`` if it is not a project.

    First match wins.  Go is checked before ``package.json`` so a Go service
    with an incidental ``package.json`` stays a Go project.
    """
    path = Path(path)
    if has_project_metadata(path):
        return ProjectType.RAPIDKIT
    if (path / "pyproject.toml").is_file():
        return ProjectType.FASTAPI
    if any((path / marker).is_file() for marker in GO_MARKERS):
        return ProjectType.GO
    package_json = path / "package.json"
    if package_json.is_file() and _depends_on_nestjs(package_json):
        return ProjectType.NESTJS
    return None


def discover_projects(workspace: str | Path) -> list[ProjectRef]:
    """List child projects in the immediate subdirectories of *workspace*.

    Hidden directories are skipped.  Order is by directory name.
    """
    workspace = Path(workspace)
    try:
        entries = sorted(workspace.iterdir(), key=lambda p: p.name)
    except OSError:
        return []

    projects: list[ProjectRef] = []
    for entry in entries:
        if entry.name.startswith(".") or not entry.is_dir():
            continue
        if classify_project(entry) is not None:
            projects.append(ProjectRef(name=entry.name, path=str(entry)))
    return projects
