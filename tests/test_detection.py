"""Unit tests for workspace and project classification."""

from __future__ import annotations

from pathlib import Path

import pytest
from conftest import write_json_file

from rapidkit_workspace.detection import classify_project, discover_projects, is_workspace_dir, workspace_mode
from rapidkit_workspace.models.enums import ProjectType, WorkspaceMode


def _touch(path: Path) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text("", encoding="utf-8")
    return path


# ---------------------------------------------------------------------------
# Workspace classification
# ---------------------------------------------------------------------------


def test_marker_makes_a_workspace(make_workspace) -> None:
    ws = make_workspace(marker={"signature": "RAPIDKIT_WORKSPACE"})
    assert is_workspace_dir(ws) is True


def test_tool_created_layout_without_marker(tmp_path: Path) -> None:
    ws = tmp_path / "ws"
    _touch(ws / "pyproject.toml")
    (ws / ".venv").mkdir()
    _touch(ws / "rapidkit")
    assert is_workspace_dir(ws) is True


def test_tool_layout_needs_the_wrapper_script(tmp_path: Path) -> None:
    ws = tmp_path / "ws"
    _touch(ws / "pyproject.toml")
    (ws / ".venv").mkdir()
    assert is_workspace_dir(ws) is False


@pytest.mark.parametrize("name", ["project.json", "context.json"])
def test_project_metadata_makes_a_workspace(tmp_path: Path, name: str) -> None:
    ws = tmp_path / "ws"
    write_json_file(ws / ".rapidkit" / name, {})
    assert is_workspace_dir(ws) is True


def test_plain_directory_is_not_a_workspace(tmp_path: Path) -> None:
    assert is_workspace_dir(tmp_path) is False


def test_file_is_not_a_workspace(tmp_path: Path) -> None:
    assert is_workspace_dir(_touch(tmp_path / "file.txt")) is False


def test_workspace_mode(tmp_path: Path) -> None:
    assert workspace_mode(tmp_path) is WorkspaceMode.FULL
    _touch(tmp_path / "generate-demo.js")
    assert workspace_mode(tmp_path) is WorkspaceMode.DEMO


# ---------------------------------------------------------------------------
# Project classification
# ---------------------------------------------------------------------------


def test_classify_rapidkit_metadata_wins(tmp_path: Path) -> None:
    write_json_file(tmp_path / ".rapidkit" / "project.json", {})
    _touch(tmp_path / "pyproject.toml")
    assert classify_project(tmp_path) is ProjectType.RAPIDKIT


def test_classify_pyproject(tmp_path: Path) -> None:
    _touch(tmp_path / "pyproject.toml")
    assert classify_project(tmp_path) is ProjectType.FASTAPI


@pytest.mark.parametrize("marker", ["go.mod", "go.sum", "main.go", "cmd/main.go"])
def test_classify_go(tmp_path: Path, marker: str) -> None:
    _touch(tmp_path / marker)
    assert classify_project(tmp_path) is ProjectType.GO


def test_go_beats_nestjs(tmp_path: Path) -> None:
    _touch(tmp_path / "go.mod")
    write_json_file(tmp_path / "package.json", {"dependencies": {"@nestjs/core": "^10.0.0"}})
    assert classify_project(tmp_path) is ProjectType.GO


def test_classify_nestjs(tmp_path: Path) -> None:
    write_json_file(tmp_path / "package.json", {"dependencies": {"@nestjs/core": "^10.0.0"}})
    assert classify_project(tmp_path) is ProjectType.NESTJS


def test_plain_node_package_is_not_a_project(tmp_path: Path) -> None:
    write_json_file(tmp_path / "package.json", {"dependencies": {"express": "^4"}})
    assert classify_project(tmp_path) is None


def test_broken_package_json_is_not_a_project(tmp_path: Path) -> None:
    (tmp_path / "package.json").write_text("{", encoding="utf-8")
    assert classify_project(tmp_path) is None


def test_discover_projects(tmp_path: Path) -> None:
    _touch(tmp_path / "b-api" / "pyproject.toml")
    _touch(tmp_path / "a-svc" / "go.mod")
    _touch(tmp_path / ".hidden" / "pyproject.toml")
    (tmp_path / "docs").mkdir()
    _touch(tmp_path / "README.md")

    projects = discover_projects(tmp_path)

    assert [p.name for p in projects] == ["a-svc", "b-api"]
    assert projects[0].path == str(tmp_path / "a-svc")


def test_discover_projects_missing_dir(tmp_path: Path) -> None:
    assert discover_projects(tmp_path / "nope") == []
