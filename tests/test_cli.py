"""CLI tests via click's CliRunner, with services wired to fakes."""

from __future__ import annotations

import dataclasses
import json
from pathlib import Path

import httpx
import pytest
from click.testing import CliRunner
from conftest import FakeRunner, failed, ok

from rapidkit_workspace.cli import ClickNotifier, main
from rapidkit_workspace.context import AppContext, build_context
from rapidkit_workspace.execution.bridge import RuntimeResolver
from rapidkit_workspace.index import PackageIndex
from rapidkit_workspace.marker import marker_path
from rapidkit_workspace.settings import WorkspaceSettings
from rapidkit_workspace.versions import VersionCache

MARKER = {"signature": "RAPIDKIT_WORKSPACE"}


@pytest.fixture
def fake_runner() -> FakeRunner:
    return FakeRunner({"npx": ok("from npx\n")})


@pytest.fixture
def app(tmp_path: Path, fake_runner: FakeRunner) -> AppContext:
    settings = WorkspaceSettings(registry_dir=tmp_path / "config", discovery_dirs=[tmp_path / "Projects"])
    ctx = build_context(settings, notifier=ClickNotifier())
    bridge = RuntimeResolver(runner=fake_runner, which=lambda _name: None, platform="linux")
    transport = httpx.MockTransport(lambda _req: httpx.Response(200, json={"info": {"version": "2.0.0"}}))
    index = PackageIndex(transport=transport)
    return dataclasses.replace(ctx, bridge=bridge, index=index, versions=VersionCache(bridge, index))


@pytest.fixture
def invoke(app: AppContext):
    runner = CliRunner()

    def _invoke(*args: str):
        return runner.invoke(main, [str(a) for a in args], obj=app)

    return _invoke


# ---------------------------------------------------------------------------
# root / workspaces
# ---------------------------------------------------------------------------


def test_root(invoke, make_workspace) -> None:
    ws = make_workspace("ws", marker=MARKER)
    (ws / "api" / "src").mkdir(parents=True)

    result = invoke("root", ws / "api" / "src")

    assert result.exit_code == 0, result.output
    assert result.output.strip() == str(ws)


def test_root_not_found(invoke, tmp_path: Path) -> None:
    result = invoke("root", tmp_path / "nothing")

    assert result.exit_code == 1
    assert "No workspace found" in result.output


def test_add_list_remove(invoke, make_workspace, tmp_path: Path) -> None:
    ws = make_workspace("shop", marker=MARKER)

    result = invoke("workspaces", "add", ws)
    assert result.exit_code == 0, result.output
    assert "Registered shop" in result.output

    result = invoke("workspaces", "list")
    assert "shop" in result.output
    assert str(ws) in result.output

    result = invoke("workspaces", "list", "--json")
    records = json.loads(result.output)
    assert records[0]["path"] == str(ws)
    assert "lastAccessed" in records[0]

    result = invoke("workspaces", "remove", ws)
    assert "Removed" in result.output
    assert "No workspaces registered." in invoke("workspaces", "list").output

    on_disk = json.loads((tmp_path / "config" / "workspaces.json").read_text(encoding="utf-8"))
    assert on_disk == {"workspaces": []}


def test_add_plain_directory(invoke, tmp_path: Path) -> None:
    plain = tmp_path / "plain"
    plain.mkdir()

    result = invoke("workspaces", "add", plain)

    assert result.exit_code == 1
    assert "Not a RapidKit workspace" in result.output


def test_add_missing_path(invoke, tmp_path: Path) -> None:
    result = invoke("workspaces", "add", tmp_path / "missing")

    assert result.exit_code == 1
    assert "Path does not exist" in result.output


def test_touch_unregistered(invoke, make_workspace) -> None:
    ws = make_workspace("ws", marker=MARKER)

    result = invoke("workspaces", "touch", ws)

    assert result.exit_code == 1
    assert "is not registered" in result.output


def test_discover(invoke, make_workspace, tmp_path: Path) -> None:
    make_workspace("found", marker=MARKER, parent=tmp_path / "Projects")

    result = invoke("workspaces", "discover")

    assert result.exit_code == 0, result.output
    assert "Discovered found" in result.output
    assert "1 new workspace(s)." in result.output


def test_open_registers_and_tracks(invoke, make_workspace) -> None:
    ws = make_workspace("ws", marker=MARKER)

    result = invoke("workspaces", "open", ws)

    assert result.exit_code == 0, result.output
    marker = json.loads(marker_path(ws).read_text(encoding="utf-8"))
    assert marker["metadata"]["vscode"]["openCount"] == 1
    listed = json.loads(invoke("workspaces", "list", "--json").output)
    assert [r["name"] for r in listed] == ["ws"]


# ---------------------------------------------------------------------------
# marker
# ---------------------------------------------------------------------------


def test_marker_init_and_show(invoke, tmp_path: Path) -> None:
    ws = tmp_path / "fresh"
    ws.mkdir()

    result = invoke("marker", "init", ws, "--name", "Fresh")
    assert result.exit_code == 0, result.output

    result = invoke("marker", "show", ws)
    shown = json.loads(result.output)
    assert shown["signature"] == "RAPIDKIT_WORKSPACE"
    assert shown["name"] == "Fresh"


def test_marker_show_missing(invoke, tmp_path: Path) -> None:
    result = invoke("marker", "show", tmp_path)

    assert result.exit_code == 1
    assert "No readable marker" in result.output


def test_marker_show_unrecognised(invoke, make_workspace) -> None:
    ws = make_workspace("odd", marker={"signature": "SOMETHING_ELSE"})

    result = invoke("marker", "show", ws)

    assert result.exit_code == 0
    assert "SOMETHING_ELSE" in result.output
    assert "not recognised" in result.output


# ---------------------------------------------------------------------------
# run / version / validate / modules
# ---------------------------------------------------------------------------


def test_run_passes_args_through(invoke, fake_runner: FakeRunner, tmp_path: Path) -> None:
    result = invoke("run", "--workspace", tmp_path, "--", "create", "--json")

    assert result.exit_code == 0, result.output
    assert result.output == "from npx\n"
    assert fake_runner.commands == [["npx", "--yes", "rapidkit", "create", "--json"]]


def test_run_propagates_exit_code(invoke, fake_runner: FakeRunner, tmp_path: Path) -> None:
    fake_runner.responses["npx"] = failed(5, "bad things\n")

    result = invoke("run", "--workspace", tmp_path, "doctor")

    assert result.exit_code == 5
    assert "bad things" in result.output


def test_runtime_reports_tier_without_running(invoke, fake_runner: FakeRunner, tmp_path: Path) -> None:
    venv_bin = tmp_path / "ws" / ".venv" / "bin" / "rapidkit"
    venv_bin.parent.mkdir(parents=True)
    venv_bin.write_text("", encoding="utf-8")

    result = invoke("runtime", "--workspace", tmp_path / "ws")
    assert result.exit_code == 0, result.output
    assert result.output == f"workspace\t{venv_bin}\n"

    result = invoke("runtime", "--workspace", tmp_path)
    assert result.output == "fetch\tnpx --yes rapidkit\n"

    assert fake_runner.calls == []


def test_version(invoke, fake_runner: FakeRunner, tmp_path: Path) -> None:
    runner = tmp_path / "ws" / ".venv" / "bin" / "rapidkit"
    runner.parent.mkdir(parents=True)
    runner.write_text("", encoding="utf-8")
    fake_runner.responses[str(runner)] = ok("rapidkit 1.0.0")

    result = invoke("version", tmp_path / "ws")
    assert result.exit_code == 0, result.output
    assert result.output.strip() == "Update available: v2.0.0 (installed: v1.0.0)"

    result = invoke("version", tmp_path / "ws", "--json")
    info = json.loads(result.output)
    assert info["status"] == "update-available"
    assert info["location"] == "workspace"


def test_validate_without_venv(invoke, tmp_path: Path) -> None:
    result = invoke("validate", tmp_path)

    assert result.exit_code == 1
    assert ".venv not found" in result.output


def test_modules(invoke, fake_runner: FakeRunner, tmp_path: Path) -> None:
    fake_runner.responses["npx"] = ok(json.dumps({"schema_version": 1, "modules": [{"name": "auth"}]}))

    result = invoke("modules", "--workspace", tmp_path)

    assert result.exit_code == 0, result.output
    assert json.loads(result.output) == [{"name": "auth"}]


def test_modules_unsupported_schema(invoke, fake_runner: FakeRunner, tmp_path: Path) -> None:
    fake_runner.responses["npx"] = ok(json.dumps({"schema_version": 2, "modules": []}))

    result = invoke("modules", "--workspace", tmp_path)

    assert result.exit_code == 1
