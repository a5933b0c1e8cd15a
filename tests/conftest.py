"""Shared fixtures: fake process runners and on-disk workspace builders.

Nothing here spawns a real process or touches the network; every external
call goes through ``FakeRunner`` or an ``httpx.MockTransport``.
"""

from __future__ import annotations

import json
import os
from collections.abc import Callable, Iterator, Mapping, Sequence
from pathlib import Path
from typing import Any

import pytest

from rapidkit_workspace.models.command import CommandResult
from rapidkit_workspace.registry import WorkspaceRegistry
from rapidkit_workspace.settings import get_settings
from rapidkit_workspace.store.local import LocalJsonDocument

Responder = CommandResult | Callable[[list[str]], CommandResult]


class FakeRunner:
    """Records calls and answers from a table keyed by ``argv[0]``.

    Unknown executables answer like a missing binary (exit 127).
    """

    def __init__(self, responses: Mapping[str, Responder] | None = None) -> None:
        self.responses: dict[str, Responder] = dict(responses or {})
        self.calls: list[dict[str, Any]] = []

    async def __call__(
        self,
        command: Sequence[str],
        *,
        cwd: str | os.PathLike[str] | None = None,
        timeout: float,
        env: Mapping[str, str] | None = None,
    ) -> CommandResult:
        argv = [os.fspath(c) for c in command]
        self.calls.append({"command": argv, "cwd": os.fspath(cwd) if cwd else None, "timeout": timeout, "env": env})
        responder = self.responses.get(argv[0])
        if responder is None:
            return CommandResult(stderr="not found", exit_code=127, command=argv)
        result = responder(argv) if callable(responder) else responder
        return result.model_copy(update={"command": argv})

    @property
    def commands(self) -> list[list[str]]:
        return [c["command"] for c in self.calls]


def ok(stdout: str = "") -> CommandResult:
    return CommandResult(stdout=stdout, exit_code=0)


def failed(exit_code: int = 1, stderr: str = "boom") -> CommandResult:
    return CommandResult(stderr=stderr, exit_code=exit_code)


@pytest.fixture
def fake_runner() -> FakeRunner:
    return FakeRunner()


# ---------------------------------------------------------------------------
# Filesystem builders
# ---------------------------------------------------------------------------


def write_json_file(path: Path, data: Any) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(data), encoding="utf-8")
    return path


@pytest.fixture
def make_workspace(tmp_path: Path) -> Callable[..., Path]:
    """Create a directory carrying a marker.  ``marker=None`` skips the marker."""

    def _make(name: str = "ws", marker: dict[str, Any] | None = None, *, parent: Path | None = None) -> Path:
        ws = (parent or tmp_path) / name
        ws.mkdir(parents=True, exist_ok=True)
        if marker is not None:
            write_json_file(ws / ".rapidkit-workspace", marker)
        return ws

    return _make


@pytest.fixture
def registry_file(tmp_path: Path) -> Path:
    return tmp_path / "config" / "workspaces.json"


@pytest.fixture
def registry(registry_file: Path) -> WorkspaceRegistry:
    return WorkspaceRegistry(LocalJsonDocument(registry_file), now_ms=lambda: 1_700_000_000_000)


# ---------------------------------------------------------------------------
# Settings isolation
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def _clean_settings(monkeypatch: pytest.MonkeyPatch) -> Iterator[None]:
    """Drop RAPIDKIT_* env vars and the cached settings around every test."""
    for key in list(os.environ):
        if key.startswith("RAPIDKIT_"):
            monkeypatch.delenv(key)
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()
