"""Unit tests for loguru setup and the stdlib intercept."""

from __future__ import annotations

import logging
import sys
from collections.abc import Iterator
from pathlib import Path

import pytest
from conftest import ok
from loguru import logger

from rapidkit_workspace.execution.engine import parse_json_result
from rapidkit_workspace.log import level_filter, setup_logging
from rapidkit_workspace.marker import marker_path, read_marker
from rapidkit_workspace.models.command import CoreVersionPayload


@pytest.fixture
def restore_logging() -> Iterator[None]:
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    logger.remove()
    logger.add(lambda message: sys.stderr.write(message))
    root.handlers[:] = handlers
    root.setLevel(level)


def test_level_filter() -> None:
    assert level_filter("info") == {"": "INFO"}
    assert level_filter("WARNING", {"rapidkit_workspace.execution": "debug"}) == {
        "": "WARNING",
        "rapidkit_workspace.execution": "DEBUG",
    }


def test_module_override_applies_to_stdlib_records(
    restore_logging, capsys: pytest.CaptureFixture[str], tmp_path: Path
) -> None:
    setup_logging("WARNING", {"rapidkit_workspace.execution": "DEBUG"})
    marker_path(tmp_path).write_text("{not json", encoding="utf-8")

    parse_json_result(ok("not json"), CoreVersionPayload)
    assert read_marker(tmp_path) is None

    err = capsys.readouterr().err
    assert "Non-JSON output" in err
    assert "rapidkit_workspace.execution.engine:parse_json_result" in err
    assert "Ignoring unreadable marker" not in err


def test_module_override_can_raise_the_level(restore_logging, capsys: pytest.CaptureFixture[str]) -> None:
    setup_logging("DEBUG", {"rapidkit_workspace.execution": "ERROR"})

    parse_json_result(ok("not json"), CoreVersionPayload)
    logging.getLogger("rapidkit_workspace.index").warning("index unreachable")

    err = capsys.readouterr().err
    assert "Non-JSON output" not in err
    assert "index unreachable" in err
