"""Bridge to the RapidKit Python engine and the CLI's JSON commands.

The engine is reached with ``python -m rapidkit`` (``python3`` first, then
``python``).  JSON responses carry a ``schema_version``; anything that is not
a JSON object of the supported schema is reported as ``ok=False`` so callers
branch on the result instead of catching exceptions.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Sequence
from typing import TYPE_CHECKING, TypeVar

from pydantic import BaseModel, ValidationError

from rapidkit_workspace.execution.process import ProcessRunner, run_command
from rapidkit_workspace.models.command import (
    SUPPORTED_SCHEMA_VERSION,
    CommandResult,
    CoreVersionPayload,
    JsonResult,
    ModulesListPayload,
    ProjectDetectPayload,
)

if TYPE_CHECKING:
    import os

    from rapidkit_workspace.execution.bridge import RuntimeResolver

logger = logging.getLogger(__name__)

T = TypeVar("T", bound=BaseModel)


def parse_json_result(result: CommandResult, model: type[T]) -> JsonResult[T]:
    """Validate *result* stdout as a *model* payload of the supported schema."""
    failed = JsonResult[model](
        ok=False,
        command=result.command,
        exit_code=result.exit_code,
        stdout=result.stdout,
        stderr=result.stderr,
    )
    if not result.ok:
        return failed

    try:
        raw = json.loads(result.stdout.strip())
    except ValueError:
        logger.debug("Non-JSON output from %s", result.command)
        return failed
    if not isinstance(raw, dict):
        return failed
    if raw.get("schema_version") != SUPPORTED_SCHEMA_VERSION:
        logger.debug("Unsupported schema_version %r from %s", raw.get("schema_version"), result.command)
        return failed
    try:
        data = model.model_validate(raw)
    except ValidationError as exc:
        logger.debug("Payload from %s does not match %s: %s", result.command, model.__name__, exc)
        return failed
    return failed.model_copy(update={"ok": True, "data": data})


class PythonEngine:
    """Runs ``python -m rapidkit ... --json`` commands."""

    def __init__(
        self,
        *,
        python_commands: Sequence[str] = ("python3", "python"),
        timeout: float = 8.0,
        runner: ProcessRunner = run_command,
    ) -> None:
        self.python_commands = list(python_commands)
        self.timeout = timeout
        self._runner = runner

    async def run_json(
        self,
        args: Sequence[str],
        model: type[T],
        *,
        cwd: str | os.PathLike[str] | None = None,
        timeout: float | None = None,
    ) -> JsonResult[T]:
        """Try each interpreter until one exits 0, then parse its output.

        Only the first zero-exit interpreter's output is parsed; a parse
        failure there is final.
        """
        last: CommandResult | None = None
        for python in self.python_commands:
            result = await self._runner(
                [python, "-m", "rapidkit", *args],
                cwd=cwd,
                timeout=timeout if timeout is not None else self.timeout,
            )
            if result.ok:
                return parse_json_result(result, model)
            last = result

        if last is None:
            return JsonResult[model](ok=False)
        return parse_json_result(last, model)

    async def core_version(self, *, cwd: str | os.PathLike[str] | None = None) -> JsonResult[CoreVersionPayload]:
        return await self.run_json(["--version", "--json"], CoreVersionPayload, cwd=cwd)

    async def detect_project(
        self, path: str | os.PathLike[str], *, cwd: str | os.PathLike[str] | None = None
    ) -> JsonResult[ProjectDetectPayload]:
        return await self.run_json(["project", "detect", "--path", str(path), "--json"], ProjectDetectPayload, cwd=cwd)


async def list_modules(
    bridge: RuntimeResolver, workspace: str | os.PathLike[str] | None = None
) -> JsonResult[ModulesListPayload]:
    """``rapidkit modules list --json-schema 1`` through the command bridge."""
    result = await bridge.run(["modules", "list", "--json-schema", str(SUPPORTED_SCHEMA_VERSION)], workspace)
    return parse_json_result(result, ModulesListPayload)
