"""Bounded subprocess execution.

Every external call goes through ``run_command``: argv-based (no shell),
output captured, and bounded by a timeout after which the process is killed.
Failures are encoded in the exit code instead of raised:

- ``124`` -- timed out
- ``127`` -- executable missing or not runnable
"""

from __future__ import annotations

import logging
import os
from collections.abc import Mapping, Sequence
from typing import Protocol

import anyio

from rapidkit_workspace.models.command import CommandResult

logger = logging.getLogger(__name__)

EXIT_TIMEOUT = 124
EXIT_NOT_FOUND = 127


class ProcessRunner(Protocol):
    """Signature shared by ``run_command`` and test doubles."""

    async def __call__(
        self,
        command: Sequence[str],
        *,
        cwd: str | os.PathLike[str] | None = None,
        timeout: float,
        env: Mapping[str, str] | None = None,
    ) -> CommandResult: ...


async def run_command(
    command: Sequence[str],
    *,
    cwd: str | os.PathLike[str] | None = None,
    timeout: float,
    env: Mapping[str, str] | None = None,
) -> CommandResult:
    """Run *command* to completion or until *timeout* seconds elapse."""
    argv = [os.fspath(part) for part in command]
    logger.debug("Running %s (cwd=%s, timeout=%ss)", argv, cwd, timeout)
    try:
        with anyio.fail_after(timeout):
            completed = await anyio.run_process(
                argv,
                cwd=cwd,
                env={**os.environ, **env} if env else None,
                check=False,
            )
    except TimeoutError:
        logger.debug("Timed out after %ss: %s", timeout, argv)
        return CommandResult(stderr=f"Timed out after {timeout}s", exit_code=EXIT_TIMEOUT, command=argv)
    except OSError as exc:
        logger.debug("Cannot execute %s: %s", argv[0], exc)
        return CommandResult(stderr=str(exc), exit_code=EXIT_NOT_FOUND, command=argv)

    return CommandResult(
        stdout=completed.stdout.decode("utf-8", errors="replace"),
        stderr=completed.stderr.decode("utf-8", errors="replace"),
        exit_code=completed.returncode,
        command=argv,
    )
