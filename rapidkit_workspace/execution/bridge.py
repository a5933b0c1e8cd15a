"""Command bridge -- runs the ``rapidkit`` CLI through the best available runtime.

Resolution tiers, tried strictly in order (first success wins):

1. **workspace**: ``<workspace>/.venv/bin/rapidkit`` (``Scripts\\rapidkit.exe``
   on Windows), run with ``cwd`` set to the workspace.  Only attempted when
   the runner file exists.
2. **global**: ``rapidkit`` resolved on ``PATH``.  Only attempted when found.
3. **fetch**: ``npx --yes rapidkit ...``.  Always available; costs a network
   fetch the first time.

Each spawned attempt is bounded by a timeout.  A failed attempt (non-zero
exit, timeout, spawn error) falls through to the next tier; a timed-out tier
is never retried.  Exactly one tier's result is returned, tagged with
``CommandResult.tier``.  When every tier fails, the last attempt's result is
returned so its exit code reaches the caller.  If no tier resolves at all
the result carries exit code 127.

Tiers are sequential on purpose: tier N must be proven unusable before tier
N+1 is spawned, which keeps precedence deterministic and avoids concurrent
processes fighting over the same workspace.
"""

from __future__ import annotations

import logging
import os
import shutil
import sys
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass
from functools import partial
from pathlib import Path

from anyio import to_thread

from rapidkit_workspace.execution.platform import find_workspace_runners
from rapidkit_workspace.execution.process import EXIT_NOT_FOUND, ProcessRunner, run_command
from rapidkit_workspace.models.command import CommandResult
from rapidkit_workspace.models.enums import RuntimeTier

logger = logging.getLogger(__name__)

# Tell the CLI it is not attached to an interactive terminal.
NON_INTERACTIVE_ENV = {"CI": "true"}


@dataclass(frozen=True)
class Invocation:
    command: list[str]
    cwd: str | None


@dataclass(frozen=True)
class Attempt:
    """One runtime tier.  ``resolve`` returns ``None`` when the tier is unavailable."""

    tier: RuntimeTier
    resolve: Callable[[], Awaitable[Invocation | None]]


class RuntimeResolver:
    """Resolves and runs the external tool for a workspace context."""

    def __init__(
        self,
        *,
        tool: str = "rapidkit",
        fetch_runner: str = "npx",
        timeout: float = 15.0,
        runner: ProcessRunner = run_command,
        which: Callable[[str], str | None] = shutil.which,
        platform: str = sys.platform,
    ) -> None:
        self.tool = tool
        self.fetch_runner = fetch_runner
        self.timeout = timeout
        self._runner = runner
        self._which = which
        self._platform = platform

    # -- Tier lookups ----------------------------------------------------------

    async def workspace_runners(self, workspace: str | os.PathLike[str]) -> list[Path]:
        """Existing ``.venv`` runners for *workspace*, in priority order."""
        return await to_thread.run_sync(partial(find_workspace_runners, workspace, self.tool, self._platform))

    def global_executable(self) -> str | None:
        return self._which(self.tool)

    def attempts(
        self,
        args: Sequence[str],
        workspace: str | os.PathLike[str] | None = None,
        cwd: str | os.PathLike[str] | None = None,
    ) -> list[Attempt]:
        """Ordered tier attempts for one logical call."""
        args = list(args)
        default_cwd = os.fspath(workspace) if workspace is not None else (os.fspath(cwd) if cwd else None)

        async def _workspace() -> Invocation | None:
            if workspace is None:
                return None
            runners = await self.workspace_runners(workspace)
            if not runners:
                return None
            return Invocation([str(runners[0]), *args], os.fspath(workspace))

        async def _global() -> Invocation | None:
            executable = self.global_executable()
            if executable is None:
                return None
            return Invocation([executable, *args], default_cwd)

        async def _fetch() -> Invocation | None:
            return Invocation([self.fetch_runner, "--yes", self.tool, *args], default_cwd)

        return [
            Attempt(RuntimeTier.WORKSPACE, _workspace),
            Attempt(RuntimeTier.GLOBAL, _global),
            Attempt(RuntimeTier.FETCH, _fetch),
        ]

    async def preferred(
        self, workspace: str | os.PathLike[str] | None = None
    ) -> tuple[RuntimeTier, Invocation] | None:
        """First available tier for *workspace*, without running anything."""
        for attempt in self.attempts([], workspace):
            invocation = await attempt.resolve()
            if invocation is not None:
                return attempt.tier, invocation
        return None

    # -- Execution -------------------------------------------------------------

    async def run(
        self,
        args: Sequence[str],
        workspace: str | os.PathLike[str] | None = None,
        *,
        cwd: str | os.PathLike[str] | None = None,
        timeout: float | None = None,
    ) -> CommandResult:
        """Run ``rapidkit <args>`` through the first tier that succeeds."""
        timeout = timeout if timeout is not None else self.timeout
        last: CommandResult | None = None

        for attempt in self.attempts(args, workspace, cwd):
            invocation = await attempt.resolve()
            if invocation is None:
                logger.debug("Tier %s unavailable, skipping", attempt.tier)
                continue

            result = await self._runner(
                invocation.command,
                cwd=invocation.cwd,
                timeout=timeout,
                env=NON_INTERACTIVE_ENV,
            )
            result = result.model_copy(update={"tier": attempt.tier, "command": invocation.command})
            if result.ok:
                logger.debug("Tier %s succeeded: %s", attempt.tier, invocation.command)
                return result

            logger.info("Tier %s failed (exit=%d), falling through", attempt.tier, result.exit_code)
            last = result

        if last is None:
            logger.warning("No runtime tier available for %s", list(args))
            return CommandResult(stderr="No runtime tier available", exit_code=EXIT_NOT_FOUND, command=list(args))
        logger.warning("All runtime tiers failed for %s (exit=%d)", list(args), last.exit_code)
        return last

    async def probe(
        self,
        command: Sequence[str],
        *,
        cwd: str | os.PathLike[str] | None = None,
        timeout: float | None = None,
    ) -> CommandResult:
        """Run one bounded subprocess directly, without tier resolution."""
        return await self._runner(command, cwd=cwd, timeout=timeout if timeout is not None else self.timeout)
