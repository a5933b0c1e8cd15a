"""User-facing notifications.

Services never talk to a UI directly; they report refusals (for example
"path does not exist") through a ``Notifier``.  The editor host or the CLI
supplies its own implementation.
"""

from __future__ import annotations

from typing import Protocol

from loguru import logger


class Notifier(Protocol):
    def error(self, message: str) -> None: ...

    def warning(self, message: str) -> None: ...


class LogNotifier:
    """Default notifier: user-facing messages end up in the log."""

    def error(self, message: str) -> None:
        logger.error(message)

    def warning(self, message: str) -> None:
        logger.warning(message)
