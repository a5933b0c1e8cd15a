"""Logging configuration using loguru.

Intercepts stdlib logging so that modules using ``logging.getLogger`` and
third-party libraries (httpx, anyio) all flow through loguru with a unified
format.  Records keep the name of the module that emitted them, so a
per-module level such as ``{"rapidkit_workspace.execution": "DEBUG"}`` also
applies to stdlib-logged records.
"""

from __future__ import annotations

import inspect
import logging
import sys
from collections.abc import Mapping

from loguru import logger


class _InterceptHandler(logging.Handler):
    """Bridge stdlib logging records into loguru."""

    def emit(self, record: logging.LogRecord) -> None:
        try:
            level: str | int = logger.level(record.levelname).name
        except ValueError:
            level = record.levelno

        # Skip this handler and the logging module itself
        frame, depth = inspect.currentframe(), 0
        while frame:
            filename = frame.f_code.co_filename
            in_logging = filename == logging.__file__
            in_bootstrap = "importlib" in filename and "_bootstrap" in filename
            if depth > 0 and not (in_logging or in_bootstrap):
                break
            frame = frame.f_back
            depth += 1

        logger.opt(depth=depth, exception=record.exc_info).log(level, record.getMessage())


def level_filter(level: str, module_levels: Mapping[str, str] | None = None) -> dict[str, str]:
    """Loguru filter mapping: ``""`` is the default, longer module prefixes win."""
    levels = {"": level.upper()}
    for module, module_level in (module_levels or {}).items():
        levels[module] = module_level.upper()
    return levels


def setup_logging(level: str = "INFO", module_levels: Mapping[str, str] | None = None) -> None:
    """Configure loguru as the sole logging sink.

    Call this once at process startup.  Output goes to stderr so that JSON
    printed by CLI commands on stdout stays machine-readable.  *module_levels*
    overrides *level* for a module and its submodules, in either direction.
    """
    levels = level_filter(level, module_levels)

    logger.remove()
    logger.add(
        sys.stderr,
        level=0,
        filter=levels,
        format=(
            "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | "
            "<level>{level: <8}</level> | "
            "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - "
            "<level>{message}</level>"
        ),
    )

    logging.basicConfig(handlers=[_InterceptHandler()], level=0, force=True)

    # Quiet down noisy libraries
    for name in ("httpx", "httpcore"):
        logging.getLogger(name).setLevel(logging.WARNING)

    logger.debug("Logging initialised (levels={})", levels)
