"""Execution layer: subprocess primitive, runtime tiers and engine bridge."""

from rapidkit_workspace.execution.bridge import RuntimeResolver
from rapidkit_workspace.execution.engine import PythonEngine, list_modules, parse_json_result
from rapidkit_workspace.execution.process import run_command

__all__ = ["PythonEngine", "RuntimeResolver", "list_modules", "parse_json_result", "run_command"]
