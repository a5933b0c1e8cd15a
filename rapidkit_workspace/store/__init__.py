"""JSON document stores for the registry and workspace markers."""

from rapidkit_workspace.store.base import JsonDocument
from rapidkit_workspace.store.local import LocalJsonDocument

__all__ = ["JsonDocument", "LocalJsonDocument"]
