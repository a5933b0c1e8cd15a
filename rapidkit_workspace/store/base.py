"""JSON document store interface.

The registry file and workspace markers are both small JSON documents on
local disk, shared with other processes (editor windows, the npm CLI) without
any locking.  The interface is async so callers never block the event loop on
file I/O.
"""

from __future__ import annotations

from typing import Any, Protocol, runtime_checkable


@runtime_checkable
class JsonDocument(Protocol):
    """Async protocol for one JSON file."""

    async def read(self) -> Any:
        """Parse and return the document.

        Raises ``FileNotFoundError`` if missing and ``ValueError`` (including
        ``json.JSONDecodeError``) if the content is not JSON.
        """
        ...

    async def write(self, data: Any) -> None:
        """Replace the document atomically."""
        ...

    async def exists(self) -> bool: ...
