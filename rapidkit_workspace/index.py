"""Latest-version lookup against the package index (PyPI JSON API).

Best effort only: any network, HTTP or payload problem yields ``None`` so an
unreachable index never blocks the "is it installed" determination.
"""

from __future__ import annotations

import logging

import httpx

logger = logging.getLogger(__name__)


class PackageIndex:
    """Reads ``{index_url}/{package}/json`` and returns ``info.version``."""

    def __init__(
        self,
        package: str = "rapidkit-core",
        *,
        index_url: str = "https://pypi.org/pypi",
        timeout: float = 3.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.package = package
        self.index_url = index_url.rstrip("/")
        self.timeout = timeout
        self._transport = transport

    @property
    def url(self) -> str:
        return f"{self.index_url}/{self.package}/json"

    async def latest_version(self) -> str | None:
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                resp = await client.get(self.url)
                resp.raise_for_status()
                payload = resp.json()
        except (httpx.HTTPError, ValueError) as exc:
            logger.debug("Latest-version lookup for %s failed: %s", self.package, exc)
            return None

        info = payload.get("info") if isinstance(payload, dict) else None
        version = info.get("version") if isinstance(info, dict) else None
        return version if isinstance(version, str) and version else None
