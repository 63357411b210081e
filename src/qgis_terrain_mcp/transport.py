"""Single round trips to the QGIS processing service over HTTP.

Nothing here retries; see :mod:`qgis_terrain_mcp.retry`.
"""

import asyncio
import logging
from typing import Any, TypedDict

import httpx

from .config import ConnectorConfig
from .errors import TransportError

logger = logging.getLogger("QgisTransport")

HEALTH_PATH = "/health"
ALGORITHMS_PATH = "/algorithms"


class AlgorithmDescriptor(TypedDict, total=False):
    id: str
    name: str
    group: str
    description: str
    parameters: dict[str, Any]


class QgisTransport:
    """HTTP client bound to one :class:`ConnectorConfig`."""

    def __init__(self, config: ConnectorConfig, client: httpx.AsyncClient | None = None):
        self.config = config
        self.client = client or httpx.AsyncClient(
            base_url=config.base_url,
            timeout=config.timeout_seconds,
        )

    async def _request(self, method: str, path: str, **kwargs) -> httpx.Response:
        """One request, bounded end to end by ``config.timeout_ms``.

        httpx only times each connect/read/write step, so a server trickling
        its body would otherwise hold the request open indefinitely.
        """
        try:
            async with asyncio.timeout(self.config.timeout_seconds):
                return await self.client.request(method, path, **kwargs)
        except TimeoutError:
            raise TimeoutError(
                f"No complete response to {method} {path} within {self.config.timeout_ms}ms"
            ) from None

    async def send(self, path: str, body: Any) -> httpx.Response:
        """POST ``body`` as JSON to ``path``.

        Raises whatever httpx raises for connection problems,
        ``TimeoutError`` when the round trip outlasts the configured timeout,
        and ``httpx.HTTPStatusError`` for non-2xx answers.
        """
        response = await self._request("POST", path, json=body)
        response.raise_for_status()
        return response

    async def health_check(self) -> bool:
        """Return True only for a 2xx answer whose body has ``status == "ok"``."""
        try:
            response = await self._request("GET", HEALTH_PATH)
            if not response.is_success:
                logger.error(f"Health check failed with HTTP {response.status_code}")
                return False
            body = response.json()
            return isinstance(body, dict) and body.get("status") == "ok"
        except Exception as e:
            logger.error(f"Health check failed: {e}")
            return False

    async def list_algorithms(self) -> list[AlgorithmDescriptor]:
        """Fetch the algorithm catalogue; errors are raised, not swallowed."""
        try:
            response = await self._request("GET", ALGORITHMS_PATH)
            response.raise_for_status()
            body = response.json()
            if not isinstance(body, dict):
                raise ValueError(f"expected a JSON object, got {type(body).__name__}")
        except (httpx.HTTPError, TimeoutError, ValueError) as e:
            logger.error(f"Failed to get algorithms: {e}")
            raise TransportError(f"Failed to get QGIS algorithms: {e}") from e
        return body.get("algorithms") or []

    async def aclose(self):
        await self.client.aclose()
