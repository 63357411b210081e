"""Shared fixtures for QGIS terrain MCP tests."""

import json
from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest

from qgis_terrain_mcp.config import ConnectorConfig
from qgis_terrain_mcp.connector import QgisConnector
from qgis_terrain_mcp.retry import RetryExecutor
from qgis_terrain_mcp.transport import QgisTransport

BASE_URL = "http://qgis.test"


@pytest.fixture
def config():
    return ConnectorConfig(base_url=BASE_URL, max_retries=3)


@pytest.fixture
def sleeps():
    """Backoff delays observed by fake_sleep, in milliseconds."""
    return []


@pytest.fixture
def fake_sleep(sleeps):
    async def _sleep(seconds):
        sleeps.append(seconds * 1000)

    return _sleep


@pytest.fixture
def json_response():
    """Factory for httpx responses with a JSON body."""

    def _make(body, status_code=200):
        return httpx.Response(status_code, content=json.dumps(body).encode("utf-8"))

    return _make


@pytest.fixture
def make_transport(config):
    """Build a QgisTransport whose HTTP calls are answered by ``handler``."""

    def _make(handler, cfg=None):
        cfg = cfg or config
        client = httpx.AsyncClient(base_url=cfg.base_url, transport=httpx.MockTransport(handler))
        return QgisTransport(cfg, client=client)

    return _make


@pytest.fixture
def make_connector(config, make_transport, fake_sleep):
    """Build a QgisConnector over a mock HTTP handler with a fake sleep."""

    def _make(handler, cfg=None):
        cfg = cfg or config
        return QgisConnector(cfg, transport=make_transport(handler, cfg), retry=RetryExecutor(cfg, sleep=fake_sleep))

    return _make


@pytest.fixture
def mock_connector():
    """Connector stand-in with async methods."""
    conn = MagicMock(spec=QgisConnector)
    for name in (
        "health_check",
        "list_algorithms",
        "run_algorithm",
        "process",
        "slope_analysis",
        "flow_path_analysis",
        "watershed_analysis",
        "aspect_analysis",
        "viewshed_analysis",
        "aclose",
    ):
        setattr(conn, name, AsyncMock())
    conn.config = ConnectorConfig(base_url=BASE_URL)
    return conn


@pytest.fixture
def mock_ctx(mock_connector):
    """Mock MCP Context whose lifespan context holds the mock connector."""
    ctx = MagicMock()
    ctx.request_context.lifespan_context = {"connector": mock_connector}
    return ctx
