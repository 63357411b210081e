"""Tests for server_lifespan and the server logging setup."""

import logging
import subprocess
import sys
from unittest.mock import MagicMock, patch

import pytest

import qgis_terrain_mcp.server as mod
from qgis_terrain_mcp.server import LOG_FORMAT, configure_logging, server_lifespan


@pytest.mark.asyncio
async def test_lifespan_yields_connector(mock_connector):
    mock_connector.health_check.return_value = True
    with patch.object(mod, "create_connector", return_value=mock_connector):
        async with server_lifespan(MagicMock()) as ctx:
            assert ctx == {"connector": mock_connector}
            mock_connector.health_check.assert_awaited_once()


@pytest.mark.asyncio
async def test_lifespan_builds_config_from_env(mock_connector, monkeypatch):
    monkeypatch.setenv("QGIS_SERVER_URL", "http://qgis-env:5000")
    with patch.object(mod, "create_connector", return_value=mock_connector) as mock_create:
        async with server_lifespan(MagicMock()):
            pass

    config = mock_create.call_args.args[0]
    assert config.base_url == "http://qgis-env:5000"


@pytest.mark.asyncio
async def test_lifespan_warns_when_unhealthy(mock_connector, caplog):
    """Lifespan should not crash if QGIS is unavailable."""
    mock_connector.health_check.return_value = False
    with patch.object(mod, "create_connector", return_value=mock_connector), caplog.at_level(logging.WARNING):
        async with server_lifespan(MagicMock()) as ctx:
            assert ctx["connector"] is mock_connector

    assert any(record.levelname == "WARNING" for record in caplog.records)


@pytest.mark.asyncio
async def test_lifespan_closes_on_shutdown(mock_connector):
    mock_connector.health_check.return_value = True
    with patch.object(mod, "create_connector", return_value=mock_connector):
        async with server_lifespan(MagicMock()):
            pass

    mock_connector.aclose.assert_awaited_once()


@pytest.mark.asyncio
async def test_lifespan_closes_on_error(mock_connector):
    mock_connector.health_check.return_value = True
    with patch.object(mod, "create_connector", return_value=mock_connector):
        with pytest.raises(RuntimeError):
            async with server_lifespan(MagicMock()):
                raise RuntimeError("boom")

    mock_connector.aclose.assert_awaited_once()


def test_configure_logging_adds_file_handler(tmp_path):
    root = logging.getLogger()
    before = list(root.handlers)
    log_file = tmp_path / "qgis-mcp.log"
    try:
        configure_logging(str(log_file))
        added = [h for h in root.handlers if h not in before]
        assert any(isinstance(h, logging.FileHandler) for h in added)
    finally:
        for handler in root.handlers[:]:
            if handler not in before:
                root.removeHandler(handler)
                handler.close()


def test_console_logging_uses_log_format():
    """Importing the server leaves the root console handler on LOG_FORMAT."""
    script = (
        "import logging\n"
        "import qgis_terrain_mcp.server\n"
        "for handler in logging.getLogger().handlers:\n"
        "    print(type(handler).__name__, handler.formatter._fmt)\n"
    )
    result = subprocess.run([sys.executable, "-c", script], capture_output=True, text=True, check=True)

    lines = result.stdout.strip().splitlines()
    assert lines == [f"StreamHandler {LOG_FORMAT}"]
