"""MCP adapter for terrain analysis on a remote QGIS processing service."""

from .config import ConnectorConfig
from .connector import QgisConnector, ResponseEnvelope, create_connector
from .errors import (
    ApplicationError,
    DeadlineExceededError,
    ParameterValidationError,
    QgisConnectorError,
    TransportError,
)
from .retry import RetryExecutor
from .transport import QgisTransport

__all__ = [
    "ApplicationError",
    "ConnectorConfig",
    "DeadlineExceededError",
    "ParameterValidationError",
    "QgisConnector",
    "QgisConnectorError",
    "QgisTransport",
    "ResponseEnvelope",
    "RetryExecutor",
    "TransportError",
    "create_connector",
]
