"""Typed errors raised by the QGIS terrain connector.

All of them are ``McpError`` subclasses so that the MCP server can surface
their message to the client unchanged.
"""

from typing import Any

from mcp.shared.exceptions import McpError
from mcp.types import INTERNAL_ERROR, INVALID_PARAMS, ErrorData


class QgisConnectorError(McpError):
    """Base class for every error this package raises."""

    def __init__(self, message: str, code: int = INTERNAL_ERROR, data: Any = None):
        super().__init__(ErrorData(code=code, message=message, data=data))

    @property
    def message(self) -> str:
        return self.error.message


class TransportError(QgisConnectorError):
    """Network failure, timeout, bad HTTP status or undecodable body."""

    def __init__(self, message: str, attempts: int = 0):
        super().__init__(message, data={"attempts": attempts} if attempts else None)
        self.attempts = attempts


class DeadlineExceededError(TransportError):
    """The overall time budget for a dispatch call ran out."""


class ApplicationError(QgisConnectorError):
    """The service answered, but its envelope reports ``success: false``."""

    def __init__(self, message: str, remote_code: str | None = None):
        super().__init__(message, data={"code": remote_code} if remote_code else None)
        self.remote_code = remote_code


class ParameterValidationError(QgisConnectorError):
    """Input to a dispatch method was rejected before any request was sent."""

    def __init__(self, message: str):
        super().__init__(message, code=INVALID_PARAMS)
