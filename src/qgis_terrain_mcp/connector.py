"""Dispatch surface for the QGIS processing service.

Every algorithm request goes through :meth:`QgisConnector._dispatch`, which
sends it via the retry executor and turns the decoded body into a response
envelope. Transport failures are retried; an envelope with
``success: false`` is not.
"""

import functools
import logging
import re
from collections.abc import Mapping
from typing import Any, NotRequired, TypedDict, TypeVar

from pydantic import BaseModel, ValidationError

from .config import ConnectorConfig
from .errors import ApplicationError, ParameterValidationError, QgisConnectorError
from .params import (
    AspectAnalysisParams,
    FlowPathAnalysisParams,
    SlopeAnalysisParams,
    ViewshedAnalysisParams,
    WatershedAnalysisParams,
)
from .retry import RetryExecutor
from .transport import AlgorithmDescriptor, QgisTransport

logger = logging.getLogger("QgisConnector")

RUN_ALGORITHM_PATH = "/process/run_algorithm"
_ALGORITHM_NAME = re.compile(r"^[A-Za-z0-9_]+$")

M = TypeVar("M", bound=BaseModel)


class EnvelopeError(TypedDict):
    message: str
    code: NotRequired[str]


class ResponseEnvelope(TypedDict):
    success: bool
    data: NotRequired[Any]
    error: NotRequired[EnvelopeError]


def logged(func):
    """Log a dispatch call's parameters before it runs and its outcome after."""

    @functools.wraps(func)
    async def wrapper(self, label: str, path: str, body: Any):
        logger.info(f"Performing {label}: {body}")
        try:
            result = await func(self, label, path, body)
        except QgisConnectorError as e:
            logger.error(f"Error performing {label.lower()}: {e.message}")
            raise
        logger.info(f"{label} completed successfully")
        return result

    return wrapper


def _validate(model: type[M], params: M | Mapping[str, Any]) -> dict[str, Any]:
    try:
        instance = params if isinstance(params, model) else model.model_validate(params)
    except ValidationError as e:
        raise ParameterValidationError(f"Invalid {model.__name__}: {e}") from e
    return instance.model_dump(mode="json", exclude_none=True)


class QgisConnector:
    """Client for the QGIS HTTP API.

    Create one per process with :func:`create_connector` and close it with
    :meth:`aclose` (or use it as an async context manager).
    """

    def __init__(
        self,
        config: ConnectorConfig,
        transport: QgisTransport | None = None,
        retry: RetryExecutor | None = None,
    ):
        self.config = config
        self.transport = transport or QgisTransport(config)
        self.retry = retry or RetryExecutor(config)
        logger.info(f"QGIS connector initialized with base URL: {config.base_url}")

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc_info):
        await self.aclose()

    async def aclose(self):
        await self.transport.aclose()

    async def health_check(self) -> bool:
        return await self.transport.health_check()

    async def list_algorithms(self) -> list[AlgorithmDescriptor]:
        return await self.transport.list_algorithms()

    @logged
    async def _dispatch(self, label: str, path: str, body: Any) -> ResponseEnvelope:
        """Send ``body`` to ``path`` and return the decoded envelope.

        A successful envelope is returned exactly as the service sent it; a
        ``{"success": true}`` body without ``data`` is passed through as-is.
        """

        async def attempt():
            response = await self.transport.send(path, body)
            decoded = response.json()
            if not isinstance(decoded, dict):
                raise ValueError(f"expected a JSON object from {path}, got {type(decoded).__name__}")
            return decoded

        envelope = await self.retry.execute_with_retry(attempt)
        if not envelope.get("success"):
            error = envelope.get("error") or {}
            if not isinstance(error, dict):
                error = {"message": str(error)}
            message = error.get("message") or "Unknown error"
            raise ApplicationError(f"{label} failed: {message}", remote_code=error.get("code"))
        return envelope

    async def run_algorithm(self, algorithm: str, parameters: Mapping[str, Any] | None = None) -> ResponseEnvelope:
        """Run any QGIS processing algorithm by its identifier, e.g. ``native:buffer``."""
        if not algorithm:
            raise ParameterValidationError("Algorithm name must not be empty")
        body = {"algorithm": algorithm, "parameters": dict(parameters or {})}
        return await self._dispatch("Algorithm execution", RUN_ALGORITHM_PATH, body)

    async def process(self, algorithm: str, params: Mapping[str, Any]) -> ResponseEnvelope:
        """POST ``params`` to ``/process/{algorithm}``, e.g. ``runoff_analysis``."""
        if not _ALGORITHM_NAME.match(algorithm or ""):
            raise ParameterValidationError(f"Invalid algorithm path: {algorithm!r}")
        label = algorithm.replace("_", " ").capitalize()
        return await self._dispatch(label, f"/process/{algorithm}", dict(params))

    async def slope_analysis(self, params: SlopeAnalysisParams | Mapping[str, Any]) -> ResponseEnvelope:
        return await self.process("slope_analysis", _validate(SlopeAnalysisParams, params))

    async def flow_path_analysis(self, params: FlowPathAnalysisParams | Mapping[str, Any]) -> ResponseEnvelope:
        return await self.process("flow_path_analysis", _validate(FlowPathAnalysisParams, params))

    async def watershed_analysis(self, params: WatershedAnalysisParams | Mapping[str, Any]) -> ResponseEnvelope:
        return await self.process("watershed_analysis", _validate(WatershedAnalysisParams, params))

    async def aspect_analysis(self, params: AspectAnalysisParams | Mapping[str, Any]) -> ResponseEnvelope:
        return await self.process("aspect_analysis", _validate(AspectAnalysisParams, params))

    async def viewshed_analysis(self, params: ViewshedAnalysisParams | Mapping[str, Any]) -> ResponseEnvelope:
        return await self.process("viewshed_analysis", _validate(ViewshedAnalysisParams, params))


def create_connector(config: ConnectorConfig | None = None) -> QgisConnector:
    """Build a connector, reading the environment only when no config is given."""
    return QgisConnector(config or ConnectorConfig.from_env())
