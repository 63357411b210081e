"""Bounded retries with exponential backoff around one async operation."""

import asyncio
import logging
import random
import time
from collections.abc import Awaitable, Callable
from typing import TypeVar

from .config import ConnectorConfig
from .errors import DeadlineExceededError, QgisConnectorError, TransportError

logger = logging.getLogger("QgisRetry")

T = TypeVar("T")

Sleep = Callable[[float], Awaitable[None]]
Clock = Callable[[], float]


class RetryExecutor:
    """Runs an operation up to ``config.max_retries`` times in total.

    The delay after failed attempt ``k`` is ``2**k`` seconds (2s, 4s, 8s, ...),
    optionally capped by ``max_delay_ms`` and randomised by ``jitter``.
    Operations must be safe to repeat: there is no deduplication.
    """

    def __init__(
        self,
        config: ConnectorConfig,
        sleep: Sleep = asyncio.sleep,
        clock: Clock = time.monotonic,
        rng: random.Random | None = None,
    ):
        self.config = config
        self._sleep = sleep
        self._clock = clock
        self._rng = rng or random.Random()

    def backoff_delay_ms(self, attempt: int) -> float:
        """Delay in milliseconds to wait after failed attempt number ``attempt``."""
        delay = float(2**attempt * 1000)
        if self.config.max_delay_ms is not None:
            delay = min(delay, float(self.config.max_delay_ms))
        if self.config.jitter:
            delay = self._rng.uniform(0, delay)
        return delay

    async def execute_with_retry(self, operation: Callable[[], Awaitable[T]]) -> T:
        attempt = 0
        last_error: BaseException | None = None
        started = self._clock()
        deadline_ms = self.config.deadline_ms

        while True:
            try:
                return await operation()
            except Exception as e:
                last_error = e
                attempt += 1

            if attempt >= self.config.max_retries:
                break

            delay_ms = self.backoff_delay_ms(attempt)
            if deadline_ms is not None:
                elapsed_ms = (self._clock() - started) * 1000
                if elapsed_ms + delay_ms >= deadline_ms:
                    raise self._deadline_exceeded(attempt, last_error) from last_error

            logger.warning(
                f"Request failed, retrying in {delay_ms:.0f}ms ({attempt}/{self.config.max_retries}): {last_error}"
            )
            await self._sleep(delay_ms / 1000)

            if deadline_ms is not None and (self._clock() - started) * 1000 >= deadline_ms:
                raise self._deadline_exceeded(attempt, last_error) from last_error

        logger.error(f"Request failed after {attempt} retries: {last_error}")
        if isinstance(last_error, QgisConnectorError):
            raise last_error
        raise TransportError(
            f"QGIS request failed after {attempt} retries: {last_error}", attempts=attempt
        ) from last_error

    def _deadline_exceeded(self, attempt: int, last_error: BaseException | None) -> DeadlineExceededError:
        deadline_ms = self.config.deadline_ms
        logger.error(f"Deadline of {deadline_ms}ms exhausted after {attempt} attempts: {last_error}")
        return DeadlineExceededError(
            f"QGIS request exceeded its {deadline_ms}ms deadline after {attempt} attempts: {last_error}",
            attempts=attempt,
        )
