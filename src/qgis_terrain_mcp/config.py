"""Connection settings for the QGIS processing service."""

import os
from collections.abc import Mapping
from dataclasses import dataclass

DEFAULT_BASE_URL = "http://localhost:5000"
DEFAULT_TIMEOUT_MS = 120_000  # generous, terrain algorithms on large DEMs are slow
DEFAULT_MAX_RETRIES = 3

ENV_BASE_URL = "QGIS_SERVER_URL"
ENV_TIMEOUT_MS = "QGIS_TIMEOUT_MS"
ENV_MAX_RETRIES = "QGIS_MAX_RETRIES"
ENV_MAX_DELAY_MS = "QGIS_MAX_DELAY_MS"
ENV_JITTER = "QGIS_RETRY_JITTER"
ENV_DEADLINE_MS = "QGIS_DEADLINE_MS"

_TRUTHY = {"1", "true", "yes", "on"}


@dataclass(frozen=True)
class ConnectorConfig:
    """Immutable connector settings.

    ``max_delay_ms``, ``jitter`` and ``deadline_ms`` are off by default, which
    gives plain uncapped exponential backoff with no overall deadline.
    """

    base_url: str = DEFAULT_BASE_URL
    timeout_ms: int = DEFAULT_TIMEOUT_MS
    max_retries: int = DEFAULT_MAX_RETRIES
    max_delay_ms: int | None = None
    jitter: bool = False
    deadline_ms: int | None = None

    def __post_init__(self):
        if not self.base_url:
            raise ValueError("base_url must not be empty")
        # frozen dataclass: go through object.__setattr__
        object.__setattr__(self, "base_url", self.base_url.rstrip("/"))
        if self.timeout_ms <= 0:
            raise ValueError(f"timeout_ms must be > 0, got {self.timeout_ms}")
        if self.max_retries < 1:
            raise ValueError(f"max_retries must be >= 1, got {self.max_retries}")
        if self.max_delay_ms is not None and self.max_delay_ms < 0:
            raise ValueError(f"max_delay_ms must be >= 0, got {self.max_delay_ms}")
        if self.deadline_ms is not None and self.deadline_ms <= 0:
            raise ValueError(f"deadline_ms must be > 0, got {self.deadline_ms}")

    @property
    def timeout_seconds(self) -> float:
        return self.timeout_ms / 1000

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> "ConnectorConfig":
        """Build a config from ``QGIS_*`` environment variables."""
        env = os.environ if environ is None else environ
        return cls(
            base_url=env.get(ENV_BASE_URL) or DEFAULT_BASE_URL,
            timeout_ms=_int_var(env, ENV_TIMEOUT_MS, DEFAULT_TIMEOUT_MS),
            max_retries=_int_var(env, ENV_MAX_RETRIES, DEFAULT_MAX_RETRIES),
            max_delay_ms=_int_var(env, ENV_MAX_DELAY_MS, None),
            jitter=env.get(ENV_JITTER, "").strip().lower() in _TRUTHY,
            deadline_ms=_int_var(env, ENV_DEADLINE_MS, None),
        )


def _int_var(env: Mapping[str, str], name: str, default: int | None) -> int | None:
    raw = env.get(name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {raw!r}") from None
