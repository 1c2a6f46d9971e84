"""Service configuration read from environment variables."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, replace
from typing import Any, Mapping

__all__ = ["ConfigError", "ServiceConfig", "STORE_KINDS"]

STORE_KINDS = ("memory", "redis")
_LOG_LEVELS = ("CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG")


class ConfigError(ValueError):
    """Raised when a configuration value cannot be used."""


def _parse_port(raw: Any) -> int:
    try:
        port = int(raw)
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"Port must be an integer, got {raw!r}") from exc
    if not 0 < port < 65536:
        raise ConfigError(f"Port must be between 1 and 65535, got {port}")
    return port


@dataclass(frozen=True)
class ServiceConfig:
    """Settings for the HTTP listener, the term stores and logging."""

    host: str = "0.0.0.0"
    port: int = 8003
    store: str = "memory"
    redis_url: str = "redis://127.0.0.1:6379/0"
    log_level: str = "INFO"

    def __post_init__(self) -> None:
        if self.store not in STORE_KINDS:
            raise ConfigError(
                f"Unknown store {self.store!r}; expected one of {', '.join(STORE_KINDS)}"
            )
        if self.log_level.upper() not in _LOG_LEVELS:
            raise ConfigError(f"Unknown log level {self.log_level!r}")
        object.__setattr__(self, "log_level", self.log_level.upper())
        object.__setattr__(self, "port", _parse_port(self.port))

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> "ServiceConfig":
        """Build a configuration from ``environ`` (defaults to ``os.environ``)."""

        env = os.environ if environ is None else environ
        defaults = cls()
        return cls(
            host=env.get("MATHCACHE_HOST", defaults.host),
            port=env.get("MATHCACHE_PORT", defaults.port),
            store=env.get("MATHCACHE_STORE", defaults.store).strip().lower(),
            redis_url=env.get("REDIS_URL", defaults.redis_url),
            log_level=env.get("LOG_LEVEL", defaults.log_level),
        )

    def with_overrides(self, **values: Any) -> "ServiceConfig":
        """Return a copy with every non-``None`` value in *values* applied."""

        changes = {key: value for key, value in values.items() if value is not None}
        return replace(self, **changes) if changes else self

    @property
    def logging_level(self) -> int:
        return getattr(logging, self.log_level, logging.INFO)
