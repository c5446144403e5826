from __future__ import annotations

import os
from dataclasses import dataclass

from .errors import ConfigError

DEFAULT_PORT = 3000
DEFAULT_HOST = "0.0.0.0"


def _env_bool(name: str, default: bool = False) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "y", "on"}


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _env_port(name: str, default: int) -> int:
    # A bad PORT is an error, never a fallback to the default.
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw.strip())
    except ValueError:
        raise ConfigError(f"{name} must be an integer, got {raw!r}") from None


def _env_optional_int(name: str) -> int | None:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return None
    try:
        return int(raw)
    except ValueError:
        return None


@dataclass(frozen=True)
class Settings:
    # Listener
    host: str = DEFAULT_HOST
    port: int = DEFAULT_PORT

    # Connection hardening
    keepalive_timeout_s: int = 5
    shutdown_timeout_s: int = 10
    limit_concurrency: int | None = None

    # Logging
    access_log: bool = True
    log_level: str = "INFO"
    log_json: bool = False

    # Optional descriptor whose containerPort must match `port`.
    descriptor_path: str | None = None

    @property
    def address(self) -> str:
        host = f"[{self.host}]" if ":" in self.host else self.host
        return f"{host}:{self.port}"

    def validate(self) -> Settings:
        if not 1 <= self.port <= 65535:
            raise ConfigError(f"PORT must be between 1 and 65535, got {self.port}")
        if not self.host:
            raise ConfigError("HOST must not be empty")
        if self.keepalive_timeout_s <= 0:
            raise ConfigError("HELLO_KEEPALIVE_TIMEOUT_S must be positive")
        if self.shutdown_timeout_s <= 0:
            raise ConfigError("HELLO_SHUTDOWN_TIMEOUT_S must be positive")
        if self.limit_concurrency is not None and self.limit_concurrency < 1:
            raise ConfigError("HELLO_LIMIT_CONCURRENCY must be at least 1")
        return self


def load_settings() -> Settings:
    """Build settings from the current environment (read at call time)."""
    return Settings(
        host=os.getenv("HOST", DEFAULT_HOST).strip() or DEFAULT_HOST,
        port=_env_port("PORT", DEFAULT_PORT),
        keepalive_timeout_s=_env_int("HELLO_KEEPALIVE_TIMEOUT_S", 5),
        shutdown_timeout_s=_env_int("HELLO_SHUTDOWN_TIMEOUT_S", 10),
        limit_concurrency=_env_optional_int("HELLO_LIMIT_CONCURRENCY"),
        access_log=_env_bool("HELLO_ACCESS_LOG", True),
        log_level=os.getenv("HELLO_LOG_LEVEL", "INFO").strip().upper() or "INFO",
        log_json=_env_bool("HELLO_LOG_JSON", False),
        descriptor_path=os.getenv("HELLO_DESCRIPTOR") or None,
    )
