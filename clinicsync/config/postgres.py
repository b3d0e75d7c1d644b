"""
clinicsync.config.postgres – where the scheduling store lives.

Env vars: DATABASE_URL, DB_POOL_SIZE, DB_MAX_OVERFLOW, DB_POOL_TIMEOUT, DB_POOL_RECYCLE,
DB_ECHO, DB_APPLICATION_NAME.
"""
from __future__ import annotations

import os
from dataclasses import dataclass

_DEFAULT_URL = "postgresql://localhost/clinicsync"
_SCHEMES = ("postgresql://", "postgres://", "postgresql+asyncpg://")


def _env_int(name: str, default: int) -> int:
    raw = os.environ.get(name, "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError as exc:
        raise ValueError(f"{name} must be an integer, got {raw!r}") from exc


@dataclass(frozen=True)
class PostgresConfig:
    """
    Connection and pool settings for the appointments database.

    Validated on construction; the engine swaps in the asyncpg driver.
    """

    url: str
    pool_size: int = 10
    max_overflow: int = 20
    pool_timeout: int = 30
    """Seconds to wait for a pooled connection."""

    pool_recycle: int = 1800
    echo: bool = False
    application_name: str = "clinicsync"

    def __post_init__(self) -> None:
        if not self.url or not self.url.strip():
            raise ValueError("DATABASE_URL is required and must be non-empty")
        if not self.url.strip().startswith(_SCHEMES):
            raise ValueError(f"DATABASE_URL must start with one of {', '.join(_SCHEMES)}")
        for name in ("pool_size", "pool_timeout", "pool_recycle"):
            value = getattr(self, name)
            if not isinstance(value, int) or value < 1:
                raise ValueError(f"{name} must be an integer >= 1, got {value!r}")
        if not isinstance(self.max_overflow, int) or self.max_overflow < 0:
            raise ValueError(f"max_overflow must be >= 0, got {self.max_overflow!r}")
        if not self.application_name.strip():
            raise ValueError("application_name must be non-empty")

    @classmethod
    def from_env(cls) -> PostgresConfig:
        return cls(
            url=os.environ.get("DATABASE_URL", _DEFAULT_URL).strip(),
            pool_size=_env_int("DB_POOL_SIZE", 10),
            max_overflow=_env_int("DB_MAX_OVERFLOW", 20),
            pool_timeout=_env_int("DB_POOL_TIMEOUT", 30),
            pool_recycle=_env_int("DB_POOL_RECYCLE", 1800),
            echo=os.environ.get("DB_ECHO", "").strip().lower() in ("1", "true", "yes"),
            application_name=os.environ.get("DB_APPLICATION_NAME", "clinicsync").strip() or "clinicsync",
        )


def load_postgres_config() -> PostgresConfig:
    """Raises ValueError on a malformed environment."""
    return PostgresConfig.from_env()
