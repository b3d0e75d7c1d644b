"""
Async engine and session factory for the scheduling store.

The engine is process-wide: ``build_engine`` caches it and ``close_engine``
disposes it on shutdown. The appointment slot index is a partial unique
index, so it is created with the tables by ``init_db``.
"""
from __future__ import annotations

import logging
import re
from typing import TYPE_CHECKING, Any, Dict, Optional

import asyncpg
from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import NullPool

# Importing the models package registers every table on Base.metadata
import clinicsync.infra.database.models  # noqa: F401
from clinicsync.infra.database.models.base import Base

if TYPE_CHECKING:
    from clinicsync.config import PostgresConfig

logger = logging.getLogger(__name__)

_SAFE_DBNAME = re.compile(r"^[a-zA-Z_][a-zA-Z0-9_]*$")

_engine: Optional[AsyncEngine] = None
_session_factory: Optional[async_sessionmaker[AsyncSession]] = None


def _config(config: Optional["PostgresConfig"]) -> "PostgresConfig":
    if config is not None:
        return config
    from clinicsync.config import load_postgres_config
    return load_postgres_config()


def async_url(url: str) -> str:
    """Force the asyncpg driver onto a postgres DSN."""
    parsed = make_url(url)
    return parsed.set(drivername="postgresql+asyncpg").render_as_string(hide_password=False)


async def ensure_database_exists(config: Optional["PostgresConfig"] = None) -> None:
    """CREATE DATABASE for the configured name when it is missing.

    Connects to the ``postgres`` maintenance database with asyncpg; when the
    server is unreachable the check is skipped and engine startup reports it.
    """
    target = make_url(_config(config).url)
    dbname = target.database or "postgres"
    if dbname == "postgres":
        return
    if not _SAFE_DBNAME.match(dbname):
        logger.warning("Database bootstrap skipped for unsafe name %r", dbname)
        return

    maintenance = target.set(drivername="postgresql", database="postgres")
    try:
        conn = await asyncpg.connect(maintenance.render_as_string(hide_password=False))
    except (OSError, asyncpg.PostgresError) as exc:
        logger.debug("Database bootstrap skipped, server unreachable: %s", exc)
        return
    try:
        exists = await conn.fetchval("SELECT 1 FROM pg_database WHERE datname = $1", dbname)
        if exists is None:
            await conn.execute(f'CREATE DATABASE "{dbname}"')
            logger.info("Created database %s", dbname)
    finally:
        await conn.close()


def build_engine(
    config: Optional["PostgresConfig"] = None,
    *,
    use_null_pool: bool = False,
) -> AsyncEngine:
    """Return the cached engine, creating it on first call.

    ``use_null_pool`` opens a fresh connection per checkout, for scripts
    that run outside the API's event loop.
    """
    global _engine
    if _engine is not None:
        return _engine

    config = _config(config)
    options: Dict[str, Any] = {
        "echo": config.echo,
        "connect_args": {
            "server_settings": {"application_name": config.application_name, "jit": "off"},
        },
    }
    if use_null_pool:
        options["poolclass"] = NullPool
    else:
        options.update(
            pool_size=config.pool_size,
            max_overflow=config.max_overflow,
            pool_timeout=config.pool_timeout,
            pool_recycle=config.pool_recycle,
            pool_pre_ping=True,
        )

    _engine = create_async_engine(async_url(config.url), **options)
    logger.info(
        "Engine ready (%s)",
        "NullPool" if use_null_pool else f"pool_size={config.pool_size} max_overflow={config.max_overflow}",
    )
    return _engine


def build_session_factory(engine: Optional[AsyncEngine] = None) -> async_sessionmaker[AsyncSession]:
    global _session_factory
    if _session_factory is None:
        _session_factory = async_sessionmaker(
            engine or build_engine(),
            class_=AsyncSession,
            expire_on_commit=False,
            autoflush=False,
        )
    return _session_factory


async def init_db(config: Optional["PostgresConfig"] = None) -> None:
    """Create tables and indexes that do not exist yet."""
    async with build_engine(config).begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Schema ready: %s", ", ".join(sorted(Base.metadata.tables)))


async def close_engine() -> None:
    global _engine, _session_factory
    if _engine is None:
        return
    await _engine.dispose()
    _engine = None
    _session_factory = None
    logger.info("Engine disposed")
