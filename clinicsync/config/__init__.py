"""
clinicsync config: load from env.

load_postgres_config(), SyncConfig.from_env(), GoogleOAuthConfig.from_env().
"""
from clinicsync.config.postgres import PostgresConfig, load_postgres_config
from clinicsync.config.sync import GoogleOAuthConfig, SyncConfig

__all__ = [
    "PostgresConfig",
    "load_postgres_config",
    "SyncConfig",
    "GoogleOAuthConfig",
]
