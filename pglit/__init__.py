from pglit.core.config import PgConfig, PoolConfig, Settings, get_settings, load_pg_config
from pglit.core.errors import (
    DUPLICATE_DATABASE,
    INVALID_CATALOG_NAME,
    ErrorInfo,
    ErrorKind,
    InvalidDatabaseName,
    PgError,
    PoolCreateError,
)
from pglit.db.admin import DbOutcome, connect, create_db, drop_db, ensure_db, forcedrop_db
from pglit.db.pool import pool_create_db

__all__ = [
    "PgConfig",
    "PoolConfig",
    "Settings",
    "get_settings",
    "load_pg_config",
    "DUPLICATE_DATABASE",
    "INVALID_CATALOG_NAME",
    "ErrorInfo",
    "ErrorKind",
    "InvalidDatabaseName",
    "PgError",
    "PoolCreateError",
    "DbOutcome",
    "connect",
    "create_db",
    "drop_db",
    "ensure_db",
    "forcedrop_db",
    "pool_create_db",
]
