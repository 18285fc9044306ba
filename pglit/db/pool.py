"""
Connection pool bootstrap for a database that may not exist yet.

pool_create_db() creates the pool's target database when needed and returns
an opened psycopg_pool.AsyncConnectionPool for it. The pool belongs to the
caller:

    pool = await pool_create_db(PoolConfig(pg=load_pg_config(), max_size=10))
    try:
        async with pool.connection() as conn:
            await conn.execute("SELECT 1")
    finally:
        await pool.close()
"""
import time
from typing import Any, Dict, Optional

from psycopg import AsyncConnection
from psycopg_pool import AsyncConnectionPool

from pglit.core.config import PoolConfig
from pglit.core.errors import InvalidDatabaseName, PgError, PoolCreateError
from pglit.core.logger import setup_logger
from pglit.core.sanitize import redact_conninfo
from pglit.db.admin import ensure_db
from pglit.db.identifier import effective_db_name

logger = setup_logger(__name__, include_location=True)

_DEFAULT_OPEN_TIMEOUT = 30.0


async def pool_create_db(
    pool_config: PoolConfig,
    *,
    quotes: Optional[bool] = None,
    connection_kwargs: Optional[Dict[str, Any]] = None,
) -> AsyncConnectionPool[AsyncConnection]:
    """
    Create `pool_config.pg.dbname` if missing and open a pool connected to it.

    A duplicate database (SQLSTATE 42P04) is not an error. The pool is opened
    with wait=True, so min_size connections are established before returning.

    Args:
        pool_config: Connection parameters and pool sizing
        quotes: Quote the database name; None uses PGLIT_QUOTES
        connection_kwargs: Extra arguments for each pooled connection
            (row_factory, autocommit, ...)

    Returns:
        Opened AsyncConnectionPool

    Raises:
        PoolCreateError: Missing or invalid dbname, database creation failure,
            or the pool could not open its connections
    """
    db_name = pool_config.pg.dbname
    if not db_name:
        raise PoolCreateError("PoolConfig.pg.dbname is required to bootstrap a pool")

    try:
        created = await ensure_db(pool_config.pg.model_copy(), db_name, quotes=quotes)
        target = effective_db_name(db_name, quotes=quotes)
    except InvalidDatabaseName as e:
        raise PoolCreateError(f"Invalid database name for pool: {e}") from e
    except PgError as e:
        raise PoolCreateError(
            f"Could not create database {db_name!r} for pool: [{e.code}] {e.message or e}", e
        ) from e

    logger.info(f"Database {target} {'created' if created else 'already exists'}; opening pool")

    conninfo = pool_config.pg.conninfo(dbname=target)
    pool_kwargs = pool_config.pool_kwargs()
    open_timeout = pool_kwargs.get("timeout", _DEFAULT_OPEN_TIMEOUT)
    logger.info(
        f"Creating pool {pool_kwargs['name']} for {redact_conninfo(conninfo)} | "
        f"Config: min={pool_kwargs['min_size']}, max={pool_kwargs['max_size']}, timeout={open_timeout}s"
    )

    pool = AsyncConnectionPool(
        conninfo,
        kwargs=connection_kwargs or {},
        open=False,
        **pool_kwargs,
    )
    open_start = time.time()
    try:
        await pool.open(wait=True, timeout=open_timeout)
    except Exception as e:
        logger.error(f"Failed to open pool {pool_kwargs['name']} after {time.time() - open_start:.2f}s: {e}")
        await pool.close()
        raise PoolCreateError(f"Failed to open pool {pool_kwargs['name']}: {e}") from e

    logger.info(f"Pool {pool.name} opened in {(time.time() - open_start) * 1000:.1f}ms")
    return pool
