"""
Tests against a live PostgreSQL server.

Run with the PG.* variables set, e.g.

    env PG.HOST=127.0.0.1 PG.PORT=5432 PG.USER=pglit PG.PASSWORD=pglit PG.DBNAME=pglit pytest

The role needs CREATEDB. Set PGLIT_QUOTES=true to run the same cycle with
quoted names.
"""
import os
import uuid

import pytest

from pglit.core.config import PoolConfig, get_settings, load_pg_config
from pglit.core.errors import DUPLICATE_DATABASE, INVALID_CATALOG_NAME, PgError
from pglit.db.admin import connect, create_db, drop_db, ensure_db, forcedrop_db
from pglit.db.pool import pool_create_db

pytestmark = pytest.mark.skipif("PG.HOST" not in os.environ, reason="PG.HOST not set")

# the autouse settings fixture clears PGLIT_QUOTES; keep the value the run was started with
_QUOTES = os.environ.get("PGLIT_QUOTES")


def _db_name(suffix):
    if get_settings().quotes:
        # case and '-' only survive as quoted identifiers
        return f"Pglit-{suffix}-{uuid.uuid4().hex[:8]}"
    return f"pglit_{suffix}_{uuid.uuid4().hex[:8]}"


@pytest.fixture
def pg_config(monkeypatch):
    if _QUOTES is not None:
        monkeypatch.setenv("PGLIT_QUOTES", _QUOTES)
    get_settings(reload=True)
    return load_pg_config()


@pytest.mark.asyncio
async def test_create_drop_cycle(pg_config):
    name = _db_name("cycle")

    outcome = await create_db(pg_config, name, lambda o: o)
    assert outcome.ok, outcome.error
    assert pg_config.dbname == name

    outcome = await create_db(pg_config, name, lambda o: o)
    assert outcome.error.code == DUPLICATE_DATABASE

    outcome = await drop_db(pg_config, name, lambda o: o)
    assert outcome.ok, outcome.error

    outcome = await drop_db(pg_config, name, lambda o: o)
    assert outcome.error.code == INVALID_CATALOG_NAME


@pytest.mark.asyncio
async def test_forcedrop_with_open_session(pg_config):
    name = _db_name("force")
    conn = await connect(pg_config, name)
    try:
        with pytest.raises(PgError):
            await drop_db(pg_config.model_copy(), name)
        assert await forcedrop_db(pg_config.model_copy(), name) == 0
    finally:
        await conn.close()


@pytest.mark.asyncio
async def test_ensure_db_is_idempotent(pg_config):
    name = _db_name("ensure")
    try:
        assert await ensure_db(pg_config.model_copy(), name) is True
        assert await ensure_db(pg_config.model_copy(), name) is False
    finally:
        await drop_db(pg_config.model_copy(), name, lambda o: None)


@pytest.mark.asyncio
async def test_pool_create_db(pg_config):
    name = _db_name("pool")
    pg = pg_config.model_copy(update={"dbname": name})
    pool = await pool_create_db(PoolConfig(pg=pg, min_size=1, max_size=2, timeout=10))
    try:
        async with pool.connection() as conn:
            cur = await conn.execute("SELECT current_database()")
            (current,) = await cur.fetchone()
        assert current == name
    finally:
        await pool.close()
        await forcedrop_db(pg_config.model_copy(), name, lambda o: None)
