import psycopg
import pytest
from psycopg import errors as pg_errors
from psycopg.conninfo import conninfo_to_dict

from pglit.core.config import PgConfig
from pglit.core.errors import DUPLICATE_DATABASE, INVALID_CATALOG_NAME, InvalidDatabaseName, PgError
from pglit.db.admin import DbOutcome, connect, create_db, drop_db, ensure_db, forcedrop_db


def _config():
    return PgConfig(host="localhost", port=5432, user="pglit", password="pglit", dbname="pglit")


@pytest.mark.asyncio
async def test_create_db_runs_statement_on_admin_database(fake_connection):
    config = _config()
    result = await create_db(config, "TestDb", lambda outcome: outcome)

    assert isinstance(result, DbOutcome)
    assert result.ok and result.rowcount == 0
    (conn,) = fake_connection.connections
    assert conn.executed == ["CREATE DATABASE TestDb;"]
    assert conn.kwargs == {"autocommit": True}
    assert conninfo_to_dict(conn.conninfo)["dbname"] == "postgres"
    assert conn.closed
    # unquoted names fold to lower case on the server
    assert config.dbname == "testdb"


@pytest.mark.asyncio
async def test_drop_and_forcedrop_statements(fake_connection):
    await drop_db(_config(), "testdb", lambda o: None)
    await forcedrop_db(_config(), "testdb", lambda o: None)
    executed = [c.executed[0] for c in fake_connection.connections]
    assert executed == ["DROP DATABASE testdb;", "DROP DATABASE testdb WITH (FORCE);"]


@pytest.mark.asyncio
async def test_admin_db_setting_is_used(fake_connection, monkeypatch):
    monkeypatch.setenv("PGLIT_ADMIN_DB", "template1")
    await create_db(_config(), "testdb")
    assert conninfo_to_dict(fake_connection.connections[0].conninfo)["dbname"] == "template1"


@pytest.mark.asyncio
async def test_async_callback_result_is_awaited(fake_connection):
    async def callback(outcome):
        return ("done", outcome.rowcount)

    assert await create_db(_config(), "testdb", callback) == ("done", 0)


@pytest.mark.asyncio
async def test_without_callback_returns_rowcount(fake_connection):
    assert await create_db(_config(), "testdb") == 0


@pytest.mark.asyncio
async def test_without_callback_failure_raises(fake_connection):
    fake_connection.execute_error = pg_errors.DuplicateDatabase('database "testdb" already exists')
    with pytest.raises(PgError) as exc_info:
        await create_db(_config(), "testdb")
    assert exc_info.value.code == DUPLICATE_DATABASE


@pytest.mark.asyncio
async def test_statement_failure_reaches_callback(fake_connection):
    fake_connection.execute_error = pg_errors.InvalidCatalogName('database "gone" does not exist')
    config = _config()
    outcome = await drop_db(config, "gone", lambda o: o)
    assert not outcome.ok
    assert outcome.error.code == INVALID_CATALOG_NAME
    # the admin connection was established, so dbname still follows the target
    assert config.dbname == "gone"


@pytest.mark.asyncio
async def test_connection_failure_reaches_callback_and_keeps_dbname(fake_connection):
    fake_connection.connect_error = psycopg.OperationalError("connection refused")
    config = _config()
    outcome = await create_db(config, "testdb", lambda o: o)
    assert not outcome.ok
    assert outcome.error.code == ""
    assert str(outcome.error) == "connection refused"
    assert config.dbname == "pglit"


@pytest.mark.asyncio
async def test_invalid_name_rejected_before_connecting(fake_connection):
    with pytest.raises(InvalidDatabaseName):
        await create_db(_config(), "", lambda o: o)
    with pytest.raises(InvalidDatabaseName):
        await drop_db(_config(), "bad-name", lambda o: o)
    assert fake_connection.connections == []


@pytest.mark.asyncio
async def test_quoted_names(fake_connection, monkeypatch):
    monkeypatch.setenv("PGLIT_QUOTES", "true")
    config = _config()
    await create_db(config, 'My"-Db', lambda o: o)
    assert fake_connection.connections[0].executed == ['CREATE DATABASE "My-Db";']
    assert config.dbname == "My-Db"


@pytest.mark.asyncio
async def test_quotes_argument_overrides_setting(fake_connection, monkeypatch):
    monkeypatch.setenv("PGLIT_QUOTES", "true")
    await create_db(_config(), "testdb", lambda o: o, quotes=False)
    assert fake_connection.connections[0].executed == ["CREATE DATABASE testdb;"]


@pytest.mark.asyncio
async def test_ensure_db_tolerates_duplicate(fake_connection):
    assert await ensure_db(_config(), "testdb") is True
    fake_connection.execute_error = pg_errors.DuplicateDatabase("exists")
    assert await ensure_db(_config(), "testdb") is False


@pytest.mark.asyncio
async def test_ensure_db_raises_other_errors(fake_connection):
    fake_connection.execute_error = pg_errors.InsufficientPrivilege("permission denied to create database")
    with pytest.raises(PgError) as exc_info:
        await ensure_db(_config(), "testdb")
    assert exc_info.value.code == "42501"


@pytest.mark.asyncio
async def test_connect_creates_then_connects_to_target(fake_connection):
    config = _config()
    fake_connection.execute_error = pg_errors.DuplicateDatabase("exists")
    conn = await connect(config, "AppDb", autocommit=False)

    admin_conn, target_conn = fake_connection.connections
    assert admin_conn.executed == ["CREATE DATABASE AppDb;"]
    assert conn is target_conn
    assert conninfo_to_dict(conn.conninfo)["dbname"] == "appdb"
    assert conn.kwargs == {"autocommit": False}
    assert config.dbname == "pglit"


@pytest.mark.asyncio
async def test_connect_failure_raises_pg_error(fake_connection):
    fake_connection.connect_error = psycopg.OperationalError("connection refused")
    with pytest.raises(PgError):
        await connect(_config(), "testdb")


@pytest.mark.asyncio
async def test_explicit_config_ignores_malformed_pg_environment(fake_connection, monkeypatch):
    monkeypatch.setenv("PG.PORT", "not-a-port")
    outcome = await create_db(_config(), "testdb", lambda o: o, quotes=False)
    assert outcome.ok
    assert conninfo_to_dict(fake_connection.connections[0].conninfo)["port"] == "5432"


@pytest.mark.asyncio
async def test_reserved_keyword_rejected_before_connecting(fake_connection):
    with pytest.raises(InvalidDatabaseName, match="reserved"):
        await create_db(_config(), "select", lambda o: o)
    assert fake_connection.connections == []
    # quoted, the same word is an ordinary name
    await create_db(_config(), "select", lambda o: o, quotes=True)
    assert fake_connection.connections[0].executed == ['CREATE DATABASE "select";']
