"""
CREATE DATABASE / DROP DATABASE through a short-lived admin connection.

Every operation connects to the administrative database (PGLIT_ADMIN_DB,
"postgres" by default) with autocommit on, runs one statement and hands the
outcome to the caller's callback:

    async def report(outcome: DbOutcome):
        if outcome.ok:
            print("database created")
        elif outcome.error.code == DUPLICATE_DATABASE:
            print("already there")

    await create_db(config, "testdb", report)

Without a callback the row count is returned and failures raise PgError.
"""

import inspect
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Optional, Tuple, Union

import psycopg
from psycopg import AsyncConnection

from pglit.core.config import PgConfig, get_settings
from pglit.core.errors import DUPLICATE_DATABASE, PgError
from pglit.core.logger import setup_logger
from pglit.core.logging_context import LoggingContext
from pglit.core.sanitize import redact_conninfo
from pglit.db.identifier import effective_db_name, resolve_quotes, sanitize_db_name
from pglit.db.statements import Action, build_statement

logger = setup_logger(__name__, include_location=True)


@dataclass
class DbOutcome:
    """Result of one administrative statement: a row count or a PgError."""

    rowcount: Optional[int] = None
    error: Optional[PgError] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def unwrap(self) -> int:
        if self.error is not None:
            raise self.error
        return self.rowcount or 0


Callback = Callable[[DbOutcome], Union[Any, Awaitable[Any]]]


async def _execute_admin(conninfo: str, sql: str) -> Tuple[DbOutcome, bool]:
    """
    Run `sql` on a fresh autocommit connection.

    Returns the outcome and whether the admin connection was established.
    """
    try:
        conn = await AsyncConnection.connect(conninfo, autocommit=True)
    except psycopg.Error as e:
        logger.error(f"Failed to connect to admin database {redact_conninfo(conninfo)}: {e}")
        return DbOutcome(error=PgError(e)), False

    async with conn:
        try:
            async with conn.cursor() as cur:
                await cur.execute(sql)
                # DDL reports -1 ("not applicable") in psycopg
                rowcount = max(cur.rowcount, 0)
        except psycopg.Error as e:
            error = PgError(e)
            logger.warning(f"{sql} failed: [{error.code or 'no sqlstate'}] {error.message or e}")
            return DbOutcome(error=error), True

    logger.info(f"{sql} succeeded")
    return DbOutcome(rowcount=rowcount), True


async def _deliver(outcome: DbOutcome, callback: Optional[Callback]) -> Any:
    if callback is None:
        return outcome.unwrap()
    result = callback(outcome)
    if inspect.isawaitable(result):
        result = await result
    return result


async def handle_db(
    config: PgConfig,
    db_name: str,
    action: Action,
    callback: Optional[Callback] = None,
    quotes: Optional[bool] = None,
) -> Any:
    """
    Run `action` for `db_name` and pass the outcome to `callback`.

    The name is validated before any connection is made (InvalidDatabaseName).
    Once the admin connection is up, `config.dbname` is pointed at the
    database the statement targeted.
    """
    quotes = resolve_quotes(quotes)
    sql = build_statement(action, sanitize_db_name(db_name, quotes=quotes))
    settings = get_settings()
    admin_conninfo = config.conninfo(dbname=settings.admin_db)

    with LoggingContext(logger, db_name=db_name, action=Action(action).value):
        logger.debug(f"Connecting to {redact_conninfo(admin_conninfo)}")
        outcome, connected = await _execute_admin(admin_conninfo, sql)

    if connected:
        config.dbname = effective_db_name(db_name, quotes=quotes)
    return await _deliver(outcome, callback)


async def create_db(
    config: PgConfig,
    db_name: str,
    callback: Optional[Callback] = None,
    *,
    quotes: Optional[bool] = None,
) -> Any:
    """
    Create database `db_name` on the server described by `config`.

    Args:
        config: Connection parameters; `dbname` is ignored for the admin
            connection and set to the new database afterwards
        db_name: Name of the database to create
        callback: Receives a DbOutcome; its (awaited) return value is returned
        quotes: Quote the name; None uses PGLIT_QUOTES

    Returns:
        The callback's return value, or the row count when no callback is given

    Raises:
        InvalidDatabaseName: If `db_name` is not a usable identifier
        PgError: Only when no callback is given and the statement fails
    """
    return await handle_db(config, db_name, Action.CREATE, callback, quotes)


async def drop_db(
    config: PgConfig,
    db_name: str,
    callback: Optional[Callback] = None,
    *,
    quotes: Optional[bool] = None,
) -> Any:
    """
    Drop database `db_name`. Same contract as `create_db`.

    Dropping a database that does not exist reports SQLSTATE 3D000.
    """
    return await handle_db(config, db_name, Action.DROP, callback, quotes)


async def forcedrop_db(
    config: PgConfig,
    db_name: str,
    callback: Optional[Callback] = None,
    *,
    quotes: Optional[bool] = None,
) -> Any:
    """
    Drop database `db_name` with the FORCE option (PostgreSQL 13+).

    The server first terminates every other session connected to the target
    database. It still fails when prepared transactions, active logical
    replication slots or subscriptions exist there, or when the current role
    lacks the pg_terminate_backend permissions.
    """
    return await handle_db(config, db_name, Action.DROP_FORCE, callback, quotes)


def _tolerate_duplicate(outcome: DbOutcome) -> bool:
    """True if the database was created, False if it already existed."""
    if outcome.ok:
        return True
    if outcome.error.code == DUPLICATE_DATABASE:
        logger.debug("Database already exists, continuing")
        return False
    raise outcome.error


async def ensure_db(
    config: PgConfig,
    db_name: str,
    *,
    quotes: Optional[bool] = None,
) -> bool:
    """
    Create `db_name` unless it already exists (SQLSTATE 42P04).

    Returns:
        True if the database was created by this call

    Raises:
        PgError: For any failure other than a duplicate database
    """
    return await create_db(config, db_name, _tolerate_duplicate, quotes=quotes)


async def connect(
    config: PgConfig,
    db_name: str,
    *,
    quotes: Optional[bool] = None,
    **connect_kwargs: Any,
) -> AsyncConnection:
    """
    Ensure `db_name` exists, then open a connection to it.

    `config` itself is not modified. Extra keyword arguments (autocommit,
    row_factory, ...) go to psycopg.AsyncConnection.connect. The caller
    owns the returned connection and must close it.

    Raises:
        InvalidDatabaseName: If `db_name` is not a usable identifier
        PgError: If the database cannot be created or connected to
    """
    await ensure_db(config.model_copy(), db_name, quotes=quotes)
    target = effective_db_name(db_name, quotes=quotes)
    conninfo = config.conninfo(dbname=target)
    try:
        return await AsyncConnection.connect(conninfo, **connect_kwargs)
    except psycopg.Error as e:
        logger.error(f"Failed to connect to {redact_conninfo(conninfo)}: {e}")
        raise PgError(e) from e
