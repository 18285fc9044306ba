"""
Error types for pglit.

`PgError` wraps whatever psycopg raised so callers can branch on the SQLSTATE
without digging into driver internals:

    outcome = await create_db(config, "testdb", lambda o: o)
    if outcome.error and outcome.error.code == DUPLICATE_DATABASE:
        ...

`ErrorInfo` gives a coarser, stable classification (`kind`, `retryable`)
for callers that do not want to match on codes at all.
"""

from enum import Enum
from typing import Any, Optional

import psycopg
from pydantic import BaseModel, Field

# SQLSTATE codes pglit treats specially
DUPLICATE_DATABASE = "42P04"
INVALID_CATALOG_NAME = "3D000"
OBJECT_IN_USE = "55006"
INSUFFICIENT_PRIVILEGE = "42501"
QUERY_CANCELED = "57014"


class ErrorKind(str, Enum):
    """Error categories for database administration failures."""

    DB_CONNECTION = "db_connection"     # Server unreachable, connection dropped
    DB_AUTH = "db_auth"                 # Bad password, role missing
    DB_PRIVILEGE = "db_privilege"       # Role may not create/drop databases
    DB_DUPLICATE = "db_duplicate"       # Database already exists
    DB_NOT_FOUND = "db_not_found"       # Database does not exist
    DB_IN_USE = "db_in_use"             # Other sessions hold the database
    DB_TIMEOUT = "db_timeout"           # Statement canceled by timeout
    UNKNOWN = "unknown"


class ErrorInfo(BaseModel):
    """Standardized description of a PostgreSQL failure."""

    kind: ErrorKind = Field(
        default=ErrorKind.UNKNOWN,
        description="Error category"
    )
    retryable: bool = Field(
        default=False,
        description="Whether repeating the same call may succeed"
    )
    code: str = Field(
        default="PG_UNKNOWN",
        description="Prefixed error code (PG_42P04, ...)"
    )
    message: str = Field(
        default="Unknown error",
        description="Human-readable error message"
    )
    pg_code: Optional[str] = Field(
        None, description="Raw SQLSTATE, when the server sent one"
    )
    exception_type: Optional[str] = Field(
        None, description="Python exception class name"
    )

    def to_dict(self) -> dict[str, Any]:
        d = {
            "kind": self.kind.value,
            "retryable": self.retryable,
            "code": self.code,
            "message": self.message,
        }
        if self.pg_code is not None:
            d["pg_code"] = self.pg_code
        if self.exception_type is not None:
            d["exception_type"] = self.exception_type
        return d


def classify_postgres_error(
    error: Exception,
    error_code: Optional[str] = None,
) -> ErrorInfo:
    """Classify a PostgreSQL error by SQLSTATE, falling back to the message text."""
    error_str = str(error).lower()

    pg_code = error_code
    if not pg_code:
        pg_code = getattr(error, "sqlstate", None) or getattr(error, "pgcode", None)

    code = f"PG_{pg_code}" if pg_code else "PG_UNKNOWN"

    def info(kind: ErrorKind, retryable: bool) -> ErrorInfo:
        return ErrorInfo(
            kind=kind,
            retryable=retryable,
            code=code,
            message=str(error),
            pg_code=pg_code or None,
            exception_type=type(error).__name__,
        )

    if pg_code == DUPLICATE_DATABASE:
        return info(ErrorKind.DB_DUPLICATE, False)

    if pg_code == INVALID_CATALOG_NAME:
        return info(ErrorKind.DB_NOT_FOUND, False)

    if pg_code == OBJECT_IN_USE or "being accessed by other users" in error_str:
        return info(ErrorKind.DB_IN_USE, True)

    if pg_code == INSUFFICIENT_PRIVILEGE or "permission denied" in error_str:
        return info(ErrorKind.DB_PRIVILEGE, False)

    if (pg_code and pg_code.startswith("28")) or "password authentication failed" in error_str:
        return info(ErrorKind.DB_AUTH, False)

    if (pg_code and pg_code.startswith("08")) or "connection" in error_str:
        return info(ErrorKind.DB_CONNECTION, True)

    if pg_code == QUERY_CANCELED or "timeout" in error_str:
        return info(ErrorKind.DB_TIMEOUT, True)

    return info(ErrorKind.UNKNOWN, False)


class PgError(Exception):
    """
    A psycopg error with its message and SQLSTATE pulled out.

    Attributes:
        message: Primary diagnostic message with double quotes removed,
            empty when the server sent none (e.g. connection failures)
        code: SQLSTATE, empty when there is none
        pg_error: The original psycopg exception
    """

    def __init__(self, error: psycopg.Error):
        diag_message = None
        diag = getattr(error, "diag", None)
        if diag is not None:
            diag_message = diag.message_primary
        self.message = diag_message.replace('"', "") if diag_message else ""
        self.code = getattr(error, "sqlstate", None) or ""
        self.pg_error = error
        super().__init__(self.message or str(error))

    @property
    def info(self) -> ErrorInfo:
        return classify_postgres_error(self.pg_error, self.code or None)

    def __repr__(self) -> str:
        return f"PgError(code={self.code!r}, message={self.message!r})"


class PoolCreateError(Exception):
    """Raised when a pool cannot be bootstrapped for its target database."""

    def __init__(self, message: str, pg_error: Optional[PgError] = None):
        super().__init__(message)
        self.pg_error = pg_error

    @property
    def code(self) -> str:
        return self.pg_error.code if self.pg_error else ""


class InvalidDatabaseName(ValueError):
    """The database name cannot be used as an SQL identifier."""
