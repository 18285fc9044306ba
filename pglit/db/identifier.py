"""
Database name validation and quoting.

Names are interpolated into CREATE/DROP DATABASE text, which cannot take bind
parameters, so they are checked here first.

Unquoted mode keeps PostgreSQL's folding rules: `MyDb` creates `mydb`.
Quoted mode strips every double quote from the name and wraps the rest in
double quotes, so case and characters such as `-` are preserved.
"""

import re
from typing import Optional

from pglit.core.errors import InvalidDatabaseName

# NAMEDATALEN - 1
MAX_IDENTIFIER_BYTES = 63

_UNQUOTED_IDENTIFIER = re.compile(r"^[A-Za-z_][A-Za-z0-9_$]*$")

# Keywords the PostgreSQL grammar refuses as a bare database name
# (categories "reserved" and "reserved, can be function or type")
RESERVED_KEYWORDS = frozenset({
    "all", "analyse", "analyze", "and", "any", "array", "as", "asc",
    "asymmetric", "authorization", "binary", "both", "case", "cast", "check",
    "collate", "collation", "column", "concurrently", "constraint", "create",
    "cross", "current_catalog", "current_date", "current_role",
    "current_schema", "current_time", "current_timestamp", "current_user",
    "default", "deferrable", "desc", "distinct", "do", "else", "end", "except",
    "false", "fetch", "for", "foreign", "freeze", "from", "full", "grant",
    "group", "having", "ilike", "in", "initially", "inner", "intersect",
    "into", "is", "isnull", "join", "lateral", "leading", "left", "like",
    "limit", "localtime", "localtimestamp", "natural", "not", "notnull",
    "null", "offset", "on", "only", "or", "order", "outer", "overlaps",
    "placing", "primary", "references", "returning", "right", "select",
    "session_user", "similar", "some", "symmetric", "system_user", "table",
    "tablesample", "then", "to", "trailing", "true", "union", "unique", "user",
    "using", "variadic", "verbose", "when", "where", "window", "with",
})


def _check_length(name: str, original: str) -> None:
    if len(name.encode("utf-8")) > MAX_IDENTIFIER_BYTES:
        raise InvalidDatabaseName(
            f"Database name {original!r} is longer than {MAX_IDENTIFIER_BYTES} bytes"
        )


def validate_db_name(db_name: str, quotes: bool = False) -> str:
    """
    Check that `db_name` can be used as a database identifier.

    Args:
        db_name: Database name as given by the caller
        quotes: Validate for quoted interpolation instead of a bare identifier

    Returns:
        The name that will be interpolated, without surrounding quotes
        (double quotes already stripped in quoted mode)

    Raises:
        InvalidDatabaseName: empty name, bad characters, reserved keyword or too long
    """
    if not isinstance(db_name, str) or db_name == "":
        raise InvalidDatabaseName("The database name should not be empty")

    if quotes:
        stripped = db_name.replace('"', "")
        if not stripped:
            raise InvalidDatabaseName(
                f"Database name {db_name!r} is empty once double quotes are removed"
            )
        if "\x00" in stripped:
            raise InvalidDatabaseName("Database name cannot contain NUL characters")
        _check_length(stripped, db_name)
        return stripped

    if not _UNQUOTED_IDENTIFIER.match(db_name):
        raise InvalidDatabaseName(
            f"Database name {db_name!r} is not a valid unquoted identifier\n"
            f"  Hint: use letters, digits, '_' or '$' and start with a letter or '_', "
            f"or enable quoted names (quotes=True / PGLIT_QUOTES=true)"
        )
    if db_name.lower() in RESERVED_KEYWORDS:
        raise InvalidDatabaseName(
            f"Database name {db_name!r} is a reserved SQL keyword\n"
            f"  Hint: pick another name or enable quoted names (quotes=True / PGLIT_QUOTES=true)"
        )
    _check_length(db_name, db_name)
    return db_name


def quote_db_name(db_name: str) -> str:
    """Strip every double quote from `db_name` and wrap the result in double quotes."""
    return '"{}"'.format(db_name.replace('"', ""))


def resolve_quotes(quotes: Optional[bool]) -> bool:
    """`quotes=None` falls back to the PGLIT_QUOTES setting."""
    if quotes is None:
        from pglit.core.config import get_settings
        return get_settings().quotes
    return quotes


def sanitize_db_name(db_name: str, quotes: Optional[bool] = None) -> str:
    """Validate `db_name` and return the text to place after DATABASE."""
    quotes = resolve_quotes(quotes)
    name = validate_db_name(db_name, quotes=quotes)
    return quote_db_name(name) if quotes else name


def effective_db_name(db_name: str, quotes: Optional[bool] = None) -> str:
    """
    Name of the database the server actually creates for `db_name`.

    This is what a connection must use as its dbname afterwards: unquoted
    identifiers are folded to lower case, quoted ones keep their case.
    """
    quotes = resolve_quotes(quotes)
    name = validate_db_name(db_name, quotes=quotes)
    return name if quotes else name.lower()
