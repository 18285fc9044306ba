import asyncio
from typing import Optional

import typer
from pydantic import ValidationError

from pglit.core.config import PgConfig, get_settings, load_pg_config
from pglit.core.errors import INVALID_CATALOG_NAME, InvalidDatabaseName, PgError
from pglit.db.admin import DbOutcome, create_db, drop_db, ensure_db, forcedrop_db

cli_app = typer.Typer(no_args_is_help=True)

# Database management
db_app = typer.Typer(no_args_is_help=True)
cli_app.add_typer(db_app, name="db")

_QUOTES_HELP = "Quote the database name (defaults to PGLIT_QUOTES)"


def _fail(outcome: DbOutcome) -> None:
    error = outcome.error
    typer.echo(f"[{error.code or 'no sqlstate'}] {error.message or error.pg_error}", err=True)
    raise typer.Exit(code=1)


def _run(coro):
    try:
        return asyncio.run(coro)
    except InvalidDatabaseName as e:
        typer.echo(f"Invalid database name: {e}", err=True)
        raise typer.Exit(code=2)
    except PgError as e:
        typer.echo(f"[{e.code or 'no sqlstate'}] {e.message or e.pg_error}", err=True)
        raise typer.Exit(code=1)


def _load_config() -> PgConfig:
    """Settings and PG.* connection parameters; a bad value exits with code 2."""
    try:
        get_settings(reload=True)
        return load_pg_config()
    except ValidationError as e:
        typer.echo(f"Invalid configuration: {e}", err=True)
        raise typer.Exit(code=2)


@db_app.command("create")
def db_create(
    name: str = typer.Argument(..., help="Database to create"),
    quotes: Optional[bool] = typer.Option(None, "--quotes/--no-quotes", help=_QUOTES_HELP),
):
    """Create a database using the PG.* connection settings."""
    config = _load_config()

    def report(outcome: DbOutcome):
        if not outcome.ok:
            _fail(outcome)
        typer.echo(f"Created database {name}")

    _run(create_db(config, name, report, quotes=quotes))


@db_app.command("drop")
def db_drop(
    name: str = typer.Argument(..., help="Database to drop"),
    force: bool = typer.Option(False, "--force", "-f", help="Terminate other sessions first (PostgreSQL 13+)"),
    missing_ok: bool = typer.Option(False, "--missing-ok", help="Succeed if the database does not exist"),
    quotes: Optional[bool] = typer.Option(None, "--quotes/--no-quotes", help=_QUOTES_HELP),
):
    """Drop a database using the PG.* connection settings."""
    config = _load_config()

    def report(outcome: DbOutcome):
        if outcome.ok:
            typer.echo(f"Dropped database {name}")
        elif missing_ok and outcome.error.code == INVALID_CATALOG_NAME:
            typer.echo(f"Database {name} does not exist")
        else:
            _fail(outcome)

    operation = forcedrop_db if force else drop_db
    _run(operation(config, name, report, quotes=quotes))


@db_app.command("ensure")
def db_ensure(
    name: str = typer.Argument(..., help="Database that must exist"),
    quotes: Optional[bool] = typer.Option(None, "--quotes/--no-quotes", help=_QUOTES_HELP),
):
    """Create a database unless it already exists."""
    config = _load_config()
    created = _run(ensure_db(config, name, quotes=quotes))
    typer.echo(f"Created database {name}" if created else f"Database {name} already exists")


if __name__ == "__main__":
    cli_app()
