"""SQL text for the database administration statements."""

from enum import Enum

# $action and $db_name are substituted; the name is already validated/quoted
CREATE_OR_DROP_DB_SQL = "$action DATABASE $db_name;"


class Action(str, Enum):
    CREATE = "CREATE"
    DROP = "DROP"
    DROP_FORCE = "DROP_FORCE"


def build_statement(action: Action, db_name: str) -> str:
    """
    Render the statement for `action` on an already sanitized `db_name`.

    >>> build_statement(Action.CREATE, "testdb")
    'CREATE DATABASE testdb;'
    >>> build_statement(Action.DROP_FORCE, '"testdb"')
    'DROP DATABASE "testdb" WITH (FORCE);'
    """
    action = Action(action)
    verb = "DROP" if action is Action.DROP_FORCE else action.value
    sql = CREATE_OR_DROP_DB_SQL.replace("$action", verb).replace("$db_name", db_name).strip()
    if action is Action.DROP_FORCE:
        # FORCE (PostgreSQL 13+) goes between the name and the terminator
        sql = sql[:-1] + " WITH (FORCE);"
    return sql
