import os
import sys
from typing import Any, Dict, Mapping, Optional

from psycopg.conninfo import make_conninfo
from pydantic import BaseModel, Field, ConfigDict, field_validator, model_validator


ADMIN_DB = "postgres"

_ENV_LOADED = False

# PgConfig field -> environment key suffix (PG.<SUFFIX>)
_PG_ENV_FIELDS = {
    "host": "HOST",
    "port": "PORT",
    "user": "USER",
    "password": "PASSWORD",
    "dbname": "DBNAME",
    "sslmode": "SSLMODE",
    "connect_timeout": "CONNECT_TIMEOUT",
    "application_name": "APPLICATION_NAME",
}


def _load_env_file(path: str, allow_override: bool = False) -> None:
    """
    Minimal .env loader: loads KEY=VALUE pairs into os.environ.
    - Ignores empty lines and lines starting with '#'
    - Supports values wrapped in single or double quotes
    - By default, does not override existing environment variables
    """
    try:
        if not path or not os.path.exists(path):
            return
        with open(path, "r", encoding="utf-8") as f:
            for raw_line in f:
                line = raw_line.strip()
                if not line or line.startswith("#"):
                    continue
                if line.startswith("export "):
                    line = line[len("export "):].strip()
                if "=" not in line:
                    continue
                key, value = line.split("=", 1)
                key = key.strip()
                value = value.strip()
                if (value.startswith('"') and value.endswith('"')) or (value.startswith("'") and value.endswith("'")):
                    value = value[1:-1]
                if allow_override or key not in os.environ:
                    os.environ[key] = value
    except PermissionError as e:
        print(f"FATAL: Permission denied reading environment file {path}: {e}", file=sys.stderr)
        raise


def load_env_if_present(force_reload: bool = False) -> None:
    """
    Load environment variables from .env files in order of precedence:
    1. .env.local (highest priority, not committed)
    2. .env.{ENVIRONMENT} (environment-specific)
    3. .env.common (common variables)
    4. .env (default)
    PGLIT_ENV_FILE replaces the whole list with a single file.
    """
    global _ENV_LOADED
    if _ENV_LOADED and not force_reload:
        return

    custom = os.environ.get("PGLIT_ENV_FILE")
    if custom:
        _load_env_file(custom, allow_override=False)
    else:
        env_files = ['.env.local', '.env.common', '.env']
        environment = os.environ.get('ENVIRONMENT', '').strip()
        if environment:
            env_files.insert(1, f'.env.{environment}')

        for env_file in env_files:
            _load_env_file(env_file, allow_override=False)

    _ENV_LOADED = True


def _coerce_bool(v):
    if isinstance(v, bool):
        return v
    if not isinstance(v, str):
        raise ValueError("Expected string for boolean field")
    val = v.strip().lower()
    if val in ("true", "1", "yes", "y", "on"):
        return True
    if val in ("false", "0", "no", "n", "off"):
        return False
    raise ValueError(f"Invalid boolean value: {v}")


class PgConfig(BaseModel):
    """
    Connection parameters for one PostgreSQL server.

    Every field is optional; whatever is left out falls back to libpq defaults
    (PGHOST, ~/.pgpass, unix socket, ...).
    """
    model_config = ConfigDict(validate_assignment=True, extra="forbid")

    host: Optional[str] = None
    port: Optional[int] = None
    user: Optional[str] = None
    password: Optional[str] = None
    dbname: Optional[str] = None
    sslmode: Optional[str] = None
    connect_timeout: Optional[int] = None
    application_name: Optional[str] = None

    @field_validator('host', 'user', 'dbname', 'sslmode', 'application_name', mode='before')
    def strip_str(cls, v):
        if v is None:
            return v
        if not isinstance(v, str):
            raise ValueError("Expected string value")
        v = v.strip()
        return v or None

    @field_validator('port', 'connect_timeout', mode='before')
    def coerce_int(cls, v):
        if v is None or isinstance(v, int):
            return v
        if isinstance(v, str):
            v = v.strip()
            return int(v) if v else None
        raise ValueError("Expected integer-compatible value")

    @field_validator('port')
    def validate_port(cls, v):
        if v is not None and (v < 1 or v > 65535):
            raise ValueError(f"Invalid port number: {v}")
        return v

    def conninfo(self, dbname: Optional[str] = None) -> str:
        """Render a libpq connection string, optionally targeting another database."""
        params = {k: v for k, v in self.model_dump().items() if v is not None}
        if dbname is not None:
            params["dbname"] = dbname
        return make_conninfo(**params)


class PoolConfig(BaseModel):
    """
    Connection parameters plus AsyncConnectionPool sizing.

    The pool connects to `pg.dbname`, which is created first if missing.
    """
    model_config = ConfigDict(extra="forbid", str_strip_whitespace=True)

    pg: PgConfig = Field(default_factory=PgConfig)

    name: Optional[str] = Field(
        default=None,
        description="Pool name used in logs and psycopg_pool stats (defaults to pglit_<dbname>)"
    )
    min_size: int = Field(default=1, ge=1, le=100)
    max_size: Optional[int] = Field(default=None, ge=1, le=1000)
    timeout: Optional[float] = Field(
        default=30.0,
        description="Seconds to wait for a connection; None = psycopg_pool default, -1 = wait forever"
    )
    max_waiting: int = Field(default=0, ge=0, le=10000)
    max_lifetime: float = Field(default=3600.0, gt=0)
    max_idle: float = Field(default=600.0, gt=0)

    @field_validator('timeout')
    @classmethod
    def validate_timeout(cls, v):
        if v is not None and v != -1 and v <= 0:
            raise ValueError("timeout must be None (default), -1 (infinite), or positive number")
        return v

    @model_validator(mode='after')
    def validate_sizes(self):
        if self.max_size is not None and self.max_size < self.min_size:
            raise ValueError(f"max_size ({self.max_size}) must be >= min_size ({self.min_size})")
        return self

    @property
    def pool_name(self) -> str:
        return self.name or f"pglit_{self.pg.dbname}"

    def pool_kwargs(self) -> Dict[str, Any]:
        """Keyword arguments for psycopg_pool.AsyncConnectionPool (conninfo excluded)."""
        kwargs: Dict[str, Any] = {
            "min_size": self.min_size,
            "max_size": self.max_size,
            "max_waiting": self.max_waiting,
            "max_lifetime": self.max_lifetime,
            "max_idle": self.max_idle,
            "name": self.pool_name,
        }
        if self.timeout == -1:
            # psycopg_pool has no "infinite" marker; a day is long enough
            kwargs["timeout"] = 86400.0
        elif self.timeout is not None:
            kwargs["timeout"] = self.timeout
        return kwargs


class Settings(BaseModel):
    """
    pglit process settings from environment variables.

    Connection parameters are not part of it: callers pass their own PgConfig,
    or build one from PG.* with load_pg_config().
    """
    model_config = ConfigDict(validate_assignment=True)

    quotes: bool = Field(False, alias="PGLIT_QUOTES")
    admin_db: str = Field(ADMIN_DB, alias="PGLIT_ADMIN_DB")

    @field_validator('quotes', mode='before')
    def coerce_quotes(cls, v):
        return _coerce_bool(v)

    @field_validator('admin_db', mode='before')
    def validate_admin_db(cls, v):
        if not isinstance(v, str) or not v.strip():
            raise ValueError("Value cannot be empty or whitespace only")
        return v.strip()


def _env_key(field: str, prefix: Optional[str], separator: str) -> str:
    parts = [prefix, "PG", field] if prefix else ["PG", field]
    return separator.join(parts)


def load_pg_config(
    prefix: Optional[str] = None,
    separator: str = ".",
    environ: Optional[Mapping[str, str]] = None,
) -> PgConfig:
    """
    Build a PgConfig from PG.HOST, PG.PORT, PG.USER, PG.PASSWORD, PG.DBNAME (...).

    Keys are matched case-insensitively. With prefix="ENV_TEST" and
    separator="__" the keys become ENV_TEST__PG__HOST and so on.
    """
    env = os.environ if environ is None else environ
    upper_env = {key.upper(): value for key, value in env.items()}
    values = {}
    for field, suffix in _PG_ENV_FIELDS.items():
        key = _env_key(suffix, prefix, separator).upper()
        if key in upper_env:
            values[field] = upper_env[key]
    return PgConfig(**values)


_settings: Optional[Settings] = None


def get_settings(reload: bool = False) -> Settings:
    """
    Get pglit settings, reading .env files and the environment on first call.
    Set reload=True to force reloading from current environment.
    """
    global _settings
    if _settings is None or reload:
        load_env_if_present(force_reload=reload)
        env = os.environ
        _settings = Settings(
            PGLIT_QUOTES=env.get('PGLIT_QUOTES', 'false'),
            PGLIT_ADMIN_DB=env.get('PGLIT_ADMIN_DB', ADMIN_DB),
        )
    return _settings
