import pytest

import pglit.core.config as core_config


class FakeCursor:
    def __init__(self, conn):
        self._conn = conn
        self.rowcount = -1

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc):
        return False

    async def execute(self, sql):
        self._conn.executed.append(sql)
        if self._conn.execute_error is not None:
            raise self._conn.execute_error


class FakeAsyncConnection:
    """Stands in for psycopg.AsyncConnection; records every connection made."""

    connections = []
    connect_error = None
    execute_error = None

    def __init__(self, conninfo, kwargs):
        self.conninfo = conninfo
        self.kwargs = kwargs
        self.executed = []
        self.closed = False
        self.execute_error = type(self).execute_error

    @classmethod
    async def connect(cls, conninfo, **kwargs):
        if cls.connect_error is not None:
            raise cls.connect_error
        conn = cls(conninfo, kwargs)
        cls.connections.append(conn)
        return conn

    def cursor(self):
        return FakeCursor(self)

    async def close(self):
        self.closed = True

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc):
        await self.close()
        return False


@pytest.fixture(autouse=True)
def isolated_settings(monkeypatch, tmp_path):
    """Fresh settings per test, never loaded from a developer's .env file."""
    monkeypatch.setenv("PGLIT_ENV_FILE", str(tmp_path / "missing.env"))
    monkeypatch.delenv("PGLIT_QUOTES", raising=False)
    monkeypatch.delenv("PGLIT_ADMIN_DB", raising=False)
    monkeypatch.setattr(core_config, "_settings", None)
    yield
    core_config._settings = None


@pytest.fixture
def fake_connection(monkeypatch):
    """Patch the admin module's AsyncConnection with a fresh recording fake."""
    import pglit.db.admin as admin

    fake = type(
        "FakeAsyncConnection",
        (FakeAsyncConnection,),
        {"connections": [], "connect_error": None, "execute_error": None},
    )
    monkeypatch.setattr(admin, "AsyncConnection", fake)
    return fake
