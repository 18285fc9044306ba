import logging
import contextvars
from contextlib import contextmanager
from types import MappingProxyType
from typing import Any, Iterator, Mapping

# Fields stamped on every record emitted inside a LoggingContext
_log_fields: contextvars.ContextVar[Mapping[str, Any]] = contextvars.ContextVar(
    "pglit_log_fields", default=MappingProxyType({})
)


def current_fields() -> Mapping[str, Any]:
    return _log_fields.get()


class ContextFilter(logging.Filter):
    """Copy the active context fields onto a record without replacing its own attributes."""

    def filter(self, record):
        for key, value in _log_fields.get().items():
            if not hasattr(record, key):
                setattr(record, key, value)
        return True


@contextmanager
def LoggingContext(logger: logging.Logger, **fields) -> Iterator[Mapping[str, Any]]:
    """
    Attach `fields` to every record logged inside the block.

    Nested blocks merge with the outer fields; inner values win. A field
    passed through `extra=` on a single call wins over both.

        with LoggingContext(logger, db_name="testdb", action="CREATE"):
            logger.info("CREATE DATABASE testdb; succeeded")
    """
    merged = MappingProxyType({**_log_fields.get(), **fields})
    token = _log_fields.set(merged)
    try:
        yield merged
    finally:
        _log_fields.reset(token)
