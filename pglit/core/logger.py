from datetime import datetime
import os
import re
import sys
import json
import logging
import traceback

from pglit.core.logging_context import ContextFilter


# Attributes every LogRecord has; anything else came from `extra` or a LoggingContext
_RECORD_ATTRS = {
    "msg", "args", "levelname", "levelno", "pathname",
    "filename", "module", "exc_info", "exc_text", "stack_info",
    "lineno", "funcName", "created", "msecs", "relativeCreated",
    "thread", "threadName", "process", "processName", "scope", "name", "taskName",
    "message", "asctime",
}


def stringify_extra(value):
    if isinstance(value, (list, dict)):
        return str(value)
    else:
        return value


def _env_flag(name: str, default: bool = False) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in ("1", "true", "yes", "y", "on")


class CustomFormatter(logging.Formatter):

    def __init__(self, fmt="%(message)s", include_location=False):
        super().__init__(fmt)
        self.include_location = include_location

    def format(self, record):
        scope = f"{record.scope}" if hasattr(record, "scope") else ""
        location = ""
        if self.include_location:
            location = f"({record.module}:{record.funcName}:{record.lineno})"

        metadata_line = f"{datetime.now().isoformat()} [{record.levelname}] {record.name} {scope} {location}".strip()

        message = record.getMessage()
        message_split = message.splitlines()
        if len(message_split) > 1:
            message_line = f"     Message: {message_split[0]}"
            for line in message_split[1:]:
                message_line += f"\n             {line}"
        else:
            message_line = f"     Message: {message}"

        extra_items = [
            f"{key}: {stringify_extra(value)}"
            for key, value in record.__dict__.items()
            if key not in _RECORD_ATTRS
        ]
        extra_info = ""
        if extra_items:
            extra_info = f"\n     {' '.join(extra_items)}"
        formatted_log = f"{metadata_line}\n{message_line}{extra_info}"
        if record.exc_info:
            # clickable "path:line" locations in editors
            format_exception = traceback.format_exception(*record.exc_info)
            format_exception = [
                re.sub(r'File "([^"]+)", line (\d+),', r'File "\1:\2"', line)
                for line in format_exception
            ]
            formatted_log += "\n" + "".join(format_exception)
        return formatted_log


class JSONFormatter(logging.Formatter):
    def format(self, record):
        log_dict = {
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "time": self.formatTime(record, self.datefmt),
        }
        if hasattr(record, "scope"):
            log_dict["scope"] = record.scope
        log_dict["location"] = {
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }
        for key, value in record.__dict__.items():
            if key not in _RECORD_ATTRS and key not in log_dict:
                log_dict[key] = stringify_extra(value)
        if record.exc_info:
            log_dict["exception"] = self.formatException(record.exc_info)
        return json.dumps(log_dict, ensure_ascii=False, default=str)


def setup_logger(name: str, include_location=False, use_json=None):
    """
    Return a logger with the pglit stream handler attached once.

    JSON output is chosen by `use_json` or, when it is None, by PGLIT_LOG_JSON.
    The level comes from PGLIT_LOG_LEVEL (default INFO).
    """
    if use_json is None:
        use_json = _env_flag("PGLIT_LOG_JSON")
    logger = logging.getLogger(name)
    if not any(isinstance(f, ContextFilter) for f in logger.filters):
        logger.addFilter(ContextFilter())

    if not any(isinstance(h, logging.StreamHandler) for h in logger.handlers):
        stream_handler = logging.StreamHandler(sys.stdout)
        stream_handler.setLevel(logging.DEBUG)
        if use_json:
            stream_handler.setFormatter(JSONFormatter())
        else:
            stream_handler.setFormatter(CustomFormatter(include_location=include_location))
        logger.addHandler(stream_handler)
    level = os.getenv("PGLIT_LOG_LEVEL", "INFO").strip().upper()
    logger.setLevel(logging.getLevelNamesMapping().get(level, logging.INFO))
    logger.propagate = False
    return logger
