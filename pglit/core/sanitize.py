"""
Credential redaction for pglit log output.

Connection strings travel through log records (which admin database was
contacted, which pool was opened). redact_conninfo masks the secret parts
before they are written anywhere:

    logger.info(f"Connecting with {redact_conninfo(conninfo)}")
"""

import re

from psycopg.conninfo import conninfo_to_dict, make_conninfo

# libpq parameters holding secrets
SENSITIVE_KEYS = frozenset({"password", "sslpassword"})

# Password embedded in a postgresql:// URL
_URL_PASSWORD = re.compile(r"(postgres(?:ql)?://[^:/@\s]+:)([^@\s]*)(@)", re.IGNORECASE)


def redact_conninfo(conninfo: str, redaction: str = "***") -> str:
    """
    Mask the password of a libpq connection string or URL.

    Args:
        conninfo: "key=value" connection string or postgresql:// URL

    Returns:
        The same connection string with the password replaced
    """
    if not conninfo:
        return conninfo
    if "://" in conninfo:
        return _URL_PASSWORD.sub(rf"\1{redaction}\3", conninfo)
    try:
        params = conninfo_to_dict(conninfo)
    except Exception:
        # unparsable input is never echoed back verbatim
        return redaction
    for key in SENSITIVE_KEYS & params.keys():
        params[key] = redaction
    return make_conninfo(**params)
