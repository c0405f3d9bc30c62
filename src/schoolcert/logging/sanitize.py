"""Sensitive data sanitization for log output.

Provides :func:`sanitize_for_logs` which redacts signing keys, API
secrets and passwords from data structures before they are written to
log files.  Public values (addresses, transaction hashes, names) are
preserved.
"""

from __future__ import annotations

import re
from typing import Any

REDACTED = "[REDACTED]"

# Mapping keys whose values are always secret
_SECRET_KEYS = frozenset(
    {
        "private_key",
        "privatekey",
        "api_secret",
        "pinata_secret_api_key",
        "secret",
        "password",
        "passwd",
    }
)

# password=... inside a libpq conninfo string
_CONNINFO_PASSWORD_RE = re.compile(r"(password=)\S+")

# user:password@ inside a URL
_URL_PASSWORD_RE = re.compile(r"(://[^:/@\s]+:)[^@\s]+(@)")


def _is_secret_key(key: Any) -> bool:  # noqa: ANN401
    return isinstance(key, str) and key.lower().replace("-", "_") in _SECRET_KEYS


def sanitize_string(value: str) -> str:
    """Redact passwords embedded in conninfo strings and URLs."""
    value = _CONNINFO_PASSWORD_RE.sub(rf"\g<1>{REDACTED}", value)
    return _URL_PASSWORD_RE.sub(rf"\g<1>{REDACTED}\g<2>", value)


def sanitize_for_logs(data: Any) -> Any:  # noqa: ANN401
    """Recursively sanitize sensitive material in *data*.

    Handles dicts, lists, tuples and plain strings.  Non-empty values
    stored under secret-looking keys are replaced wholesale; strings
    are scanned for embedded passwords.  Non-sensitive data passes
    through unchanged.
    """
    if isinstance(data, dict):
        return {
            k: (REDACTED if _is_secret_key(k) and v else sanitize_for_logs(v))
            for k, v in data.items()
        }

    if isinstance(data, (list, tuple)):
        return type(data)(sanitize_for_logs(item) for item in data)

    if isinstance(data, str):
        return sanitize_string(data)

    return data
