"""
Redaction of credentials in log events.

The ops scripts handle service role keys, the federation manager token,
vault secret values and database passwords. None of them may reach a log line.
"""

from __future__ import annotations

from typing import Any
from urllib.parse import urlsplit, urlunsplit

REDACTED = "***REDACTED***"

# Matched as substrings of lower-cased field names: service_role_key,
# anon_key, manager_token, secret_value, Authorization, ...
SENSITIVE_KEY_FRAGMENTS = ("key", "token", "secret", "password", "authorization")


def is_sensitive_field(name: Any) -> bool:
    lowered = str(name).lower()
    return any(fragment in lowered for fragment in SENSITIVE_KEY_FRAGMENTS)


def redact(value: Any) -> Any:
    """Copy of *value* with sensitive mapping entries replaced, at any depth."""
    if isinstance(value, dict):
        return {k: REDACTED if is_sensitive_field(k) else redact(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [redact(item) for item in value]
    return value


def mask_database_url(url: str) -> str:
    """
    Hide credentials in a connection string, keeping scheme, host and database.

    postgresql://user:pw@db.example.com:5432/app -> postgresql://***@db.example.com:5432/app
    """
    if not url:
        return url
    parts = urlsplit(url)
    if "@" not in parts.netloc:
        return url
    host = parts.netloc.rsplit("@", 1)[1]
    return urlunsplit((parts.scheme, f"***@{host}", parts.path, "", ""))


def structlog_redaction_processor(_logger: Any, _method_name: str, event_dict: dict) -> dict:
    return redact(event_dict)
