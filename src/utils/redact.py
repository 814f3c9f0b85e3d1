"""Header redaction for logging."""

from typing import Iterable

# Headers whose values must never appear in logs
SENSITIVE_HEADERS = frozenset({
    "authorization",
    "cookie",
    "proxy-authorization",
    "set-cookie",
    "x-api-key",
    "x-webhook-secret-token",
})

REDACTED_VALUE = "[REDACTED]"


def redact_headers(headers: Iterable[tuple[str, str]]) -> dict[str, str]:
    """Copy ``(name, value)`` pairs into a dict with sensitive values masked."""
    result: dict[str, str] = {}
    for key, value in headers:
        result[key] = REDACTED_VALUE if key.lower() in SENSITIVE_HEADERS else value
    return result
