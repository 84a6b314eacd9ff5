"""
Redaction utilities for Dhan API interactions.

Access tokens and client ids never appear in logs or API responses.
"""

from typing import Any

SENSITIVE_HEADER_PATTERNS = {
    "access-token",
    "client-id",
    "authorization",
}

SENSITIVE_BODY_PATTERNS = {
    "clientid",
    "dhanclientid",
    "token",
    "password",
    "secret",
}

REDACTED = "[REDACTED]"


def is_sensitive_header(header_name: str) -> bool:
    """Check if a header name is sensitive."""
    lower_name = header_name.lower()
    return any(pattern in lower_name for pattern in SENSITIVE_HEADER_PATTERNS)


def is_sensitive_field(field_name: str) -> bool:
    """Check if a body field name is sensitive."""
    lower_name = field_name.lower().replace("_", "")
    return any(pattern in lower_name for pattern in SENSITIVE_BODY_PATTERNS)


def redact_headers(headers: dict[str, str]) -> dict[str, str]:
    """Return a copy of headers with sensitive values replaced."""
    return {k: REDACTED if is_sensitive_header(k) else v for k, v in headers.items()}


def redact_body(data: Any, depth: int = 0) -> Any:
    """
    Recursively redact sensitive fields from a JSON body.

    Args:
        data: Decoded JSON (dict, list or scalar)
        depth: Current recursion depth

    Returns:
        Copy of data with sensitive values replaced by [REDACTED]
    """
    if depth > 10:
        return data
    if isinstance(data, dict):
        return {
            key: REDACTED if is_sensitive_field(key) else redact_body(value, depth + 1)
            for key, value in data.items()
        }
    if isinstance(data, list):
        return [redact_body(item, depth + 1) for item in data]
    return data


def safe_log_request(
    method: str,
    url: str,
    headers: dict[str, str] | None = None,
    body: dict[str, Any] | None = None,
) -> dict[str, Any]:
    """Create a safe-to-log representation of an HTTP request."""
    return {
        "method": method,
        "url": url,
        "headers": redact_headers(headers) if headers else None,
        "body": redact_body(body) if body else None,
    }
