"""Helpers for keeping secrets out of error messages.

Auth0 may reflect the request body in error responses, so any vendor text
surfaced to callers goes through ``sanitize_error_message`` first.
"""

import re
from typing import Iterable, Optional

REDACTED = "[REDACTED]"
MAX_ERROR_LENGTH = 500

_JSON_SECRET_PATTERN = re.compile(r'"client_secret"\s*:\s*"[^"]*"', re.IGNORECASE)
_FORM_SECRET_PATTERN = re.compile(r"client_secret=[^&\s]*", re.IGNORECASE)
_BEARER_PATTERN = re.compile(
    r"Bearer\s+[A-Za-z0-9\-_]+\.[A-Za-z0-9\-_]+\.[A-Za-z0-9\-_]*", re.IGNORECASE
)


def truncate(message: str, max_length: int = MAX_ERROR_LENGTH) -> str:
    """Limit a message to ``max_length`` characters."""
    if len(message) > max_length:
        return message[:max_length] + "..."
    return message


def sanitize_error_message(
    message: str,
    secrets: Iterable[Optional[str]] = (),
    max_length: int = MAX_ERROR_LENGTH,
) -> str:
    """Remove secret-like substrings from ``message`` and bound its length.

    Args:
        message: Raw error text, typically a response body
        secrets: Literal secret values that must never appear in the output
        max_length: Maximum length of the returned message

    Returns:
        Sanitized message
    """
    sanitized = _JSON_SECRET_PATTERN.sub(f'"client_secret":"{REDACTED}"', message)
    sanitized = _FORM_SECRET_PATTERN.sub(f"client_secret={REDACTED}", sanitized)
    sanitized = _BEARER_PATTERN.sub(f"Bearer {REDACTED}", sanitized)

    for secret in secrets:
        if secret:
            sanitized = sanitized.replace(secret, REDACTED)

    return truncate(sanitized, max_length)
