"""Redaction of server internals from client-facing error messages.

Only messages of unexpected failures pass through here. Row messages
quote MAC addresses, extensions and model names back to the operator and
are returned untouched, so none of the patterns below match those.
"""

import re
from typing import Optional

MAX_MESSAGE_LENGTH = 500

# Applied in order; connection strings before the bare credential patterns
_REDACTIONS: list[tuple[re.Pattern, str]] = [
    (re.compile(r"postgres(?:ql)?://\S+", re.IGNORECASE), "[DATABASE_URL]"),
    (re.compile(r"DATABASE_URL\s*[=:]\s*\S+"), "DATABASE_URL=[REDACTED]"),
    (re.compile(r"\b(password|passwd|secret)\s*[=:]\s*[^\s,;]+", re.IGNORECASE), r"\1=[REDACTED]"),
    (re.compile(r"Traceback \(most recent call last\):.*?(?=\n\S|\Z)", re.DOTALL), "[STACK_TRACE]"),
    (re.compile(r'File "[^"]+", line \d+'), 'File "[REDACTED]"'),
    (re.compile(r"(?<![\w:])/(?:home|root|usr|var|etc|opt|srv|tmp|app)/[^\s,;:]+"), "[FILE_PATH]"),
]


def sanitize_error_message(message: str, error_type: Optional[str] = None) -> str:
    """Strip connection strings, credentials, tracebacks and paths.

    Args:
        message: Raw error text
        error_type: Prefix for the returned message, e.g. "Internal server error"

    Returns:
        Text safe to put in an HTTP response body
    """
    for pattern, replacement in _REDACTIONS:
        message = pattern.sub(replacement, message or "")
    message = message.strip()

    if len(message) > MAX_MESSAGE_LENGTH:
        message = message[:MAX_MESSAGE_LENGTH] + "..."
    if not message:
        return error_type or "An error occurred"
    return f"{error_type}: {message}" if error_type else message
