"""
Error message sanitization.

Upstream service and database errors can carry connection details or
credentials. Anything on its way to a client through the internal-error path
is passed through ``sanitize_error_message`` first.
"""

import re
from typing import Any, List, Tuple

REDACTED = '[REDACTED]'

# Applied in order, case-insensitively.
REDACTION_RULES: List[Tuple[re.Pattern, str]] = [
    (re.compile(r'connection string ".*?"', re.IGNORECASE), REDACTED),
    (re.compile(r'password[:\s].*?[\s"]', re.IGNORECASE), f'{REDACTED} '),
    (re.compile(r'user:.*?@', re.IGNORECASE), f'{REDACTED}@'),
]

# Phrases that must never survive sanitization, whatever surrounds them.
SENSITIVE_PHRASES = re.compile(r'password|connection string', re.IGNORECASE)


def sanitize_error_message(message: Any) -> str:
    """
    Redact credential-like fragments from an error message.

    The three redaction rules strip connection strings, ``password: ...``
    fragments and ``user:...@`` prefixes. A final sweep removes any leftover
    mention of ``password`` or ``connection string`` that the rules could not
    anchor on. The result is stable: sanitizing it again returns it unchanged.
    """
    text = message if isinstance(message, str) else str(message)

    for pattern, replacement in REDACTION_RULES:
        text = pattern.sub(replacement, text)

    return SENSITIVE_PHRASES.sub(REDACTED, text)


def contains_sensitive_data(message: str) -> bool:
    return SENSITIVE_PHRASES.search(message) is not None


__all__ = [
    'REDACTED',
    'REDACTION_RULES',
    'SENSITIVE_PHRASES',
    'sanitize_error_message',
    'contains_sensitive_data',
]
