"""
Request body parsing.

Bodies are read as text and parsed strictly: an empty (or whitespace-only)
body and anything that is not standard JSON are rejected before validation
runs. ``NaN`` and ``Infinity`` literals are not JSON and are rejected too.
"""

import json
from typing import Any

from flask import request

from dealership.utils.exceptions import InputMalformedError

EMPTY_BODY_MESSAGE = 'Request body is required'
INVALID_JSON_MESSAGE = 'Invalid JSON in request body'


def _reject_constant(name: str) -> Any:
    raise ValueError(f"Unsupported JSON constant {name}")


def parse_json_text(text: str) -> Any:
    if not text or not text.strip():
        raise InputMalformedError(EMPTY_BODY_MESSAGE)
    try:
        return json.loads(text, parse_constant=_reject_constant)
    except ValueError as exc:
        raise InputMalformedError(INVALID_JSON_MESSAGE) from exc


def parse_json_body() -> Any:
    """Parse the current request's body, ignoring its declared content type."""
    return parse_json_text(request.get_data(as_text=True))


def require_path_id(value: str, entity: str) -> str:
    """Return the stripped path id, rejecting blank ids with 400."""
    value = (value or '').strip()
    if not value:
        raise InputMalformedError(f"{entity} ID is required")
    return value


__all__ = [
    'EMPTY_BODY_MESSAGE',
    'INVALID_JSON_MESSAGE',
    'parse_json_text',
    'parse_json_body',
    'require_path_id',
]
