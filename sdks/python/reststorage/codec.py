"""Encoding helpers for values, response bodies and timestamps."""

import base64
import binascii
import re
from datetime import datetime, timezone
from typing import Any

import httpx

from .exceptions import DecodeError

_RFC3339 = re.compile(
    r"[0-9]{4}-[0-9]{2}-[0-9]{2}[Tt][0-9]{2}:[0-9]{2}:[0-9]{2}(\.[0-9]+)?([Zz]|[+-][0-9]{2}:[0-9]{2})"
)


def encode_value(value: bytes) -> str:
    """Encode raw bytes as standard, padded base64 text."""
    return base64.b64encode(value).decode("ascii")


def decode_value(text: Any) -> bytes:
    """Decode base64 text produced by the remote service.

    Raises:
        DecodeError: if the text is not a string or is not valid base64
    """
    if not isinstance(text, str):
        raise DecodeError(f"Expected base64 string, got {type(text).__name__}")
    try:
        return base64.b64decode(text, validate=True)
    except (binascii.Error, ValueError) as e:
        raise DecodeError(f"Malformed base64 value: {e}") from e


def decode_body(response: httpx.Response) -> dict:
    """Parse a JSON object from the response body."""
    try:
        data = response.json()
    except ValueError as e:
        raise DecodeError(f"Failed to parse response: {e}") from e
    if not isinstance(data, dict):
        raise DecodeError(f"Expected JSON object, got {type(data).__name__}")
    return data


def require_field(body: dict, name: str, kind: type) -> Any:
    """Return ``body[name]``, refusing missing or mistyped fields."""
    if name not in body:
        raise DecodeError(f"Response is missing field '{name}'")
    value = body[name]
    # bool is an int subclass; never accept it where a number is expected
    if not isinstance(value, kind) or (kind is int and isinstance(value, bool)):
        raise DecodeError(
            f"Field '{name}' should be {kind.__name__}, got {type(value).__name__}"
        )
    return value


def parse_timestamp(text: Any) -> datetime:
    """Parse an RFC3339 timestamp such as ``2024-05-01T12:00:00Z``.

    The offset is mandatory; naive timestamps are rejected rather than
    assumed to be UTC.
    """
    if not isinstance(text, str) or not _RFC3339.fullmatch(text):
        raise DecodeError(f"Malformed RFC3339 timestamp: {text!r}")
    try:
        return datetime.fromisoformat(text.upper())
    except ValueError as e:
        raise DecodeError(f"Malformed RFC3339 timestamp: {text!r}") from e


def format_timestamp(value: datetime) -> str:
    """Format a datetime as RFC3339, using ``Z`` for UTC."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    text = value.isoformat()
    if text.endswith("+00:00"):
        text = text[:-6] + "Z"
    return text
