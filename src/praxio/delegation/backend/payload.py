"""Typed field readers for provider JSON payloads."""

from __future__ import annotations

import json
from typing import Any

from praxio.delegation.errors import ResponseParseError

PAYLOAD_FORMAT = "json"


class PayloadFieldError(ValueError):
    """Required payload field is missing or has the wrong type."""


def load_payload(text: str) -> dict[str, Any]:
    """Decode provider stdout and validate top-level object type."""

    try:
        payload = json.loads(text)
    except json.JSONDecodeError as error:
        raise ResponseParseError(format=PAYLOAD_FORMAT, cause=str(error)) from error
    if not isinstance(payload, dict):
        raise ResponseParseError(
            format=PAYLOAD_FORMAT,
            cause=f"expected JSON object, got {type(payload).__name__}",
        )
    return payload


def require_object(raw: dict[str, Any], key: str, path: str) -> dict[str, Any]:
    value = raw.get(key)
    if not isinstance(value, dict):
        raise PayloadFieldError(f"{path}.{key} must be an object")
    return value


def require_str(raw: dict[str, Any], key: str, path: str) -> str:
    value = raw.get(key)
    if not isinstance(value, str):
        raise PayloadFieldError(f"{path}.{key} must be a string")
    return value


def optional_str(raw: dict[str, Any], key: str, path: str) -> str | None:
    value = raw.get(key)
    if value is not None and not isinstance(value, str):
        raise PayloadFieldError(f"{path}.{key} must be a string when provided")
    return value


def require_bool(raw: dict[str, Any], key: str, path: str) -> bool:
    value = raw.get(key)
    if not isinstance(value, bool):
        raise PayloadFieldError(f"{path}.{key} must be a boolean")
    return value


def require_int(raw: dict[str, Any], key: str, path: str) -> int:
    value = raw.get(key)
    if not _is_count(value):
        raise PayloadFieldError(f"{path}.{key} must be a non-negative integer")
    return int(value)


def optional_int(raw: dict[str, Any], key: str, path: str) -> int | None:
    value = raw.get(key)
    if value is None:
        return None
    if not _is_count(value):
        raise PayloadFieldError(f"{path}.{key} must be a non-negative integer when provided")
    return int(value)


def count_or_zero(raw: dict[str, Any], key: str, path: str) -> int:
    """Read an optional counter, treating absence as zero."""

    return optional_int(raw, key, path) or 0


def optional_float(raw: dict[str, Any], key: str, path: str) -> float | None:
    value = raw.get(key)
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, int | float):
        raise PayloadFieldError(f"{path}.{key} must be a number when provided")
    return float(value)


def _is_count(value: object) -> bool:
    return isinstance(value, int) and not isinstance(value, bool) and value >= 0
