"""Deterministic byte encoding of identity keys."""

from __future__ import annotations

import base64
import json
import math
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Mapping
from uuid import UUID

from .errors import CanonicalizationError
from .resolvers import format_timestamp


def _encode(value: Any) -> str:
    return json.dumps(value, sort_keys=True, separators=(",", ":"), ensure_ascii=False, allow_nan=False)


def _decimal(value: Decimal) -> Any:
    if value == value.to_integral_value():
        return int(value)
    as_float = float(value)
    if Decimal(repr(as_float)) == value:
        return as_float
    # Beyond double precision: keep every digit as text.
    return format(value.normalize(), "f")


def _normalize(value: Any) -> Any:
    if value is None or isinstance(value, (bool, str)):
        return value
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        if not math.isfinite(value):
            raise CanonicalizationError(f"non-finite number {value!r}")
        return int(value) if value.is_integer() else value
    if isinstance(value, Decimal):
        if not value.is_finite():
            raise CanonicalizationError(f"non-finite number {value!r}")
        return _decimal(value)
    if isinstance(value, (datetime, date)):
        return format_timestamp(value)
    if isinstance(value, UUID):
        return str(value)
    if isinstance(value, (bytes, bytearray)):
        return base64.b64encode(bytes(value)).decode("ascii")
    if isinstance(value, Mapping):
        normalized = {}
        for key, item in value.items():
            if not isinstance(key, str):
                raise CanonicalizationError(f"key names must be strings, got {type(key).__name__}")
            normalized[key] = _normalize(item)
        return normalized
    if isinstance(value, (list, tuple)):
        return [_normalize(item) for item in value]
    if isinstance(value, (set, frozenset)):
        return sorted((_normalize(item) for item in value), key=_encode)
    raise CanonicalizationError(f"unsupported value of type {type(value).__name__}")


def canonicalize(identity_key: Mapping[str, Any]) -> bytes:
    """Serialize an identity key independently of construction order.

    Keys are sorted, separators carry no whitespace and text is emitted as raw
    UTF-8, so equal content always yields equal bytes. Binary values are
    base64 text and sets are ordered by their own encoding.
    """

    return _encode(_normalize(identity_key)).encode("utf-8")


__all__ = ["canonicalize"]
