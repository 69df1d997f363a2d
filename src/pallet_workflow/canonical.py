from __future__ import annotations

import hashlib
from datetime import date, datetime
from enum import Enum
from typing import Any

import rfc8785
from pydantic import BaseModel

_JSON_SCALARS = (bool, int, float, str, type(None))


def _to_json_value(value: Any) -> Any:
    """Models are dumped by alias so the canonical form matches the stored record."""
    if isinstance(value, _JSON_SCALARS):
        return value

    if isinstance(value, BaseModel):
        return _to_json_value(value.model_dump(mode="json", by_alias=True))

    if isinstance(value, dict):
        return {str(k): _to_json_value(v) for k, v in value.items()}

    if isinstance(value, (list, tuple)):
        return [_to_json_value(item) for item in value]

    if isinstance(value, Enum):
        return _to_json_value(value.value)

    if isinstance(value, (datetime, date)):
        return value.isoformat()

    raise TypeError(f"{type(value).__name__} has no canonical JSON form")


def to_canonical_json(value: Any) -> str:
    """Serialize a value to byte-for-byte reproducible JSON per RFC 8785."""
    return rfc8785.dumps(_to_json_value(value)).decode("utf-8")


def fingerprint(value: Any) -> str:
    """SHA-256 hex digest of the canonical JSON form of ``value``."""
    return hashlib.sha256(to_canonical_json(value).encode("utf-8")).hexdigest()
