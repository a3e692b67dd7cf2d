"""Snapshot fingerprints for background generation.

A fingerprint identifies *what* a draft was generated from. Two snapshots with
the same content produce the same fingerprint no matter the key order of any
nested object; list order is significant.
"""

from __future__ import annotations

import hashlib
import json
from datetime import date, datetime, time
from decimal import Decimal
from enum import Enum
from typing import Any, Mapping, Optional
from uuid import UUID

from pydantic import BaseModel

EMPTY_FINGERPRINT = ""


def _json_default(value: Any) -> Any:
    if isinstance(value, BaseModel):
        return value.model_dump(mode="json")
    if isinstance(value, (datetime, date, time)):
        return value.isoformat()
    if isinstance(value, (Decimal, UUID)):
        return str(value)
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, (set, frozenset)):
        return sorted(value, key=repr)
    raise TypeError(f"Value of type {type(value).__name__} is not fingerprintable")


def canonical_json(snapshot: Optional[Mapping[str, Any]]) -> str:
    """Serialize a snapshot with keys sorted at every depth."""
    return json.dumps(
        snapshot or {},
        sort_keys=True,
        separators=(",", ":"),
        ensure_ascii=False,
        default=_json_default,
    )


def fingerprint(snapshot: Optional[Mapping[str, Any]]) -> str:
    """Return the fingerprint of `snapshot`, or "" when there is nothing to generate."""
    if not snapshot:
        return EMPTY_FINGERPRINT
    return hashlib.sha256(canonical_json(snapshot).encode("utf-8")).hexdigest()
