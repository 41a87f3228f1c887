"""
Canonical serialization for deterministic hashing.

All link fields and structured content go through these functions so that
any implementation produces byte-identical digest input.
"""

import json
from datetime import datetime, timezone
from typing import Any


def canonicalize(obj: Any) -> Any:
    """
    Convert arbitrary nested dict/list to canonical form.

    Rules:
    - dict keys sorted alphabetically
    - tuples converted to lists
    - recursive normalization
    """
    if isinstance(obj, dict):
        return {k: canonicalize(obj[k]) for k in sorted(obj.keys())}
    if isinstance(obj, (list, tuple)):
        return [canonicalize(x) for x in obj]
    return obj


def canonical_json_bytes(obj: Any) -> bytes:
    """
    Deterministic JSON bytes for hashing.

    Guarantees:
    - sort_keys=True (secondary safety)
    - separators remove whitespace
    - ensure_ascii=False keeps UTF-8 stable
    - canonical preprocessing via canonicalize()

    Returns:
        UTF-8 encoded JSON bytes
    """
    canon = canonicalize(obj)
    s = json.dumps(canon, sort_keys=True, separators=(",", ":"), ensure_ascii=False)
    return s.encode("utf-8")


def canonical_json_str(obj: Any) -> str:
    """Same guarantees as canonical_json_bytes but returns string."""
    return canonical_json_bytes(obj).decode("utf-8")


def format_timestamp(ts: datetime) -> str:
    """
    Render a timestamp as ISO-8601 UTC with microsecond precision.

    Naive datetimes are taken to be UTC already.

    Example:
        2026-02-03T12:00:00.000000Z
    """
    if ts.tzinfo is None:
        ts = ts.replace(tzinfo=timezone.utc)
    return ts.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%S.%fZ")


def parse_timestamp(value: str) -> datetime:
    """Parse a timestamp written by format_timestamp (or any ISO-8601 string)."""
    if value.endswith("Z"):
        value = value[:-1] + "+00:00"
    ts = datetime.fromisoformat(value)
    if ts.tzinfo is None:
        ts = ts.replace(tzinfo=timezone.utc)
    return ts.astimezone(timezone.utc)
