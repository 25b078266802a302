"""Utilities for deterministic JSON serialization of session records."""

from __future__ import annotations

import json
from datetime import UTC, datetime
from typing import Any


def json_dumps(value: Any, *, indent: int | None = None) -> str:
    """Serialize plain records (as built by ``Session.to_dict``) to a deterministic JSON string."""
    separators = (",", ":") if indent is None else None
    return json.dumps(value, sort_keys=True, ensure_ascii=True, separators=separators, indent=indent)


def format_timestamp(value: datetime) -> str:
    """Render a timestamp as ISO-8601 UTC with millisecond precision."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=UTC)
    return value.astimezone(UTC).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def parse_timestamp(value: Any) -> datetime | None:
    """Inverse of ``format_timestamp``; accepts ``None`` and datetimes as-is."""
    if value is None:
        return None
    if isinstance(value, datetime):
        return value if value.tzinfo is not None else value.replace(tzinfo=UTC)
    text = str(value)
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    parsed = datetime.fromisoformat(text)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed
