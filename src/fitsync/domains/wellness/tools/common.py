"""Shared helpers for the wellness MCP tools."""

from __future__ import annotations

import json
from datetime import date, datetime
from typing import Any


def parse_day(value: str) -> datetime | None:
    """Parse an optional ISO date or datetime argument; empty means now.

    Raises:
        ValueError: If ``value`` is not ISO 8601.
    """
    if not value:
        return None
    return datetime.fromisoformat(value.strip().replace("Z", "+00:00"))


def to_json(payload: Any) -> str:
    return json.dumps(payload, default=_default)


def error_response(message: str) -> str:
    return json.dumps({"status": "error", "message": message})


def _default(value: Any) -> Any:
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")
