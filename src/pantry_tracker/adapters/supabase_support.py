"""Shared helpers for the Supabase repositories."""

from datetime import datetime
from enum import Enum
from typing import Any
from uuid import UUID

import httpx
from postgrest.exceptions import APIError

from pantry_tracker.errors import InfrastructureError


def execute(query: Any, action: str) -> Any:
    """Run a PostgREST query, turning transport and API failures into one error."""
    try:
        return query.execute()
    except (APIError, httpx.HTTPError) as exc:
        raise InfrastructureError(f"Failed to {action}: {exc}") from exc


def first_row(response: Any, action: str) -> dict[str, Any]:
    """Return the single row of a write response."""
    if not response.data:
        raise InfrastructureError(f"Failed to {action}: empty response")
    return response.data[0]


def escape_like(text: str) -> str:
    """Escape LIKE wildcards so the text matches literally."""
    return text.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def to_row(payload: dict[str, object]) -> dict[str, object]:
    """Serialize domain values for a JSON request body."""
    row: dict[str, object] = {}
    for key, value in payload.items():
        if isinstance(value, datetime):
            row[key] = value.isoformat()
        elif isinstance(value, UUID):
            row[key] = str(value)
        elif isinstance(value, Enum):
            row[key] = value.value
        else:
            row[key] = value
    return row


def parse_datetime(value: object) -> datetime | None:
    """Parse an ISO timestamp column."""
    if isinstance(value, datetime):
        return value
    if isinstance(value, str) and value:
        return datetime.fromisoformat(value.replace("Z", "+00:00"))
    return None


def parse_float(value: object) -> float | None:
    if value is None or isinstance(value, bool):
        return None
    return float(value)
