"""
UTC timestamp and identifier helpers (stdlib-only).

Persisted entities carry second-resolution UTC timestamps, matching
MySQL ``DATETIME`` columns without fractional precision.

Tags:
    timestamps, uuid, utc, datetime, tagmap
"""

import uuid
from datetime import UTC, datetime

TIMESTAMP_FORMAT = "%Y-%m-%dT%H:%M:%SZ"


def utc_now() -> datetime:
    """Get current UTC datetime."""
    return datetime.now(UTC)


def utc_now_seconds() -> datetime:
    """Current UTC datetime truncated to whole seconds."""
    return utc_now().replace(microsecond=0)


def new_id() -> uuid.UUID:
    """Generate a new random identifier."""
    return uuid.uuid4()


def format_timestamp(dt: datetime) -> str:
    """Render *dt* in the fixed external format (naive values are taken as UTC)."""
    if dt.tzinfo is not None:
        dt = dt.astimezone(UTC)
    return dt.strftime(TIMESTAMP_FORMAT)


def parse_timestamp(value: str) -> datetime:
    """Parse ISO 8601 text (including a trailing ``Z``) to a datetime."""
    if value.endswith("Z"):
        value = value[:-1] + "+00:00"
    return datetime.fromisoformat(value)
