"""Timestamp parsing for API responses."""

from datetime import UTC, datetime


def parse_timestamp(value: str | int | float | None) -> datetime | None:
    """
    Parse an ISO 8601 string (``Z`` suffix allowed) or a Unix timestamp.

    Returns None for missing or unparseable values.
    """
    if value is None or value == "":
        return None
    if isinstance(value, (int, float)):
        return datetime.fromtimestamp(value, tz=UTC)
    try:
        parsed = datetime.fromisoformat(value)
    except ValueError:
        return None
    return parsed if parsed.tzinfo else parsed.replace(tzinfo=UTC)
