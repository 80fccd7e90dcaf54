"""UTC time helpers. Deadlines, reminders and audit timestamps are always timezone-aware UTC."""

from datetime import UTC, datetime, timedelta

DURATION_UNITS = ("hours", "days")


def utc_now() -> datetime:
    return datetime.now(UTC)


def ensure_utc(dt: datetime | None) -> datetime | None:
    """Normalize a value read from storage: naive means UTC, aware is converted."""
    if dt is None:
        return None
    if dt.tzinfo is None:
        return dt.replace(tzinfo=UTC)
    return dt.astimezone(UTC)


def duration(amount: float, unit: str) -> timedelta:
    """Turn a template deadline or SLA threshold into a timedelta.

    Args:
        amount: Number of units; fractions are allowed.
        unit: One of DURATION_UNITS (the DEADLINE_UNIT setting).

    Raises:
        ValueError: For any other unit.
    """
    if unit not in DURATION_UNITS:
        raise ValueError(f"Unsupported duration unit: {unit!r}")
    return timedelta(**{unit: amount})
