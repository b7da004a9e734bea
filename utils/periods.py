from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Annotated, List, Optional, Tuple

from pydantic import BeforeValidator


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def to_iso(value: datetime) -> str:
    """Fixed-width UTC ISO-8601 (``2025-01-31T00:00:00.000Z``); sorts as text the same as in time."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def parse_iso_datetime(raw: str) -> datetime:
    """Parse an ISO date or date-time string; naive values are taken as UTC.

    Raises ``ValueError`` for anything unparseable.
    """
    if not isinstance(raw, str) or not raw.strip():
        raise ValueError("empty date")
    text = raw.strip()
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"
    parsed = datetime.fromisoformat(text)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    try:
        return parsed.astimezone(timezone.utc)
    except OverflowError:
        raise ValueError(f"date out of range: {raw!r}") from None


def month_start(value: datetime) -> datetime:
    """First instant of the value's month, in UTC."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    value = value.astimezone(timezone.utc)
    return datetime(value.year, value.month, 1, tzinfo=timezone.utc)


def add_months(year: int, month: int, delta: int) -> Tuple[int, int]:
    index = year * 12 + (month - 1) + delta
    return index // 12, index % 12 + 1


def month_bounds(year: int, month: int) -> Tuple[datetime, datetime]:
    """Canonical ``[start, end)`` for a calendar month in UTC."""
    next_year, next_month = add_months(year, month, 1)
    start = datetime(year, month, 1, tzinfo=timezone.utc)
    end = datetime(next_year, next_month, 1, tzinfo=timezone.utc)
    return start, end


def trailing_months(months: int, now: Optional[datetime] = None) -> Tuple[datetime, datetime, List[str]]:
    """Window covering the current month and the ``months - 1`` before it.

    Returns ``(start, end, keys)`` where keys are ``YYYY-MM`` labels in order.
    """
    current = month_start(now or utcnow())
    first_year, first_month = add_months(current.year, current.month, -(months - 1))
    start = datetime(first_year, first_month, 1, tzinfo=timezone.utc)
    _, end = month_bounds(current.year, current.month)
    keys = []
    for i in range(months):
        y, m = add_months(first_year, first_month, i)
        keys.append(f"{y:04d}-{m:02d}")
    return start, end, keys


def inclusive_end(to: datetime) -> datetime:
    """Exclusive upper bound for a user-supplied ``to``; a bare midnight covers that whole day."""
    if to.hour == 0 and to.minute == 0 and to.second == 0 and to.microsecond == 0:
        return to + timedelta(days=1)
    return to


def coerce_datetime(value):
    """Pydantic ``before`` hook: accept ISO dates as well as date-times."""
    if isinstance(value, str):
        try:
            return parse_iso_datetime(value)
        except ValueError as exc:
            raise ValueError(f"invalid date: {value!r}") from exc
    return value


IsoDateTime = Annotated[datetime, BeforeValidator(coerce_datetime)]
