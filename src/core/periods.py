"""Helpers for monthly reference periods."""
from __future__ import annotations

from datetime import date, datetime


def month_start(value: date) -> date:
    """Return the first day of the month containing *value*."""
    return date(value.year, value.month, 1)


def parse_reference_month(value) -> date:
    """Normalize ``"YYYY-MM"``, ``"YYYY-MM-DD"``, a date or a datetime to a first-of-month date.

    Raises ``ValueError`` for anything else.
    """
    if isinstance(value, datetime):
        return month_start(value.date())
    if isinstance(value, date):
        return month_start(value)
    if isinstance(value, str):
        raw = value.strip()
        for fmt in ("%Y-%m", "%Y-%m-%d"):
            try:
                return month_start(datetime.strptime(raw, fmt).date())
            except ValueError:
                continue
    raise ValueError(f"Invalid reference month: {value!r}. Expected YYYY-MM.")


def period_label(value: date) -> str:
    """``date(2026, 3, 1)`` -> ``"2026-03"``."""
    return f"{value.year}-{value.month:02d}"
