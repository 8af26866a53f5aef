"""Utility functions for date handling."""

from __future__ import annotations

from datetime import date, timedelta


def add_days(start: date, days: int) -> date:
    """Return ``start`` shifted forward by ``days`` calendar days."""
    return start + timedelta(days=days)


def days_between(earlier: date, later: date) -> int:
    """Absolute number of calendar days between two dates."""
    return abs((later - earlier).days)


def format_date(value: date | None, empty: str = "-") -> str:
    return value.isoformat() if value is not None else empty
