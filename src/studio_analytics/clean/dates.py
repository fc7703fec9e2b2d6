"""Date normalization for time-bucketed views.

Sheet exports carry dates in several shapes: ``DD/MM/YYYY`` (the studio
default), ISO strings, and free text. `parse_date` turns any of them into
calendar components or None; it never raises, and callers treat None as
"exclude from time-bucketed views".
"""

from __future__ import annotations

import re
import warnings
from dataclasses import dataclass
from datetime import date, datetime
from typing import Any

import pandas as pd

DDMMYYYY_RE = re.compile(r"^(\d{1,2})/(\d{1,2})/(\d{4})$")

MONTH_NAMES = (
    "Jan", "Feb", "Mar", "Apr", "May", "Jun",
    "Jul", "Aug", "Sep", "Oct", "Nov", "Dec",
)


@dataclass(frozen=True)
class DateParts:
    """Calendar components of a parsed date.

    Attributes:
        year: Four-digit year.
        month: Month number (1-12).
        day: Day of month.
    """
    year: int
    month: int
    day: int

    @property
    def quarter(self) -> int:
        return (self.month - 1) // 3 + 1

    @property
    def month_key(self) -> str:
        """Grouping and sort key in ``YYYY-MM`` form."""
        return f"{self.year:04d}-{self.month:02d}"

    @property
    def year_key(self) -> str:
        return f"{self.year:04d}"

    def to_date(self) -> date:
        return date(self.year, self.month, self.day)

    @classmethod
    def from_date(cls, value: date) -> DateParts:
        return cls(year=value.year, month=value.month, day=value.day)


def _parse_generic(text: str) -> DateParts | None:
    """Fallback parser for anything that is not ``DD/MM/YYYY``."""
    # pandas reads keywords such as "now" and "today" as the current date
    if not any(ch.isdigit() for ch in text):
        return None
    with warnings.catch_warnings():
        # pandas warns when it has to guess a format for free text
        warnings.simplefilter("ignore")
        try:
            ts = pd.to_datetime(text, errors="coerce")
        except (ValueError, TypeError, OverflowError):
            return None
    if pd.isna(ts):
        return None
    return DateParts(year=int(ts.year), month=int(ts.month), day=int(ts.day))


def parse_date(value: Any) -> DateParts | None:
    """Parse a date value into `DateParts`, or None when it cannot be read.

    ``DD/MM/YYYY`` strings are matched strictly and read day-first; an
    impossible calendar date such as ``31/02/2024`` yields None. Every other
    string goes through generic parsing. `date` and `datetime` objects pass
    straight through.

    Args:
        value: Date string (or date object) from a record.

    Returns:
        `DateParts`, or None for empty, malformed or unparseable input.
    """
    if isinstance(value, datetime):
        return DateParts(year=value.year, month=value.month, day=value.day)
    if isinstance(value, date):
        return DateParts.from_date(value)
    if not isinstance(value, str):
        return None

    text = value.strip()
    if not text:
        return None

    m = DDMMYYYY_RE.match(text)
    if m:
        day, month, year = (int(g) for g in m.groups())
        try:
            return DateParts.from_date(date(year, month, day))
        except ValueError:
            return None

    return _parse_generic(text)


def month_key(value: Any) -> str | None:
    """Return the ``YYYY-MM`` key for a date value, or None."""
    parts = parse_date(value)
    return parts.month_key if parts else None


def year_key(value: Any) -> str | None:
    """Return the ``YYYY`` key for a date value, or None."""
    parts = parse_date(value)
    return parts.year_key if parts else None


def parse_month_year(value: Any) -> DateParts | None:
    """Parse a payroll month label such as ``"Jan-2024"`` (day is set to 1).

    Falls back to `parse_date` for anything else.
    """
    if isinstance(value, str):
        text = value.strip()
        for fmt in ("%b-%Y", "%B-%Y", "%b %Y", "%B %Y"):
            try:
                parsed = datetime.strptime(text, fmt)
            except ValueError:
                continue
            return DateParts(year=parsed.year, month=parsed.month, day=1)
    return parse_date(value)


def recent_months(count: int = 18, today: date | None = None) -> list[dict[str, Any]]:
    """Return month descriptors from the current month backwards.

    Args:
        count: Number of months to generate (default 18).
        today: Reference date; defaults to the current date.

    Returns:
        List of dicts with ``key`` (``YYYY-MM``), ``display`` (``"Jan 2024"``),
        ``year``, ``month`` and ``quarter``, most recent first.
    """
    today = today or date.today()
    year, month = today.year, today.month
    months: list[dict[str, Any]] = []

    for _ in range(max(0, count)):
        parts = DateParts(year=year, month=month, day=1)
        months.append(
            {
                "key": parts.month_key,
                "display": f"{MONTH_NAMES[month - 1]} {year}",
                "year": year,
                "month": month,
                "quarter": parts.quarter,
            }
        )
        month -= 1
        if month == 0:
            month = 12
            year -= 1

    return months


def current_month_key(today: date | None = None) -> str:
    return DateParts.from_date(today or date.today()).month_key


def is_current_year(key: str, today: date | None = None) -> bool:
    """Return True when a ``YYYY-MM`` (or ``YYYY``) key falls in the current year."""
    return key.startswith(str((today or date.today()).year))
