"""Ledger date parsing and month labels.

Spreadsheet exports carry dates as native date cells, as serial day numbers
(days since 1899-12-30) or as text. Values that cannot be interpreted fall
back to "now"; the fallback is reported to the caller through
:attr:`ParsedDate.fallback` so it can be counted and surfaced.
"""

from __future__ import annotations

from datetime import date, datetime, timedelta
from typing import Any, NamedTuple

# Serial 25569 is 1970-01-01 in the spreadsheet day count.
_UNIX_EPOCH = datetime(1970, 1, 1)
_SERIAL_UNIX_EPOCH = 25569

_TEXT_FORMATS: tuple[str, ...] = (
    "%Y/%m/%d",
    "%Y/%m/%d %H:%M:%S",
    "%Y-%m-%d %H:%M:%S",
    "%Y.%m.%d",
    "%m/%d/%Y",
    "%Y%m%d",
    "%b %d, %Y",
    "%B %d, %Y",
    "%d-%b-%Y",
    "%d %b %Y",
)

_MONTH_ABBR: tuple[str, ...] = (
    "Jan", "Feb", "Mar", "Apr", "May", "Jun",
    "Jul", "Aug", "Sep", "Oct", "Nov", "Dec",
)  # fmt: skip


class ParsedDate(NamedTuple):
    value: datetime
    fallback: bool


def from_serial(serial: float) -> datetime:
    """Convert a spreadsheet serial day number to a naive datetime."""

    millis = round((serial - _SERIAL_UNIX_EPOCH) * 86400 * 1000)
    return _UNIX_EPOCH + timedelta(milliseconds=millis)


def _parse_text(text: str) -> datetime | None:
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        parsed = None
    if parsed is not None:
        return parsed.replace(tzinfo=None)
    for fmt in _TEXT_FORMATS:
        try:
            return datetime.strptime(text, fmt)
        except ValueError:
            continue
    return None


def parse_ledger_date(value: Any, *, now: datetime | None = None) -> ParsedDate:
    """Interpret a ledger date cell.

    - ``datetime``: returned as-is; ``date``: promoted to midnight.
    - ``int``/``float``: spreadsheet serial day number.
    - ``str``: ISO-8601, then a fixed list of common ledger formats.
    - Missing, falsy, out-of-range or unparsable values resolve to ``now``
      with ``fallback=True``.
    """

    def _fallback() -> ParsedDate:
        return ParsedDate(now or datetime.now(), True)

    if not value:
        return _fallback()
    if isinstance(value, datetime):
        return ParsedDate(value, False)
    if isinstance(value, date):
        return ParsedDate(datetime(value.year, value.month, value.day), False)
    if isinstance(value, bool):
        return _fallback()
    if isinstance(value, int | float):
        try:
            return ParsedDate(from_serial(float(value)), False)
        except (OverflowError, ValueError):
            return _fallback()
    parsed = _parse_text(str(value).strip())
    if parsed is None:
        return _fallback()
    return ParsedDate(parsed, False)


def month_label(dt: datetime) -> str:
    """Short English month plus two-digit year, e.g. ``"Jan 25"``."""

    return f"{_MONTH_ABBR[dt.month - 1]} {dt.year % 100:02d}"


__all__ = ["ParsedDate", "from_serial", "month_label", "parse_ledger_date"]
