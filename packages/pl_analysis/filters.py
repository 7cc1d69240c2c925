"""Dashboard filters and record search/sort for tabular views."""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from datetime import datetime
from typing import Any

from .dates import parse_ledger_date
from .mapping import FIELDS_BY_KEY
from .models import EnrichedRecord, StoreType

_AMOUNT_FIELDS = frozenset({"debit", "credit"})
_EXTRA_FIELDS = frozenset({"region", "store_type"})


@dataclass(frozen=True, slots=True)
class RecordFilter:
    """Equality filter on company, region and store type; ``None`` means all."""

    company: str | None = None
    region: str | None = None
    store_type: StoreType | None = None

    def accepts(self, record: EnrichedRecord) -> bool:
        if self.company is not None and record.company_name != self.company:
            return False
        if self.region is not None and record.region != self.region:
            return False
        if self.store_type is not None and record.store_type != self.store_type:
            return False
        return True

    @property
    def is_empty(self) -> bool:
        return self.company is None and self.region is None and self.store_type is None


def apply_filter(
    records: Iterable[EnrichedRecord], flt: RecordFilter | None
) -> list[EnrichedRecord]:
    if flt is None or flt.is_empty:
        return list(records)
    return [r for r in records if flt.accepts(r)]


def _distinct(values: Iterable[str]) -> tuple[str, ...]:
    return tuple(dict.fromkeys(v for v in values if v))


def filter_options(records: Sequence[EnrichedRecord]) -> tuple[tuple[str, ...], tuple[str, ...]]:
    """Return ``(companies, regions)`` present in ``records``, first-seen order."""

    return _distinct(r.company_name for r in records), _distinct(r.region for r in records)


def _check_field(name: str) -> None:
    if name not in FIELDS_BY_KEY and name not in _EXTRA_FIELDS:
        raise ValueError(f"Unknown record field: {name!r}")


@dataclass(frozen=True, slots=True)
class SearchCondition:
    field: str
    value: str

    def __post_init__(self) -> None:
        _check_field(self.field)

    @classmethod
    def parse(cls, text: str) -> SearchCondition:
        """Parse ``"field=value"``."""

        name, sep, value = text.partition("=")
        if not sep or not value.strip():
            raise ValueError(f"Expected FIELD=VALUE, got {text!r}")
        return cls(name.strip(), value.strip())

    def accepts(self, record: EnrichedRecord) -> bool:
        cell = getattr(record, self.field)
        text = "" if cell is None else str(cell)
        return self.value.lower() in text.lower()


def search_records(
    records: Iterable[EnrichedRecord], conditions: Sequence[SearchCondition]
) -> list[EnrichedRecord]:
    """Keep records matching every condition (case-insensitive substring)."""

    return [r for r in records if all(c.accepts(r) for c in conditions)]


def sort_records(
    records: Iterable[EnrichedRecord],
    field: str,
    *,
    descending: bool = False,
    now: datetime | None = None,
) -> list[EnrichedRecord]:
    """Stable sort by ``field``: dates chronologically, amounts numerically."""

    _check_field(field)

    if field == "date":
        anchor = now or datetime.now()

        def key(r: EnrichedRecord) -> Any:
            return parse_ledger_date(r.date, now=anchor).value

    elif field in _AMOUNT_FIELDS:

        def key(r: EnrichedRecord) -> Any:
            return getattr(r, field)

    else:

        def key(r: EnrichedRecord) -> Any:
            value = getattr(r, field)
            return "" if value is None else str(value)

    return sorted(records, key=key, reverse=descending)


__all__ = [
    "RecordFilter",
    "SearchCondition",
    "apply_filter",
    "filter_options",
    "search_records",
    "sort_records",
]
