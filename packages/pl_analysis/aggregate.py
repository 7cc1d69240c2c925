"""Dashboard metrics over a set of enriched ledger records.

One pass folds every record into five grouped-totals tables (month, account
name, department name, region, store type). Rankings and ratios are derived
from those tables afterwards. Nothing survives between calls: every call
recomputes from the records it is given.

Ranking ties keep first-seen order (Python's sort is stable).
"""

from __future__ import annotations

from collections.abc import Callable, Iterable
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Generic, TypeVar

from .dates import month_label, parse_ledger_date
from .logging_setup import get_logger
from .models import (
    UNKNOWN_GROUP,
    ZERO,
    EnrichedRecord,
    GroupTotals,
    MarginDepartment,
    MetricsSummary,
    RankedAccount,
    StoreTypeShare,
)

TOP_N = 5

_REVENUE_PREFIXES: tuple[str, ...] = ("4",)
_EXPENSE_PREFIXES: tuple[str, ...] = ("5", "6")

_logger = get_logger("pl_analysis.aggregate")


@dataclass(slots=True)
class _Bucket:
    name: str
    code: str = ""
    debit: Decimal = ZERO
    credit: Decimal = ZERO

    @property
    def net(self) -> Decimal:
        return self.credit - self.debit

    def add(self, debit: Decimal, credit: Decimal) -> None:
        self.debit += debit
        self.credit += credit

    def totals(self) -> GroupTotals:
        return GroupTotals(name=self.name, debit=self.debit, credit=self.credit, net=self.net)


K = TypeVar("K")


class _Table(Generic[K]):
    """Buckets keyed by group, created lazily in first-seen order."""

    def __init__(self) -> None:
        self._buckets: dict[K, _Bucket] = {}

    def touch(self, key: K, name: str, *, code: str = "") -> _Bucket:
        bucket = self._buckets.get(key)
        if bucket is None:
            bucket = _Bucket(name=name, code=code)
            self._buckets[key] = bucket
        return bucket

    def items(self) -> list[tuple[K, _Bucket]]:
        return list(self._buckets.items())

    def buckets(self) -> list[_Bucket]:
        return list(self._buckets.values())


def _top(
    buckets: Iterable[_Bucket], key: Callable[[_Bucket], Decimal], n: int = TOP_N
) -> list[_Bucket]:
    return sorted(buckets, key=key, reverse=True)[:n]


def _percent(numerator: Decimal, denominator: Decimal) -> float:
    return float(numerator / denominator * 100)


def aggregate(records: Iterable[EnrichedRecord], *, now: datetime | None = None) -> MetricsSummary:
    """Fold ``records`` into a :class:`~pl_analysis.models.MetricsSummary`.

    ``now`` is the fallback date for records whose date is missing or cannot
    be parsed; such records are counted in ``date_fallbacks``.
    """

    fallback_now = now or datetime.now()

    total_debit = ZERO
    total_credit = ZERO
    count = 0
    fallbacks = 0

    months: _Table[tuple[int, int]] = _Table()
    accounts: _Table[str] = _Table()
    departments: _Table[str] = _Table()
    regions: _Table[str] = _Table()
    store_types: _Table[str] = _Table()

    for row in records:
        count += 1
        debit, credit = row.debit, row.credit
        total_debit += debit
        total_credit += credit

        parsed = parse_ledger_date(row.date, now=fallback_now)
        if parsed.fallback:
            fallbacks += 1
        dt = parsed.value
        months.touch((dt.year, dt.month), month_label(dt)).add(debit, credit)

        account = row.account_name or UNKNOWN_GROUP
        accounts.touch(account, account, code=row.account_code).add(debit, credit)

        dept = row.department_name or UNKNOWN_GROUP
        departments.touch(dept, dept).add(debit, credit)

        region = row.region or UNKNOWN_GROUP
        regions.touch(region, region).add(debit, credit)

        store_type = str(row.store_type)
        store_types.touch(store_type, store_type).add(debit, credit)

    if fallbacks:
        _logger.warning(
            "%d of %d records had a missing or unparsable date and were placed in %s",
            fallbacks,
            count,
            month_label(fallback_now),
        )

    monthly = [b.totals() for _, b in sorted(months.items(), key=lambda kv: kv[0])]

    top_revenue = _top(
        (b for b in accounts.buckets() if b.code.startswith(_REVENUE_PREFIXES)),
        key=lambda b: b.credit,
    )
    top_expense = _top(
        (b for b in accounts.buckets() if b.code.startswith(_EXPENSE_PREFIXES)),
        key=lambda b: b.debit,
    )

    top_profit = _top(departments.buckets(), key=lambda b: b.net)

    margins = [
        MarginDepartment(
            name=b.name,
            debit=b.debit,
            credit=b.credit,
            net=b.net,
            margin=_percent(b.net, b.credit),
        )
        for b in departments.buckets()
        if b.credit > 0
    ]
    top_margin = sorted(margins, key=lambda m: m.margin, reverse=True)[:TOP_N]

    region_totals = sorted(
        (b.totals() for b in regions.buckets()), key=lambda t: t.net, reverse=True
    )

    shares = [
        StoreTypeShare(name=b.name, value=abs(b.net), real_value=b.net)
        for b in store_types.buckets()
        if b.net != 0
    ]

    net_income = total_credit - total_debit
    profit_margin = _percent(net_income, total_credit) if total_credit > 0 else 0.0

    return MetricsSummary(
        total_debit=total_debit,
        total_credit=total_credit,
        net_income=net_income,
        profit_margin=profit_margin,
        record_count=count,
        date_fallbacks=fallbacks,
        monthly=tuple(monthly),
        top_revenue_accounts=tuple(RankedAccount(name=b.name, value=b.credit) for b in top_revenue),
        top_expense_accounts=tuple(RankedAccount(name=b.name, value=b.debit) for b in top_expense),
        top_profit_departments=tuple(b.totals() for b in top_profit),
        top_margin_departments=tuple(top_margin),
        regions=tuple(region_totals),
        store_type_shares=tuple(shares),
    )


__all__ = ["TOP_N", "aggregate"]
