"""Profit & Loss statement derived from ledger account codes.

The leading digit of the account code selects the section and its sign
convention:

====  ==============  =================
code  section         line value
====  ==============  =================
4     Revenue         credit - debit
5     Costs           debit - credit
6     Expenses        debit - credit
7     Non-Operating   credit - debit
====  ==============  =================

Records with any other leading digit are left out of the statement (they are
still part of the dashboard totals).
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from decimal import Decimal
from typing import NamedTuple

from .logging_setup import get_logger
from .models import (
    UNKNOWN_GROUP,
    ZERO,
    LedgerRecord,
    PLStatement,
    StatementLine,
    StatementSection,
)

_logger = get_logger("pl_analysis.statement")


class _SectionDef(NamedTuple):
    key: str
    title: str
    code: str
    credit_normal: bool


_SECTIONS: tuple[_SectionDef, ...] = (
    _SectionDef("revenue", "營業收入", "4", True),
    _SectionDef("costs", "營業成本", "5", False),
    _SectionDef("expenses", "營業費用", "6", False),
    _SectionDef("non_operating", "營業外收支", "7", True),
)
_BY_CODE = {sdef.code: sdef for sdef in _SECTIONS}


@dataclass(slots=True)
class _Line:
    name: str
    value: Decimal = ZERO


@dataclass(slots=True)
class _Section:
    sdef: _SectionDef
    lines: dict[str, _Line] = field(default_factory=dict)

    def finalize(self) -> StatementSection:
        items = tuple(
            StatementLine(account_code=code, account_name=line.name, value=line.value)
            for code, line in sorted(self.lines.items(), key=lambda kv: kv[0])
        )
        return StatementSection(
            key=self.sdef.key,
            title=self.sdef.title,
            code=self.sdef.code,
            value=sum((i.value for i in items), ZERO),
            items=items,
        )


def section_for(account_code: str) -> str | None:
    """Return the section key for ``account_code`` or ``None`` when excluded."""

    sdef = _BY_CODE.get(account_code[:1])
    return sdef.key if sdef else None


def build_statement(records: Iterable[LedgerRecord]) -> PLStatement:
    sections = {sdef.key: _Section(sdef) for sdef in _SECTIONS}
    excluded = 0

    for row in records:
        code = row.account_code
        sdef = _BY_CODE.get(code[:1])
        if sdef is None:
            excluded += 1
            continue
        net = row.credit - row.debit if sdef.credit_normal else row.debit - row.credit
        section = sections[sdef.key]
        line = section.lines.get(code)
        if line is None:
            line = _Line(name=row.account_name or UNKNOWN_GROUP)
            section.lines[code] = line
        line.value += net

    if excluded:
        _logger.debug("%d records outside account classes 4-7 left out of the statement", excluded)

    revenue = sections["revenue"].finalize()
    costs = sections["costs"].finalize()
    expenses = sections["expenses"].finalize()
    non_operating = sections["non_operating"].finalize()

    gross_profit = revenue.value - costs.value
    operating_income = gross_profit - expenses.value
    net_income = operating_income + non_operating.value

    return PLStatement(
        revenue=revenue,
        costs=costs,
        expenses=expenses,
        non_operating=non_operating,
        gross_profit=gross_profit,
        operating_income=operating_income,
        net_income=net_income,
        excluded_count=excluded,
    )


__all__ = ["build_statement", "section_for"]
