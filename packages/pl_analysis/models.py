"""Data models and type aliases for ``pl_analysis``.

Rows move through a two-stage typed pipeline:

- :data:`RawRow` is an opaque mapping keyed by the original spreadsheet header
  strings, exactly as decoded from the workbook.
- :class:`LedgerRecord` is the strictly-typed record produced at the column
  mapping boundary (see :mod:`pl_analysis.mapping`). Everything downstream of
  the mapping step works on ``LedgerRecord`` / :class:`EnrichedRecord` only.

Money is carried as :class:`decimal.Decimal` so totals stay exactly additive;
percentages are plain floats. Output models serialize money as JSON numbers.
"""

from __future__ import annotations

import math
from collections.abc import Iterable, Mapping
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from enum import StrEnum
from typing import Annotated, Any, TypeAlias

from pydantic import BaseModel, ConfigDict, PlainSerializer, field_validator

# ---------------------------------------------------------------------------
# Raw rows and shared aliases
# ---------------------------------------------------------------------------

RawRow: TypeAlias = Mapping[str, Any]
"""A decoded spreadsheet row keyed by header string (pre-mapping)."""

Money = Annotated[
    Decimal,
    PlainSerializer(float, return_type=float, when_used="json"),
]

ZERO = Decimal("0")

OTHER_REGION = "Other"
UNKNOWN_GROUP = "Unknown"


class StoreType(StrEnum):
    """Store category derived from the department name."""

    DIRECT = "Direct-operated"
    FRANCHISE = "Franchise"


def coerce_text(value: Any) -> str:
    """Render a cell value as a trimmed string; ``None`` becomes ``""``.

    Integral floats (``4001.0``) lose their trailing ``.0`` because
    spreadsheets commonly store numeric codes as floats.
    """

    if value is None:
        return ""
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, datetime | date):
        return value.isoformat()
    return str(value).strip()


def coerce_amount(value: Any) -> Decimal:
    """Coerce a debit/credit cell to ``Decimal``; anything non-numeric is 0."""

    if value is None or isinstance(value, bool):
        return ZERO
    if isinstance(value, Decimal):
        return value if value.is_finite() else ZERO
    if isinstance(value, int):
        return Decimal(value)
    if isinstance(value, float):
        if not math.isfinite(value):
            return ZERO
        return Decimal(str(value))
    text = str(value).strip().replace(",", "")
    if not text:
        return ZERO
    try:
        parsed = Decimal(text)
    except InvalidOperation:
        return ZERO
    return parsed if parsed.is_finite() else ZERO


# ---------------------------------------------------------------------------
# Ledger records
# ---------------------------------------------------------------------------


class LedgerRecord(BaseModel):
    """One accounting line item after column mapping.

    ``date`` keeps the raw cell value (native date, spreadsheet serial number
    or string); it is interpreted by :func:`pl_analysis.dates.parse_ledger_date`
    at aggregation time.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    date: Any = None
    account_code: str = ""
    account_name: str = ""
    department_code: str = ""
    department_name: str = ""
    company_name: str = ""
    summary: str = ""
    debit: Money = ZERO
    credit: Money = ZERO
    project: str | None = None

    @field_validator(
        "account_code",
        "account_name",
        "department_code",
        "department_name",
        "company_name",
        "summary",
        mode="before",
    )
    @classmethod
    def _text(cls, v: Any) -> str:
        return coerce_text(v)

    @field_validator("project", mode="before")
    @classmethod
    def _optional_text(cls, v: Any) -> str | None:
        text = coerce_text(v)
        return text or None

    @field_validator("debit", "credit", mode="before")
    @classmethod
    def _amount(cls, v: Any) -> Decimal:
        return coerce_amount(v)

    @property
    def net(self) -> Decimal:
        """Signed contribution ``credit - debit``."""
        return self.credit - self.debit


class EnrichedRecord(LedgerRecord):
    """A :class:`LedgerRecord` plus the classification-derived fields."""

    region: str = OTHER_REGION
    store_type: StoreType = StoreType.FRANCHISE


LedgerRecords: TypeAlias = Iterable[LedgerRecord]
EnrichedRecords: TypeAlias = Iterable[EnrichedRecord]


# ---------------------------------------------------------------------------
# Dashboard metrics
# ---------------------------------------------------------------------------


class _Output(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")


class GroupTotals(_Output):
    """Debit/credit/net totals for one group (month, department, region...)."""

    name: str
    debit: Money
    credit: Money
    net: Money


class RankedAccount(_Output):
    name: str
    value: Money


class MarginDepartment(GroupTotals):
    margin: float


class StoreTypeShare(_Output):
    """Net-income share of one store type.

    ``value`` is the magnitude used for proportional rendering; ``real_value``
    carries the signed net income.
    """

    name: str
    value: Money
    real_value: Money


class MetricsSummary(_Output):
    total_debit: Money
    total_credit: Money
    net_income: Money
    profit_margin: float
    record_count: int
    date_fallbacks: int
    monthly: tuple[GroupTotals, ...]
    top_revenue_accounts: tuple[RankedAccount, ...]
    top_expense_accounts: tuple[RankedAccount, ...]
    top_profit_departments: tuple[GroupTotals, ...]
    top_margin_departments: tuple[MarginDepartment, ...]
    regions: tuple[GroupTotals, ...]
    store_type_shares: tuple[StoreTypeShare, ...]


class Dashboard(_Output):
    """Metrics for the filtered view plus context from the full dataset."""

    metrics: MetricsSummary
    region_overview: tuple[GroupTotals, ...]
    companies: tuple[str, ...]
    region_names: tuple[str, ...]


# ---------------------------------------------------------------------------
# Profit & Loss statement
# ---------------------------------------------------------------------------


class StatementLine(_Output):
    account_code: str
    account_name: str
    value: Money


class StatementSection(_Output):
    key: str
    title: str
    code: str
    value: Money
    items: tuple[StatementLine, ...]


class PLStatement(_Output):
    revenue: StatementSection
    costs: StatementSection
    expenses: StatementSection
    non_operating: StatementSection
    gross_profit: Money
    operating_income: Money
    net_income: Money
    excluded_count: int = 0

    @property
    def sections(self) -> tuple[StatementSection, ...]:
        return (self.revenue, self.costs, self.expenses, self.non_operating)
