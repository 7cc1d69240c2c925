"""Terminal rendering of dashboards, statements and record tables.

Amounts are shown in whole New Taiwan dollars (``$1,234``), rounded half away
from zero. The ``render_*`` helpers build ``rich`` renderables; print them
through a :class:`rich.console.Console`, or use :func:`render_text` for a
plain string. Column widths follow rich's cell measurement, so wide (CJK)
department and account names line up.
"""

from __future__ import annotations

import io
from collections.abc import Iterable, Sequence
from decimal import ROUND_HALF_UP, Decimal

from rich import box
from rich.console import Console, Group, RenderableType
from rich.table import Table
from rich.text import Text

from .models import Dashboard, EnrichedRecord, GroupTotals, PLStatement, StatementSection


def _whole(value: Decimal | float | int) -> Decimal:
    return Decimal(str(value)).quantize(Decimal("1"), rounding=ROUND_HALF_UP)


def format_number(value: Decimal | float | int) -> str:
    whole = _whole(value)
    if whole == 0:
        whole = abs(whole)
    return f"{whole:,}"


def format_currency(value: Decimal | float | int) -> str:
    whole = _whole(value)
    if whole < 0:
        return f"-${-whole:,}"
    return f"${abs(whole):,}"


def format_percent(value: float) -> str:
    return f"{value:.1f}%"


def render_table(
    headers: Sequence[str],
    rows: Iterable[Sequence[object]],
    *,
    numeric: Sequence[int] = (),
) -> Table:
    """Build a table; ``numeric`` columns are right-aligned and never wrapped.

    Cells are wrapped in :class:`~rich.text.Text` so ledger text containing
    square brackets is shown literally instead of being read as markup.
    """

    table = Table(box=box.SIMPLE_HEAD, show_edge=False)
    for i, header in enumerate(headers):
        if i in numeric:
            table.add_column(header, justify="right", no_wrap=True)
        else:
            table.add_column(header)
    for row in rows:
        table.add_row(*(Text(str(cell)) for cell in row))
    return table


def render_text(renderable: RenderableType, *, width: int = 120) -> str:
    """Render ``renderable`` to an unstyled string ``width`` cells wide."""

    console = Console(file=io.StringIO(), width=width, color_system=None, highlight=False)
    console.print(renderable)
    return console.file.getvalue()


def _heading(title: str) -> Text:
    return Text(title, style="bold")


def _totals_table(groups: Iterable[GroupTotals]) -> Table:
    return render_table(
        ("Name", "Debit", "Credit", "Net"),
        (
            (g.name, format_currency(g.debit), format_currency(g.credit), format_currency(g.net))
            for g in groups
        ),
        numeric=(1, 2, 3),
    )


def render_dashboard(dashboard: Dashboard) -> Group:
    m = dashboard.metrics
    summary = Table.grid(padding=(0, 2))
    summary.add_column()
    summary.add_column(justify="right")
    summary.add_row("Total revenue (credit):", format_currency(m.total_credit))
    summary.add_row("Total expenses (debit):", format_currency(m.total_debit))
    summary.add_row("Net income:", format_currency(m.net_income))
    summary.add_row("Profit margin:", format_percent(m.profit_margin))
    summary.add_row("Records:", str(m.record_count))
    if m.date_fallbacks:
        summary.add_row("Undated records:", f"{m.date_fallbacks} (placed in the current month)")

    sections: list[tuple[str, Table]] = [
        ("Summary", summary),
        ("Monthly trend", _totals_table(m.monthly)),
        (
            "Top revenue accounts",
            render_table(
                ("Account", "Credit"),
                ((a.name, format_currency(a.value)) for a in m.top_revenue_accounts),
                numeric=(1,),
            ),
        ),
        (
            "Top expense accounts",
            render_table(
                ("Account", "Debit"),
                ((a.name, format_currency(a.value)) for a in m.top_expense_accounts),
                numeric=(1,),
            ),
        ),
        ("Top departments by net income", _totals_table(m.top_profit_departments)),
        (
            "Top departments by margin",
            render_table(
                ("Department", "Credit", "Net", "Margin"),
                (
                    (
                        d.name,
                        format_currency(d.credit),
                        format_currency(d.net),
                        format_percent(d.margin),
                    )
                    for d in m.top_margin_departments
                ),
                numeric=(1, 2, 3),
            ),
        ),
        (
            "Store type net income",
            render_table(
                ("Store type", "Net"),
                ((s.name, format_currency(s.real_value)) for s in m.store_type_shares),
                numeric=(1,),
            ),
        ),
        ("Regions (filtered view)", _totals_table(m.regions)),
        ("Regions (all data)", _totals_table(dashboard.region_overview)),
    ]
    parts: list[RenderableType] = []
    for title, table in sections:
        parts += [_heading(title), table, Text("")]
    return Group(*parts)


def _add_section(table: Table, section: StatementSection) -> None:
    table.add_row(
        section.code,
        Text(section.title, style="bold"),
        Text(format_number(section.value), style="bold"),
    )
    for item in section.items:
        table.add_row(
            Text(item.account_code), Text(f"  {item.account_name}"), format_number(item.value)
        )


def _add_total(table: Table, label: str, value: Decimal) -> None:
    table.add_row(
        "", Text(label, style="bold"), Text(format_number(value), style="bold"), end_section=True
    )


def render_statement(statement: PLStatement) -> Group:
    table = Table(box=box.SIMPLE_HEAD, show_edge=False)
    table.add_column("Code")
    table.add_column("Account")
    table.add_column("Amount", justify="right", no_wrap=True)
    _add_section(table, statement.revenue)
    _add_section(table, statement.costs)
    _add_total(table, "營業毛利 Gross profit", statement.gross_profit)
    _add_section(table, statement.expenses)
    _add_total(table, "營業利益 Operating income", statement.operating_income)
    _add_section(table, statement.non_operating)
    _add_total(table, "本期淨利 Net income", statement.net_income)
    return Group(_heading("損益表 Profit & Loss Statement"), table)


def render_records(records: Iterable[EnrichedRecord]) -> Table:
    return render_table(
        ("Date", "Account", "Department", "Region", "Store type", "Summary", "Debit", "Credit"),
        (
            (
                str(r.date or ""),
                r.account_name,
                r.department_name,
                r.region,
                str(r.store_type),
                r.summary,
                format_currency(r.debit),
                format_currency(r.credit),
            )
            for r in records
        ),
        numeric=(6, 7),
    )


__all__ = [
    "format_currency",
    "format_number",
    "format_percent",
    "render_dashboard",
    "render_records",
    "render_statement",
    "render_table",
    "render_text",
]
