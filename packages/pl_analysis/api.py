"""Public API and orchestration for the ``pl_analysis`` package.

Typical flow::

    records = load_ledger("ledger.xlsx")               # decode + map
    enriched = classify_all(records, DEFAULT_REGION_RULES)
    dashboard = build_dashboard(enriched, RecordFilter(region="台北區"))
    statement = build_statement(apply_filter(enriched, flt))

The core functions (:func:`classify_all`, :func:`aggregate`,
:func:`build_statement`) are pure and recompute from scratch on every call.
"""

from __future__ import annotations

from collections.abc import Iterable
from datetime import datetime
from os import PathLike

from .aggregate import aggregate
from .classify import classify, classify_all
from .filters import RecordFilter, apply_filter, filter_options
from .ingest.workbook import DecodedSheet, read_workbook
from .logging_setup import get_logger
from .mapping import ColumnMapping, guess_mapping, project_rows, validate_mapping
from .models import Dashboard, EnrichedRecord, LedgerRecord
from .statement import build_statement

_logger = get_logger("pl_analysis.api")


def records_from_sheet(
    sheet: DecodedSheet, mapping: ColumnMapping | None = None
) -> list[LedgerRecord]:
    """Project decoded rows through ``mapping`` (guessed when omitted)."""

    if mapping is None:
        mapping = guess_mapping(sheet.headers)
        _logger.info("Using guessed column mapping: %s", mapping)
    mapping = validate_mapping(mapping, sheet.headers)
    return project_rows(sheet.rows, mapping)


def load_ledger(
    workbook_path: str | PathLike[str],
    *,
    mapping: ColumnMapping | None = None,
    sheet: str | None = None,
) -> list[LedgerRecord]:
    """Read a ledger workbook and return validated :class:`LedgerRecord` rows.

    Raises :class:`~pl_analysis.ingest.workbook.WorkbookError` for unreadable
    sheets and :class:`~pl_analysis.mapping.ColumnMappingError` when the
    mapping is incomplete or refers to missing headers.
    """

    return records_from_sheet(read_workbook(workbook_path, sheet=sheet), mapping)


def build_dashboard(
    records: Iterable[EnrichedRecord],
    flt: RecordFilter | None = None,
    *,
    now: datetime | None = None,
) -> Dashboard:
    """Dashboard for the filtered view.

    The region overview is always computed on the unfiltered records so the
    regional comparison stays visible while a filter is applied.
    """

    full = list(records)
    filtered = apply_filter(full, flt)
    metrics = aggregate(filtered, now=now)
    if len(filtered) == len(full):
        overview = metrics.regions
    else:
        overview = aggregate(full, now=now).regions
    companies, regions = filter_options(full)
    return Dashboard(
        metrics=metrics,
        region_overview=overview,
        companies=companies,
        region_names=regions,
    )


__all__ = [
    "aggregate",
    "build_dashboard",
    "build_statement",
    "classify",
    "classify_all",
    "load_ledger",
    "records_from_sheet",
]
