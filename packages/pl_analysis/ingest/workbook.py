"""Decode a ledger workbook (``.xlsx``) into header-keyed rows.

Contract
--------
- The first worksheet is read unless ``sheet`` names another one.
- The first non-empty row is the header row. Header cells are stringified and
  trimmed; blank header cells are skipped and repeated headers are suffixed
  ``_1``, ``_2``... so every key is unique.
- Each following row becomes a mapping of header -> cell value. Empty cells are
  omitted from the mapping and rows with no values at all are dropped.
- Cell values are returned as decoded by ``openpyxl`` (``datetime`` for date
  cells, ``int``/``float`` for numbers, ``str`` otherwise).

Failure mode
------------
:class:`WorkbookError` (a ``ValueError``) when the sheet is missing, has no
header or has no data rows, and when the file is not an .xlsx archive. I/O
errors from opening the file propagate.
"""

from __future__ import annotations

import warnings
from collections.abc import Iterator, Sequence
from dataclasses import dataclass
from os import PathLike
from pathlib import Path
from typing import Any
from zipfile import BadZipFile

from openpyxl import load_workbook
from openpyxl.utils.exceptions import InvalidFileException

from ..logging_setup import get_logger
from ..models import RawRow

_logger = get_logger("pl_analysis.ingest.workbook")


class WorkbookError(ValueError):
    """Raised when a workbook cannot be decoded into ledger rows."""


@dataclass(frozen=True, slots=True)
class DecodedSheet:
    sheet_name: str
    headers: tuple[str, ...]
    rows: tuple[RawRow, ...]

    def __len__(self) -> int:
        return len(self.rows)


def _is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def _header_columns(cells: Sequence[Any]) -> list[tuple[int, str]]:
    seen: dict[str, int] = {}
    columns: list[tuple[int, str]] = []
    for col, cell in enumerate(cells):
        if _is_blank(cell):
            continue
        name = str(cell).strip()
        if name in seen:
            seen[name] += 1
            name = f"{name}_{seen[name]}"
        else:
            seen[name] = 0
        columns.append((col, name))
    return columns


def iter_sheet_rows(values: Iterator[Sequence[Any]]) -> tuple[tuple[str, ...], list[RawRow]]:
    """Split raw cell tuples into ``(headers, rows)`` per the module contract."""

    columns: list[tuple[int, str]] | None = None
    rows: list[RawRow] = []
    for cells in values:
        if columns is None:
            if all(_is_blank(c) for c in cells):
                continue
            columns = _header_columns(cells)
            continue
        row = {
            name: cells[col]
            for col, name in columns
            if col < len(cells) and not _is_blank(cells[col])
        }
        if row:
            rows.append(row)
    headers = tuple(name for _, name in columns or [])
    return headers, rows


def read_workbook(path: str | PathLike[str], *, sheet: str | None = None) -> DecodedSheet:
    p = Path(path)
    with warnings.catch_warnings():
        # openpyxl warns about unsupported extensions/styles in many ERP exports.
        warnings.simplefilter("ignore", UserWarning)
        try:
            wb = load_workbook(p, read_only=True, data_only=True)
        except (InvalidFileException, BadZipFile) as e:
            raise WorkbookError(f"Not a readable .xlsx workbook: {p.name} ({e})") from e
    try:
        if sheet is None:
            ws = wb.worksheets[0]
        elif sheet in wb.sheetnames:
            ws = wb[sheet]
        else:
            raise WorkbookError(
                f"Sheet {sheet!r} not found in {p.name}; available: {', '.join(wb.sheetnames)}"
            )
        headers, rows = iter_sheet_rows(ws.iter_rows(values_only=True))
        sheet_name = ws.title
    finally:
        wb.close()

    if not headers:
        raise WorkbookError(f"Could not detect any columns in {p.name}")
    if not rows:
        raise WorkbookError(f"Workbook {p.name} appears to be empty")

    _logger.info(
        "Loaded %d rows x %d columns from %s [%s]", len(rows), len(headers), p.name, sheet_name
    )
    return DecodedSheet(sheet_name=sheet_name, headers=headers, rows=tuple(rows))


__all__ = ["DecodedSheet", "WorkbookError", "iter_sheet_rows", "read_workbook"]
