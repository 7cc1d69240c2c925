"""Column mapping: the boundary between raw spreadsheet rows and ledger records.

A column mapping assigns each canonical field (see :data:`CANONICAL_FIELDS`)
to one of the workbook's header strings. :func:`guess_mapping` proposes a
mapping from header names; :func:`validate_mapping` fails fast when a required
field is unmapped or points at a header the workbook does not have; and
:func:`project_rows` turns raw rows into :class:`~pl_analysis.models.LedgerRecord`.
"""

from __future__ import annotations

import json
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass
from os import PathLike
from pathlib import Path
from typing import TypeAlias

from pydantic import TypeAdapter

from .logging_setup import get_logger
from .models import LedgerRecord, RawRow

_logger = get_logger("pl_analysis.mapping")

ColumnMapping: TypeAlias = Mapping[str, str]
"""Canonical field name -> workbook header string."""


class ColumnMappingError(ValueError):
    """Raised when a column mapping cannot produce valid ledger records."""


@dataclass(frozen=True, slots=True)
class CanonicalField:
    key: str
    label: str
    header: str
    required: bool = True


CANONICAL_FIELDS: tuple[CanonicalField, ...] = (
    CanonicalField("date", "日期 (Date)", "日期"),
    CanonicalField("account_code", "科目代號 (Account Code)", "科目代號"),
    CanonicalField("account_name", "科目名稱 (Account Name)", "科目名稱"),
    CanonicalField("department_code", "部門代號 (Dept Code)", "部門代號"),
    CanonicalField("department_name", "部門名稱 (Department)", "部門名稱"),
    CanonicalField("company_name", "公司名稱 (Company)", "公司名稱"),
    CanonicalField("summary", "摘要 (Summary)", "摘要"),
    CanonicalField("debit", "借方金額 (Debit)", "借方金額"),
    CanonicalField("credit", "貸方金額 (Credit)", "貸方金額"),
    CanonicalField("project", "專案 (Project)", "專案", required=False),
)
FIELDS_BY_KEY: dict[str, CanonicalField] = {f.key: f for f in CANONICAL_FIELDS}

# Header spellings seen in ledger exports from different accounting systems.
HEADER_ALIASES: dict[str, tuple[str, ...]] = {
    "date": ("會計日期", "date", "日期"),
    "account_code": ("科目代碼", "account code", "acct code"),
    "department_code": ("項目代碼1", "dept code"),
    "department_name": ("項目名稱1", "department"),
    "company_name": ("核算組織名稱", "company"),
    "debit": ("借方", "debit"),
    "credit": ("貸方", "credit"),
    "project": ("項目名稱2", "project"),
}

_LABEL_KEYWORDS: tuple[tuple[str, str], ...] = (
    ("Date", "date"),
    ("Account", "account"),
)


def _header_matches(field: CanonicalField, header: str) -> bool:
    if header == field.header:
        return True
    lower = header.lower()
    for alias in HEADER_ALIASES.get(field.key, ()):
        a = alias.lower()
        if lower == a or a in lower:
            return True
    for label_word, header_word in _LABEL_KEYWORDS:
        if label_word in field.label and header_word in lower:
            return True
    return False


def guess_mapping(headers: Sequence[str]) -> dict[str, str]:
    """Propose a mapping from header names; unmatched fields are omitted."""

    guessed: dict[str, str] = {}
    for field in CANONICAL_FIELDS:
        match = next((h for h in headers if _header_matches(field, h)), None)
        if match is not None:
            guessed[field.key] = match
    _logger.debug("Guessed %d of %d column mappings", len(guessed), len(CANONICAL_FIELDS))
    return guessed


def missing_required(mapping: ColumnMapping) -> list[CanonicalField]:
    return [f for f in CANONICAL_FIELDS if f.required and not mapping.get(f.key)]


def _check_fields(mapping: ColumnMapping) -> None:
    unknown = sorted(k for k in mapping if k not in FIELDS_BY_KEY)
    if unknown:
        raise ColumnMappingError("Unknown canonical fields in mapping: " + ", ".join(unknown))

    missing = missing_required(mapping)
    if missing:
        raise ColumnMappingError(
            "Required fields are not mapped: " + ", ".join(f.label for f in missing)
        )


def validate_mapping(mapping: ColumnMapping, headers: Sequence[str]) -> dict[str, str]:
    """Check ``mapping`` against the canonical fields and ``headers``.

    Returns a cleaned copy (empty entries dropped). Raises
    :class:`ColumnMappingError` on unknown fields, unmapped required fields or
    headers absent from the workbook.
    """

    _check_fields(mapping)
    header_set = set(headers)
    cleaned = {k: v for k, v in mapping.items() if v}
    absent = sorted(f"{k}={v!r}" for k, v in cleaned.items() if v not in header_set)
    if absent:
        raise ColumnMappingError("Mapped headers not found in workbook: " + ", ".join(absent))
    return cleaned


def project_row(row: RawRow, mapping: ColumnMapping) -> LedgerRecord:
    return LedgerRecord(**{key: row.get(header) for key, header in mapping.items()})


def project_rows(
    rows: Iterable[RawRow], mapping: ColumnMapping, *, headers: Sequence[str] | None = None
) -> list[LedgerRecord]:
    """Validate ``mapping`` (when ``headers`` are given) and project ``rows``."""

    if headers is not None:
        mapping = validate_mapping(mapping, headers)
    else:
        _check_fields(mapping)
    return [project_row(r, mapping) for r in rows]


_MAPPING_ADAPTER = TypeAdapter(dict[str, str])


def load_mapping(path: str | PathLike[str]) -> dict[str, str]:
    return _MAPPING_ADAPTER.validate_json(Path(path).read_bytes())


def save_mapping(mapping: ColumnMapping, path: str | PathLike[str]) -> None:
    p = Path(path)
    p.parent.mkdir(parents=True, exist_ok=True)
    p.write_text(json.dumps(dict(mapping), ensure_ascii=False, indent=2) + "\n", encoding="utf-8")


__all__ = [
    "CANONICAL_FIELDS",
    "HEADER_ALIASES",
    "CanonicalField",
    "ColumnMapping",
    "ColumnMappingError",
    "guess_mapping",
    "load_mapping",
    "missing_required",
    "project_row",
    "project_rows",
    "save_mapping",
    "validate_mapping",
]
