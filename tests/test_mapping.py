# ruff: noqa: E402, I001
import sys
from datetime import datetime
from decimal import Decimal
from pathlib import Path

import pytest

# Make sure the workspace `packages/` dir is on sys.path so `pl_analysis` is importable
_ROOT = Path(__file__).resolve().parents[1]
_PKG_DIR = _ROOT / "packages"
sys.path[:0] = [p for p in [str(_PKG_DIR), str(_ROOT)] if p not in sys.path]

from pl_analysis.mapping import (
    CANONICAL_FIELDS,
    ColumnMappingError,
    guess_mapping,
    load_mapping,
    missing_required,
    project_rows,
    save_mapping,
    validate_mapping,
)

from tests.helpers.ledger import ERP_HEADERS

CANONICAL_HEADERS = tuple(f.header for f in CANONICAL_FIELDS)


def test_guess_mapping_for_erp_export() -> None:
    assert guess_mapping(ERP_HEADERS) == {
        "date": "會計日期",
        "account_code": "科目代碼",
        "account_name": "科目名稱",
        "department_code": "項目代碼1",
        "department_name": "項目名稱1",
        "company_name": "核算組織名稱",
        "summary": "摘要",
        "debit": "借方",
        "credit": "貸方",
        "project": "項目名稱2",
    }


def test_guess_mapping_for_canonical_headers() -> None:
    guessed = guess_mapping(CANONICAL_HEADERS)

    assert guessed == {f.key: f.header for f in CANONICAL_FIELDS}


def test_guess_mapping_for_english_headers() -> None:
    guessed = guess_mapping(["Posting Date", "Account Code", "Dept Code", "Department", "Debit", "Credit"])

    assert guessed["date"] == "Posting Date"
    assert guessed["account_code"] == "Account Code"
    assert guessed["department_code"] == "Dept Code"
    assert guessed["debit"] == "Debit"
    assert guessed["credit"] == "Credit"


def test_unmatched_fields_are_left_out() -> None:
    guessed = guess_mapping(["foo", "bar"])

    assert guessed == {}
    assert {f.key for f in missing_required(guessed)} == {f.key for f in CANONICAL_FIELDS if f.required}


def test_validate_mapping_reports_missing_required_fields() -> None:
    mapping = guess_mapping(ERP_HEADERS)
    del mapping["credit"]

    with pytest.raises(ColumnMappingError, match="Credit"):
        validate_mapping(mapping, ERP_HEADERS)


def test_validate_mapping_rejects_unknown_header_and_field() -> None:
    mapping = dict(guess_mapping(ERP_HEADERS), debit="Debit Amount")
    with pytest.raises(ColumnMappingError, match="not found"):
        validate_mapping(mapping, ERP_HEADERS)

    mapping = dict(guess_mapping(ERP_HEADERS), colour="借方")
    with pytest.raises(ColumnMappingError, match="colour"):
        validate_mapping(mapping, ERP_HEADERS)


def test_optional_project_may_be_blank() -> None:
    mapping = dict(guess_mapping(ERP_HEADERS), project="")

    cleaned = validate_mapping(mapping, ERP_HEADERS)

    assert "project" not in cleaned


def test_project_rows_coerces_cells() -> None:
    mapping = guess_mapping(ERP_HEADERS)
    rows = [
        {
            "會計日期": datetime(2025, 1, 2),
            "科目代碼": 4001.0,
            "科目名稱": " 銷貨收入 ",
            "項目代碼1": "A004-002-01",
            "貸方": "1,234.5",
            "借方": "n/a",
        }
    ]

    [rec] = project_rows(rows, mapping, headers=ERP_HEADERS)

    assert rec.account_code == "4001"
    assert rec.account_name == "銷貨收入"
    assert rec.credit == Decimal("1234.5")
    assert rec.debit == 0
    assert rec.department_name == ""
    assert rec.project is None
    assert rec.net == Decimal("1234.5")


def test_project_rows_without_headers_still_requires_fields() -> None:
    with pytest.raises(ColumnMappingError):
        project_rows([{}], {"date": "會計日期"})


def test_save_and_load_mapping(tmp_path: Path) -> None:
    path = tmp_path / "mapping.json"
    mapping = guess_mapping(ERP_HEADERS)

    save_mapping(mapping, path)

    assert load_mapping(path) == mapping


def test_project_rows_without_headers_rejects_unknown_field() -> None:
    mapping = {**guess_mapping(ERP_HEADERS), "colour": "顏色"}

    with pytest.raises(ColumnMappingError, match="Unknown canonical fields in mapping: colour"):
        project_rows([{"借方": 5}], mapping)
