# ruff: noqa: E402, I001
import sys
from datetime import datetime
from decimal import Decimal
from pathlib import Path

import pytest
from openpyxl import Workbook

# Make sure the workspace `packages/` dir is on sys.path so `pl_analysis` is importable
_ROOT = Path(__file__).resolve().parents[1]
_PKG_DIR = _ROOT / "packages"
sys.path[:0] = [p for p in [str(_PKG_DIR), str(_ROOT)] if p not in sys.path]

from pl_analysis.api import load_ledger
from pl_analysis.ingest import WorkbookError, read_workbook
from pl_analysis.ingest.workbook import iter_sheet_rows
from pl_analysis.mapping import ColumnMappingError

from tests.helpers.ledger import ERP_HEADERS, erp_row, sample_records, write_workbook


def test_iter_sheet_rows_skips_blank_rows_and_cells() -> None:
    values = iter(
        [
            (None, None),
            ("A", " B ", None),
            (1, None, "ignored"),
            (None, None, None),
            ("", "x"),
        ]
    )

    headers, rows = iter_sheet_rows(values)

    assert headers == ("A", "B")
    assert rows == [{"A": 1}, {"B": "x"}]


def test_iter_sheet_rows_suffixes_duplicate_headers() -> None:
    headers, rows = iter_sheet_rows(iter([("摘要", "摘要", "摘要"), ("a", "b", "c")]))

    assert headers == ("摘要", "摘要_1", "摘要_2")
    assert rows == [{"摘要": "a", "摘要_1": "b", "摘要_2": "c"}]


def test_read_workbook_decodes_cells(tmp_path: Path) -> None:
    path = write_workbook(
        tmp_path / "ledger.xlsx",
        [erp_row(r) for r in sample_records()],
        leading_blank_rows=2,
    )

    sheet = read_workbook(path)

    assert sheet.sheet_name == "Ledger"
    assert sheet.headers == ERP_HEADERS
    assert len(sheet) == 5
    first = sheet.rows[0]
    assert first["會計日期"] == datetime(2025, 1, 5)
    assert first["貸方"] == 1000
    assert "借方" not in first


def test_read_workbook_selects_named_sheet(tmp_path: Path) -> None:
    wb = Workbook()
    wb.active.title = "Cover"
    wb.active.append(["nothing here"])
    ws = wb.create_sheet("Data")
    ws.append(["科目代碼", "借方"])
    ws.append(["6001", 10])
    path = tmp_path / "multi.xlsx"
    wb.save(path)

    sheet = read_workbook(path, sheet="Data")

    assert sheet.rows == ({"科目代碼": "6001", "借方": 10},)
    with pytest.raises(WorkbookError, match="not found"):
        read_workbook(path, sheet="Missing")


def test_header_only_workbook_is_rejected(tmp_path: Path) -> None:
    path = write_workbook(tmp_path / "empty.xlsx", [])

    with pytest.raises(WorkbookError, match="empty"):
        read_workbook(path)


def test_non_workbook_file_is_rejected(tmp_path: Path) -> None:
    path = tmp_path / "ledger.xlsx"
    path.write_text("not a zip archive", encoding="utf-8")

    with pytest.raises(WorkbookError):
        read_workbook(path)


def test_load_ledger_guesses_mapping(tmp_path: Path) -> None:
    path = write_workbook(tmp_path / "ledger.xlsx", [erp_row(r) for r in sample_records()])

    records = load_ledger(path)

    assert len(records) == 5
    assert records[0].account_code == "4001"
    assert records[0].credit == Decimal(1000)
    assert records[2].department_name == "台中加盟店"
    assert records[3].company_name == "Beta"


def test_load_ledger_with_incomplete_headers_fails(tmp_path: Path) -> None:
    path = write_workbook(tmp_path / "ledger.xlsx", [["2025-01-01", "4001"]], headers=["會計日期", "科目代碼"])

    with pytest.raises(ColumnMappingError, match="Required fields"):
        load_ledger(path)
