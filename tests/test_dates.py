# ruff: noqa: E402, I001
import sys
from datetime import date, datetime
from pathlib import Path

import pytest

# Make sure the workspace `packages/` dir is on sys.path so `pl_analysis` is importable
_ROOT = Path(__file__).resolve().parents[1]
_PKG_DIR = _ROOT / "packages"
sys.path[:0] = [p for p in [str(_PKG_DIR), str(_ROOT)] if p not in sys.path]

from pl_analysis.dates import from_serial, month_label, parse_ledger_date

NOW = datetime(2030, 6, 1, 12, 0)


def test_serial_numbers_use_spreadsheet_epoch() -> None:
    assert from_serial(25569) == datetime(1970, 1, 1)
    assert from_serial(45658) == datetime(2025, 1, 1)
    assert from_serial(45658.5) == datetime(2025, 1, 1, 12, 0)


@pytest.mark.parametrize(
    ("value", "expected"),
    [
        (datetime(2025, 3, 4, 8, 30), datetime(2025, 3, 4, 8, 30)),
        (date(2025, 3, 4), datetime(2025, 3, 4)),
        (45658, datetime(2025, 1, 1)),
        ("2025-03-04", datetime(2025, 3, 4)),
        ("2025/03/04", datetime(2025, 3, 4)),
        ("2025.03.04", datetime(2025, 3, 4)),
        ("03/04/2025", datetime(2025, 3, 4)),
        (" 20250304 ", datetime(2025, 3, 4)),
        ("Jan 15, 2025", datetime(2025, 1, 15)),
        ("January 15, 2025", datetime(2025, 1, 15)),
        ("15-Jan-2025", datetime(2025, 1, 15)),
        ("15 Jan 2025", datetime(2025, 1, 15)),
    ],
)
def test_parse_ledger_date_accepts_common_shapes(value: object, expected: datetime) -> None:
    parsed = parse_ledger_date(value, now=NOW)

    assert parsed.value == expected
    assert parsed.fallback is False


@pytest.mark.parametrize("value", [None, "", 0, "not a date", "2025-13-45", True, float("inf")])
def test_unusable_dates_fall_back_to_now(value: object) -> None:
    parsed = parse_ledger_date(value, now=NOW)

    assert parsed.value == NOW
    assert parsed.fallback is True


@pytest.mark.parametrize(
    ("dt", "label"),
    [
        (datetime(2025, 1, 31), "Jan 25"),
        (datetime(2024, 12, 1), "Dec 24"),
        (datetime(2009, 5, 5), "May 09"),
    ],
)
def test_month_label(dt: datetime, label: str) -> None:
    assert month_label(dt) == label
