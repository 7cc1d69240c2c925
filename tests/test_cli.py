# ruff: noqa: E402, I001
import json
import sys
from pathlib import Path

import pytest
from typer.testing import CliRunner

# Make sure the workspace `packages/` dir is on sys.path so `pl_analysis` is importable
_ROOT = Path(__file__).resolve().parents[1]
_PKG_DIR = _ROOT / "packages"
sys.path[:0] = [p for p in [str(_PKG_DIR), str(_ROOT)] if p not in sys.path]

import pl_analysis.insights.narrative as narrative_mod
from pl_analysis.cli import app, cmd_dashboard
from pl_analysis.mapping import guess_mapping, save_mapping
from pl_analysis.regions import RegionRuleSet, save_region_rules

from tests.helpers.ledger import ERP_HEADERS, erp_row, sample_records, write_workbook
from tests.helpers.openai_stub import OpenAIStub

runner = CliRunner()


@pytest.fixture
def workbook(tmp_path: Path) -> Path:
    return write_workbook(tmp_path / "ledger.xlsx", [erp_row(r) for r in sample_records()])


def test_no_subcommand_shows_help() -> None:
    result = runner.invoke(app, [])

    assert "dashboard" in result.output
    assert "statement" in result.output


def test_headers_lists_guessed_mapping(workbook: Path) -> None:
    result = runner.invoke(app, ["headers", "--workbook", str(workbook)])

    assert result.exit_code == 0, result.output
    assert "Sheet: Ledger (5 rows)" in result.output
    assert "貸方金額 (Credit): 貸方" in result.output


def test_missing_workbook_is_reported(tmp_path: Path) -> None:
    result = runner.invoke(app, ["dashboard", "--workbook", str(tmp_path / "nope.xlsx")])

    assert result.exit_code == 1
    assert "Error: File not found" in result.output


def test_init_rules_writes_defaults_and_refuses_overwrite(tmp_path: Path) -> None:
    out = tmp_path / "regions.json"

    first = runner.invoke(app, ["init-rules", "--out", str(out)])
    second = runner.invoke(app, ["init-rules", "--out", str(out)])

    assert first.exit_code == 0, first.output
    assert json.loads(out.read_text(encoding="utf-8"))[0] == ["本部", ["*004-000"]]
    assert second.exit_code == 1
    assert "already exists" in second.output


def test_classify_reports_regions_and_store_types(workbook: Path) -> None:
    result = runner.invoke(app, ["classify", "--workbook", str(workbook)])

    assert result.exit_code == 0, result.output
    assert "Region preview:" in result.output
    assert "Records: 5" in result.output
    assert "台中區" in result.output
    assert "Franchise" in result.output


def test_classify_uses_custom_rules_and_saves_mapping(workbook: Path, tmp_path: Path) -> None:
    rules = tmp_path / "rules.json"
    save_region_rules(RegionRuleSet.from_pairs([("Everywhere", ["*"])]), rules)
    mapping_out = tmp_path / "mapping.json"

    result = runner.invoke(
        app,
        ["classify", "--workbook", str(workbook), "--rules", str(rules), "--save-mapping", str(mapping_out)],
    )

    assert result.exit_code == 0, result.output
    assert "Everywhere" in result.output
    assert "台北區" not in result.output
    assert json.loads(mapping_out.read_text(encoding="utf-8"))["debit"] == "借方"


def test_dashboard_json_with_filter(workbook: Path) -> None:
    result = runner.invoke(app, ["dashboard", "--workbook", str(workbook), "--region", "台中區", "--json"])

    assert result.exit_code == 0, result.output
    payload = json.loads(result.stdout)
    assert payload["metrics"]["record_count"] == 2
    assert payload["metrics"]["net_income"] == 200.0
    assert [r["name"] for r in payload["region_overview"]] == ["台北區", "台中區", "Other"]


def test_dashboard_store_type_filter(workbook: Path) -> None:
    result = runner.invoke(app, ["dashboard", "-w", str(workbook), "--store-type", "Franchise", "--json"])

    assert result.exit_code == 0, result.output
    assert json.loads(result.stdout)["metrics"]["record_count"] == 3


def test_dashboard_text(workbook: Path) -> None:
    result = runner.invoke(app, ["dashboard", "--workbook", str(workbook)])

    assert result.exit_code == 0, result.output
    assert "Net income:" in result.output
    assert "$850" in result.output


def test_statement_text_and_json(workbook: Path) -> None:
    text = runner.invoke(app, ["statement", "--workbook", str(workbook)])
    as_json = runner.invoke(app, ["statement", "--workbook", str(workbook), "--json"])

    assert text.exit_code == 0, text.output
    gross = next(line for line in text.output.splitlines() if "營業毛利 Gross profit" in line)
    assert "1,100" in gross
    payload = json.loads(as_json.stdout)
    assert payload["net_income"] == 850.0
    assert payload["revenue"]["items"][0]["account_code"] == "4001"


def test_rows_search_sort_limit(workbook: Path) -> None:
    result = runner.invoke(
        app,
        [
            "rows",
            "--workbook",
            str(workbook),
            "--where",
            "region=台",
            "--sort",
            "debit",
            "--desc",
            "--limit",
            "2",
        ],
    )

    assert result.exit_code == 0, result.output
    assert "2 of 4 records" in result.output
    assert result.output.index("$400") < result.output.index("$300")


def test_rows_rejects_bad_condition(workbook: Path) -> None:
    result = runner.invoke(app, ["rows", "--workbook", str(workbook), "--where", "colour=red"])

    assert result.exit_code == 1
    assert "Unknown record field" in result.output


def test_bad_mapping_file_is_reported(workbook: Path, tmp_path: Path) -> None:
    mapping = guess_mapping(ERP_HEADERS)
    mapping["credit"] = "Credit Amount"
    path = tmp_path / "mapping.json"
    save_mapping(mapping, path)

    result = runner.invoke(app, ["statement", "--workbook", str(workbook), "--mapping", str(path)])

    assert result.exit_code == 1
    assert "Mapped headers not found" in result.output


def test_insights_require_api_key(workbook: Path) -> None:
    result = runner.invoke(app, ["insights", "--workbook", str(workbook)])

    assert result.exit_code == 1
    assert "OPENAI_API_KEY" in result.output


def test_insights_and_ask_with_stubbed_client(workbook: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("OPENAI_API_KEY", "sk-test")
    calls: list[dict] = []
    stub = OpenAIStub(lambda kw: '["營收穩定"]' if "JSON array" in kw["input"] else "台北區最佳", calls)
    monkeypatch.setattr(narrative_mod, "OpenAI", lambda: stub)

    insights = runner.invoke(app, ["insights", "--workbook", str(workbook)])
    answer = runner.invoke(app, ["ask", "哪一區最好?", "--workbook", str(workbook)])

    assert insights.exit_code == 0, insights.output
    assert "1. 營收穩定" in insights.output
    assert answer.exit_code == 0, answer.output
    assert "台北區最佳" in answer.output
    assert len(calls) == 2


def test_handler_returns_exit_code_directly(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    code = cmd_dashboard(str(tmp_path / "missing.xlsx"))

    assert code == 1
    assert "Error: File not found" in capsys.readouterr().err


def test_unknown_log_level_is_a_usage_error(workbook: Path) -> None:
    result = runner.invoke(app, ["--log-level", "LOUD", "headers", "--workbook", str(workbook)])

    assert result.exit_code == 2
    assert "Unknown log level" in result.output
