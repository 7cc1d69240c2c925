# ruff: noqa: I001
"""CLI for the ``pl_analysis`` package.

This module exposes callable command handlers (e.g. ``cmd_dashboard``) and a
Typer-based console interface. Environment variables (notably
``OPENAI_API_KEY``) are loaded from a local ``.env`` using ``python-dotenv``
before delegating to command logic. Business logic lives in
``pl_analysis.api`` and related modules.

Handlers return a process exit code; errors are written to stderr as
``Error: ...`` with a non-zero status.
"""

from __future__ import annotations

import sys
from pathlib import Path
from typing import Annotated
from collections.abc import Sequence

import typer
from dotenv import load_dotenv
from pydantic import ValidationError
from rich.console import Console
from typer.models import OptionInfo

from .ingest.workbook import WorkbookError
from .logging_setup import configure_logging, get_logger, resolve_level
from .mapping import ColumnMappingError
from .models import EnrichedRecord, MetricsSummary, StoreType

_logger = get_logger("pl_analysis.cli")
console = Console(highlight=False)

# Input problems worth a one-line message rather than a traceback.
_INPUT_ERRORS = (OSError, WorkbookError, ColumnMappingError, ValidationError, ValueError)


def _err(message: str) -> int:
    print(f"Error: {message}", file=sys.stderr)
    return 1


def _load_enriched(
    workbook: Path,
    *,
    sheet: str | None = None,
    mapping_path: Path | None = None,
    rules_path: Path | None = None,
) -> list[EnrichedRecord]:
    """Decode, map and classify ``workbook`` with optional mapping/rules files."""

    from .api import classify_all, load_ledger
    from .mapping import load_mapping
    from .regions import DEFAULT_REGION_RULES, load_region_rules

    mapping = load_mapping(mapping_path) if mapping_path is not None else None
    rules = load_region_rules(rules_path) if rules_path is not None else DEFAULT_REGION_RULES
    records = load_ledger(workbook, mapping=mapping, sheet=sheet)
    return classify_all(records, rules)


def cmd_headers(workbook: str, *, sheet: str | None = None) -> int:
    """Print the workbook headers and the automatically guessed mapping."""

    from .ingest.workbook import read_workbook
    from .mapping import CANONICAL_FIELDS, guess_mapping

    try:
        decoded = read_workbook(workbook, sheet=sheet)
    except FileNotFoundError:
        return _err(f"File not found: {workbook}")
    except _INPUT_ERRORS as e:
        return _err(f"Failed to read workbook: {e}")

    print(f"Sheet: {decoded.sheet_name} ({len(decoded)} rows)")
    print("Headers:")
    for header in decoded.headers:
        print(f"  {header}")

    guessed = guess_mapping(decoded.headers)
    print("Guessed mapping:")
    for field in CANONICAL_FIELDS:
        print(f"  {field.label}: {guessed.get(field.key, '-')}")
    return 0


def cmd_init_rules(out: str, *, force: bool = False) -> int:
    """Write the default region rules to ``out`` as editable JSON."""

    from .regions import DEFAULT_REGION_RULES, save_region_rules

    target = Path(out)
    if target.exists() and not force:
        return _err(f"{out} already exists (use --force to overwrite)")
    try:
        save_region_rules(DEFAULT_REGION_RULES, target)
    except OSError as e:
        return _err(f"failed to write rules: {e}")
    print(f"Wrote {len(DEFAULT_REGION_RULES)} region rules to {out}")
    return 0


def cmd_classify(
    workbook: str,
    *,
    sheet: str | None = None,
    mapping_path: str | None = None,
    rules_path: str | None = None,
    interactive: bool = False,
    save_mapping_path: str | None = None,
) -> int:
    """Preview region assignment and print region/store-type counts.

    With ``interactive`` the column mapping is confirmed field by field in the
    terminal (pre-filled with the guessed or loaded mapping) and optionally
    saved for later runs.
    """

    from collections import Counter

    from .api import classify_all, records_from_sheet
    from .classify import preview_classification
    from .formatting import render_table
    from .ingest.workbook import read_workbook
    from .mapping import guess_mapping, load_mapping, save_mapping, validate_mapping
    from .regions import DEFAULT_REGION_RULES, load_region_rules

    try:
        decoded = read_workbook(workbook, sheet=sheet)
        mapping = load_mapping(mapping_path) if mapping_path else guess_mapping(decoded.headers)
        rules = load_region_rules(rules_path) if rules_path else DEFAULT_REGION_RULES
    except FileNotFoundError as e:
        return _err(f"File not found: {e.filename or workbook}")
    except _INPUT_ERRORS as e:
        return _err(str(e))

    if interactive:
        from .term_ui import prompt_column_mapping

        try:
            mapping = prompt_column_mapping(decoded.headers, initial=mapping)
        except (KeyboardInterrupt, EOFError):
            return _err("mapping aborted")

    try:
        mapping = validate_mapping(mapping, decoded.headers)
        records = records_from_sheet(decoded, mapping)
    except _INPUT_ERRORS as e:
        return _err(str(e))

    if save_mapping_path:
        try:
            save_mapping(mapping, save_mapping_path)
        except OSError as e:
            return _err(f"failed to save mapping: {e}")
        print(f"Saved column mapping to {save_mapping_path}")

    print("Region preview:")
    console.print(
        render_table(
            ("Department code", "Department", "Region"),
            preview_classification(records, rules),
        )
    )

    enriched = classify_all(records, rules)
    print()
    print(f"Records: {len(enriched)}")
    for title, counts in (
        ("Region", Counter(r.region for r in enriched)),
        ("Store type", Counter(str(r.store_type) for r in enriched)),
    ):
        rows = ((k, str(n)) for k, n in counts.most_common())
        console.print(render_table((title, "Records"), rows, numeric=(1,)))
        print()
    return 0


def cmd_dashboard(
    workbook: str,
    *,
    sheet: str | None = None,
    mapping_path: str | None = None,
    rules_path: str | None = None,
    company: str | None = None,
    region: str | None = None,
    store_type: StoreType | None = None,
    as_json: bool = False,
) -> int:
    """Print the dashboard metrics for the filtered view."""

    from .api import build_dashboard
    from .filters import RecordFilter
    from .formatting import render_dashboard

    try:
        enriched = _load_enriched(
            Path(workbook),
            sheet=sheet,
            mapping_path=Path(mapping_path) if mapping_path else None,
            rules_path=Path(rules_path) if rules_path else None,
        )
    except FileNotFoundError as e:
        return _err(f"File not found: {e.filename or workbook}")
    except _INPUT_ERRORS as e:
        return _err(str(e))

    flt = RecordFilter(company=company, region=region, store_type=store_type)
    dashboard = build_dashboard(enriched, flt)
    if as_json:
        print(dashboard.model_dump_json(indent=2))
    else:
        console.print(render_dashboard(dashboard))
    return 0


def cmd_statement(
    workbook: str,
    *,
    sheet: str | None = None,
    mapping_path: str | None = None,
    rules_path: str | None = None,
    company: str | None = None,
    region: str | None = None,
    store_type: StoreType | None = None,
    as_json: bool = False,
) -> int:
    """Print the P&L statement for the filtered view."""

    from .api import build_statement
    from .filters import RecordFilter, apply_filter
    from .formatting import render_statement

    try:
        enriched = _load_enriched(
            Path(workbook),
            sheet=sheet,
            mapping_path=Path(mapping_path) if mapping_path else None,
            rules_path=Path(rules_path) if rules_path else None,
        )
    except FileNotFoundError as e:
        return _err(f"File not found: {e.filename or workbook}")
    except _INPUT_ERRORS as e:
        return _err(str(e))

    flt = RecordFilter(company=company, region=region, store_type=store_type)
    statement = build_statement(apply_filter(enriched, flt))
    if as_json:
        print(statement.model_dump_json(indent=2))
    else:
        console.print(render_statement(statement))
    if statement.excluded_count:
        _logger.info("%d records outside statement sections", statement.excluded_count)
    return 0


def cmd_rows(
    workbook: str,
    *,
    sheet: str | None = None,
    mapping_path: str | None = None,
    rules_path: str | None = None,
    where: Sequence[str] = (),
    sort: str | None = None,
    descending: bool = False,
    limit: int | None = None,
) -> int:
    """Search, sort and print classified records."""

    from .filters import SearchCondition, search_records, sort_records
    from .formatting import render_records

    try:
        conditions = [SearchCondition.parse(text) for text in where]
        enriched = _load_enriched(
            Path(workbook),
            sheet=sheet,
            mapping_path=Path(mapping_path) if mapping_path else None,
            rules_path=Path(rules_path) if rules_path else None,
        )
        rows = search_records(enriched, conditions)
        if sort:
            rows = sort_records(rows, sort, descending=descending)
    except FileNotFoundError as e:
        return _err(f"File not found: {e.filename or workbook}")
    except _INPUT_ERRORS as e:
        return _err(str(e))

    total = len(rows)
    if limit is not None and limit >= 0:
        rows = rows[:limit]
    console.print(render_records(rows))
    print(f"{len(rows)} of {total} records")
    return 0


def _narrative_summary(
    workbook: str,
    *,
    sheet: str | None,
    mapping_path: str | None,
    rules_path: str | None,
) -> MetricsSummary:
    from .api import aggregate

    enriched = _load_enriched(
        Path(workbook),
        sheet=sheet,
        mapping_path=Path(mapping_path) if mapping_path else None,
        rules_path=Path(rules_path) if rules_path else None,
    )
    return aggregate(enriched)


def cmd_insights(
    workbook: str,
    *,
    sheet: str | None = None,
    mapping_path: str | None = None,
    rules_path: str | None = None,
) -> int:
    """Ask the model for 3-5 insights about the ledger and print them."""

    import os

    from .insights import NarrativeService

    if not os.getenv("OPENAI_API_KEY"):
        return _err("OPENAI_API_KEY is not set in the environment.")

    try:
        summary = _narrative_summary(
            workbook, sheet=sheet, mapping_path=mapping_path, rules_path=rules_path
        )
    except FileNotFoundError as e:
        return _err(f"File not found: {e.filename or workbook}")
    except _INPUT_ERRORS as e:
        return _err(str(e))

    try:
        insights = NarrativeService().generate_insights(summary)
    except Exception as e:
        return _err(f"insight generation failed: {e}")

    for i, text in enumerate(insights, start=1):
        print(f"{i}. {text}")
    return 0


def cmd_ask(
    workbook: str,
    question: str,
    *,
    sheet: str | None = None,
    mapping_path: str | None = None,
    rules_path: str | None = None,
) -> int:
    """Answer a free-form question about the ledger."""

    import os

    from .insights import NarrativeService

    if not question.strip():
        return _err("question must be non-empty")
    if not os.getenv("OPENAI_API_KEY"):
        return _err("OPENAI_API_KEY is not set in the environment.")

    try:
        summary = _narrative_summary(
            workbook, sheet=sheet, mapping_path=mapping_path, rules_path=rules_path
        )
    except FileNotFoundError as e:
        return _err(f"File not found: {e.filename or workbook}")
    except _INPUT_ERRORS as e:
        return _err(str(e))

    try:
        answer = NarrativeService().ask(summary, question)
    except Exception as e:
        return _err(f"question failed: {e}")

    print(answer)
    return 0


# ---- Typer-based console interface -------------------------------------------


app = typer.Typer(
    no_args_is_help=True,
    add_completion=False,
    help=(
        "Profit & loss analysis for ledger workbooks: region classification, "
        "dashboard metrics, P&L statements and optional AI insights. "
        "Loads OPENAI_API_KEY from a local .env before running."
    ),
)


def _exit(code: int) -> None:
    if code:
        raise typer.Exit(code)


# Module-level option objects to satisfy ruff B008 (no calls in parameter
# defaults). Typer will inspect these when used as default values below.
WORKBOOK_OPTION: OptionInfo = typer.Option(
    ...,  # required
    "--workbook",
    "-w",
    help="Path to the ledger workbook (.xlsx)",
    dir_okay=False,
    file_okay=True,
    exists=False,  # the handler reports missing files
)
SHEET_OPTION: OptionInfo = typer.Option(None, "--sheet", help="Worksheet name (default: first)")
MAPPING_OPTION: OptionInfo = typer.Option(
    None, "--mapping", help="Column mapping JSON (default: guessed from headers)"
)
RULES_OPTION: OptionInfo = typer.Option(
    None, "--rules", help="Region rules JSON (default: built-in regions)"
)
COMPANY_OPTION: OptionInfo = typer.Option(None, "--company", help="Only this company")
REGION_OPTION: OptionInfo = typer.Option(None, "--region", help="Only this region")
STORE_TYPE_OPTION: OptionInfo = typer.Option(None, "--store-type", help="Only this store type")
JSON_OPTION: OptionInfo = typer.Option(False, "--json", help="Emit JSON instead of text")


@app.command("headers")
def headers_cmd(
    workbook: Annotated[Path, WORKBOOK_OPTION],
    sheet: str | None = SHEET_OPTION,
) -> None:
    """List workbook headers and the guessed column mapping."""

    _exit(cmd_headers(str(workbook), sheet=sheet))


@app.command("init-rules")
def init_rules_cmd(
    out: Path = typer.Option(Path("regions.json"), "--out", help="Destination JSON file"),
    force: bool = typer.Option(False, "--force", help="Overwrite an existing file"),
) -> None:
    """Write the default region rules as an editable JSON file."""

    _exit(cmd_init_rules(str(out), force=force))


@app.command("classify")
def classify_cmd(
    workbook: Annotated[Path, WORKBOOK_OPTION],
    sheet: str | None = SHEET_OPTION,
    mapping: Path | None = MAPPING_OPTION,
    rules: Path | None = RULES_OPTION,
    interactive: bool = typer.Option(
        False, "--interactive", "-i", help="Confirm the column mapping field by field"
    ),
    save_mapping: Path | None = typer.Option(
        None, "--save-mapping", help="Write the final column mapping to this JSON file"
    ),
) -> None:
    """Preview region assignment and show region/store-type counts."""

    _exit(
        cmd_classify(
            str(workbook),
            sheet=sheet,
            mapping_path=str(mapping) if mapping else None,
            rules_path=str(rules) if rules else None,
            interactive=interactive,
            save_mapping_path=str(save_mapping) if save_mapping else None,
        )
    )


@app.command("dashboard")
def dashboard_cmd(
    workbook: Annotated[Path, WORKBOOK_OPTION],
    sheet: str | None = SHEET_OPTION,
    mapping: Path | None = MAPPING_OPTION,
    rules: Path | None = RULES_OPTION,
    company: str | None = COMPANY_OPTION,
    region: str | None = REGION_OPTION,
    store_type: StoreType | None = STORE_TYPE_OPTION,
    as_json: bool = JSON_OPTION,
) -> None:
    """Summary metrics, trends and rankings for the filtered ledger."""

    _exit(
        cmd_dashboard(
            str(workbook),
            sheet=sheet,
            mapping_path=str(mapping) if mapping else None,
            rules_path=str(rules) if rules else None,
            company=company,
            region=region,
            store_type=store_type,
            as_json=as_json,
        )
    )


@app.command("statement")
def statement_cmd(
    workbook: Annotated[Path, WORKBOOK_OPTION],
    sheet: str | None = SHEET_OPTION,
    mapping: Path | None = MAPPING_OPTION,
    rules: Path | None = RULES_OPTION,
    company: str | None = COMPANY_OPTION,
    region: str | None = REGION_OPTION,
    store_type: StoreType | None = STORE_TYPE_OPTION,
    as_json: bool = JSON_OPTION,
) -> None:
    """Hierarchical P&L statement for the filtered ledger."""

    _exit(
        cmd_statement(
            str(workbook),
            sheet=sheet,
            mapping_path=str(mapping) if mapping else None,
            rules_path=str(rules) if rules else None,
            company=company,
            region=region,
            store_type=store_type,
            as_json=as_json,
        )
    )


@app.command("rows")
def rows_cmd(
    workbook: Annotated[Path, WORKBOOK_OPTION],
    sheet: str | None = SHEET_OPTION,
    mapping: Path | None = MAPPING_OPTION,
    rules: Path | None = RULES_OPTION,
    where: list[str] | None = typer.Option(
        None, "--where", help="FIELD=VALUE substring filter (repeatable)"
    ),
    sort: str | None = typer.Option(None, "--sort", help="Field to sort by"),
    desc: bool = typer.Option(False, "--desc", help="Sort descending"),
    limit: int | None = typer.Option(None, "--limit", min=0, help="Print at most N rows"),
) -> None:
    """Search and sort the classified ledger rows."""

    _exit(
        cmd_rows(
            str(workbook),
            sheet=sheet,
            mapping_path=str(mapping) if mapping else None,
            rules_path=str(rules) if rules else None,
            where=where or (),
            sort=sort,
            descending=desc,
            limit=limit,
        )
    )


@app.command("insights")
def insights_cmd(
    workbook: Annotated[Path, WORKBOOK_OPTION],
    sheet: str | None = SHEET_OPTION,
    mapping: Path | None = MAPPING_OPTION,
    rules: Path | None = RULES_OPTION,
) -> None:
    """Generate AI insights (requires OPENAI_API_KEY)."""

    _exit(
        cmd_insights(
            str(workbook),
            sheet=sheet,
            mapping_path=str(mapping) if mapping else None,
            rules_path=str(rules) if rules else None,
        )
    )


@app.command("ask")
def ask_cmd(
    question: str,
    workbook: Annotated[Path, WORKBOOK_OPTION],
    sheet: str | None = SHEET_OPTION,
    mapping: Path | None = MAPPING_OPTION,
    rules: Path | None = RULES_OPTION,
) -> None:
    """Ask a question about the ledger (requires OPENAI_API_KEY)."""

    _exit(
        cmd_ask(
            str(workbook),
            question,
            sheet=sheet,
            mapping_path=str(mapping) if mapping else None,
            rules_path=str(rules) if rules else None,
        )
    )


@app.callback(invoke_without_command=True)
def _root(
    ctx: typer.Context,
    log_level: str | None = typer.Option(
        None, "--log-level", help="Override PL_ANALYSIS_LOG_LEVEL (e.g. DEBUG)"
    ),
) -> None:
    """Root command.

    Loads ``.env`` from the current working directory (without overriding any
    already-set environment variables) and configures logging.
    """

    load_dotenv(dotenv_path=Path.cwd() / ".env", override=False)

    try:
        level = resolve_level(log_level)
    except ValueError as e:
        raise typer.BadParameter(str(e), param_hint="--log-level") from e
    configure_logging(level)

    if ctx.invoked_subcommand is None:
        typer.echo("No subcommand provided. Use --help to see available commands.")
        raise typer.Exit(1)


if __name__ == "__main__":  # pragma: no cover - exercised via console script
    app()
