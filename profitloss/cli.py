"""Typer CLI interface for the profit/loss reconciler."""

import json
import logging
from datetime import date
from decimal import Decimal
from pathlib import Path
from typing import Any

import typer

from profitloss.exceptions import ReconciliationError
from profitloss.models.enums import ProfitStatus

DEFAULT_DB = Path.home() / ".plrecon" / "plrecon.db"

app = typer.Typer(
    name="plrecon",
    help="Profit/loss reconciliation for sales, returns and uploaded profit sheets.",
)


@app.callback(invoke_without_command=True)
def main(
    ctx: typer.Context,
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log pipeline details to stderr"),
) -> None:
    """Profit/loss reconciliation for sales, returns and uploaded profit sheets."""
    if verbose:
        logging.basicConfig(
            level=logging.INFO,
            format="%(levelname)s %(name)s: %(message)s",
        )
    if ctx.invoked_subcommand is None:
        typer.echo(ctx.get_help())
        raise typer.Exit()


def _db_option() -> Any:
    return typer.Option(
        DEFAULT_DB,
        "--db",
        envvar="PLRECON_DB",
        help="Path to the SQLite database file",
    )


def _open_repo(db: Path, must_exist: bool = True):
    from profitloss.db.repository import SourceRepository
    from profitloss.db.schema import create_schema

    if must_exist and not db.exists():
        typer.echo("Error: No database found. Import data first with `plrecon import`.", err=True)
        raise typer.Exit(1)
    db.parent.mkdir(parents=True, exist_ok=True)
    conn = create_schema(db)
    return conn, SourceRepository(conn)


def _parse_day(value: str | None, option: str) -> date | None:
    if not value:
        return None
    try:
        return date.fromisoformat(value)
    except ValueError:
        typer.echo(f"Error: {option} must be a date in YYYY-MM-DD form, got {value!r}", err=True)
        raise typer.Exit(1)


def _date_range(start: str | None, end: str | None):
    from profitloss.models.reports import DateRange

    try:
        return DateRange(start=_parse_day(start, "--start"), end=_parse_day(end, "--end"))
    except ReconciliationError as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(1)


def _fmt(val: Decimal | None) -> str:
    """Format an amount to 2 decimal places with commas."""
    from profitloss.models.reports import money

    if val is None:
        return "-"
    return f"{money(val):,.2f}"


class _DecimalEncoder(json.JSONEncoder):
    """JSON encoder that serializes Decimal as string."""

    def default(self, obj: Any) -> Any:
        if isinstance(obj, Decimal):
            return str(obj)
        return super().default(obj)


@app.command(name="import")
def import_cmd(
    file: Path = typer.Argument(..., help="JSON batch export (.json) or profit sheet (.csv)"),
    db: Path = _db_option(),
) -> None:
    """Import source documents into the database.

    \b
    Supported files:
      .json   Object keyed by sales, returns, uploadedSheets, uploadedRows,
              products, purchases, combos (or a bare list of sheet rows)
      .csv    One uploaded profit sheet with its header row
    """
    from profitloss.ingestion import JsonBatchAdapter, SheetCsvAdapter

    ext = file.suffix.lower()
    if ext == ".json":
        adapter, source = JsonBatchAdapter(), "json"
    elif ext == ".csv":
        adapter, source = SheetCsvAdapter(), "sheet_csv"
    else:
        typer.echo(f"Error: Unsupported file type: {file.name} (expected .json or .csv)", err=True)
        raise typer.Exit(1)

    try:
        batch = adapter.parse(file)
    except (FileNotFoundError, ReconciliationError) as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(1)

    for message in adapter.validate(batch):
        typer.echo(f"Warning: {message}", err=True)

    conn, repo = _open_repo(db, must_exist=False)
    try:
        counts = repo.save_batch(batch, source, str(file))
    finally:
        conn.close()

    typer.echo(f"Imported {file.name} into {db.name}:")
    for key in ("sales", "returns", "sheets", "products", "purchases", "combos"):
        if counts[key]:
            typer.echo(f"  {key.capitalize():<10} {counts[key]}")


@app.command()
def reconcile(
    start: str | None = typer.Option(None, "--start", help="First day of the period (YYYY-MM-DD)"),
    end: str | None = typer.Option(None, "--end", help="Last day of the period, inclusive (YYYY-MM-DD)"),
    as_json: bool = typer.Option(False, "--json", help="Print the report as JSON"),
    all_time: bool = typer.Option(False, "--all-time", help="Also summarize every record ever"),
    unknown_status: ProfitStatus = typer.Option(
        ProfitStatus.DELIVERED,
        "--unknown-status",
        help="Status for rows whose status text isn't recognised",
    ),
    db: Path = _db_option(),
) -> None:
    """Compute profit and loss for a date range."""
    from rich.console import Console
    from rich.table import Table

    from profitloss.engines.reconciliation import ReconciliationEngine, ReconciliationSettings

    date_range = _date_range(start, end)
    conn, repo = _open_repo(db)
    try:
        batch = repo.load_batch(None if all_time else date_range)
    finally:
        conn.close()

    engine = ReconciliationEngine(
        ReconciliationSettings(unknown_status=unknown_status, include_all_time=all_time)
    )
    try:
        report = engine.reconcile(batch, date_range)
    except ReconciliationError as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(1)

    if as_json:
        typer.echo(json.dumps(report.to_response(), cls=_DecimalEncoder, indent=2))
        return

    console = Console()
    tbl = Table(title="Profit Summary", show_header=True)
    tbl.add_column("Metric", style="cyan")
    tbl.add_column("Value", style="green", justify="right")
    tbl.add_row("Records", str(report.summary.total_records))
    tbl.add_row("Total profit", _fmt(report.summary.total_profit))
    tbl.add_row("Delivered profit", _fmt(report.summary.delivered_profit))
    tbl.add_row("RPU profit", _fmt(report.summary.rpu_profit))
    if report.summary.rto_profit:
        tbl.add_row("RTO profit", _fmt(report.summary.rto_profit))
    if report.all_time_summary is not None:
        tbl.add_row("All-time profit", _fmt(report.all_time_summary.total_profit))
    console.print(tbl)

    if report.monthly_chart_data:
        months = Table(title="By Month", show_header=True)
        months.add_column("Month", style="cyan")
        months.add_column("Total", justify="right")
        months.add_column("Delivered", justify="right")
        months.add_column("RPU", justify="right")
        for m in report.monthly_chart_data:
            months.add_row(m.label, _fmt(m.total_profit), _fmt(m.delivered_profit), _fmt(m.rpu_profit))
        console.print(months)

    for w in report.warnings:
        console.print(f"[yellow]Warning: {w}[/yellow]")


@app.command()
def report(
    start: str | None = typer.Option(None, "--start", help="First day of the period (YYYY-MM-DD)"),
    end: str | None = typer.Option(None, "--end", help="Last day of the period, inclusive (YYYY-MM-DD)"),
    output: Path = typer.Option("reports/", help="Output directory for reports"),
    records: bool = typer.Option(True, "--records/--no-records", help="List individual records"),
    db: Path = _db_option(),
) -> None:
    """Write a plain-text profit/loss statement."""
    from profitloss.engines.reconciliation import ReconciliationEngine
    from profitloss.reports import ProfitLossReportGenerator

    date_range = _date_range(start, end)
    conn, repo = _open_repo(db)
    try:
        batch = repo.load_batch(date_range)
    finally:
        conn.close()

    try:
        result = ReconciliationEngine().reconcile(batch, date_range)
    except ReconciliationError as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(1)

    output.mkdir(parents=True, exist_ok=True)
    suffix = f"{start or 'start'}_{end or 'end'}"
    path = output / f"profit_loss_{suffix}.txt"
    path.write_text(ProfitLossReportGenerator().render(result, show_records=records))
    typer.echo(f"Report written to {path}")


@app.command()
def sheets(
    summary_only: bool = typer.Option(False, "--summary", help="Only print totals across all sheets"),
    db: Path = _db_option(),
) -> None:
    """List uploaded sheets with the totals from their own Profit column."""
    from rich.console import Console
    from rich.table import Table

    from profitloss.engines.sheets import summarize_uploads

    conn, repo = _open_repo(db)
    try:
        stored = repo.get_sheets()
    finally:
        conn.close()

    if not stored:
        typer.echo("No uploaded sheets found.")
        return

    overview = summarize_uploads(stored)
    console = Console()
    if summary_only:
        tbl = Table(title="Uploaded Sheets Summary", show_header=True)
        tbl.add_column("Metric", style="cyan")
        tbl.add_column("Value", style="green", justify="right")
        tbl.add_row("Uploads", str(overview.total_uploads))
        tbl.add_row("Records", str(overview.total_records))
        tbl.add_row("Errors", str(overview.error_records))
        tbl.add_row("Delivered profit", _fmt(overview.profit.delivered_profit))
        tbl.add_row("RPU profit", _fmt(overview.profit.rpu_profit))
        tbl.add_row("Net profit", _fmt(overview.profit.net_profit))
        console.print(tbl)
        return

    tbl = Table(title="Uploaded Sheets", show_header=True, show_footer=True)
    tbl.add_column("ID", style="dim", footer="Total")
    tbl.add_column("File", style="cyan", footer=f"{overview.total_uploads} upload(s)")
    tbl.add_column("Rows", justify="right", footer=str(overview.total_records))
    tbl.add_column("Errors", justify="right", footer=str(overview.error_records))
    tbl.add_column("Delivered", justify="right", footer=_fmt(overview.profit.delivered_profit))
    tbl.add_column("RPU", justify="right", footer=_fmt(overview.profit.rpu_profit))
    tbl.add_column("Net", style="green", justify="right", footer=_fmt(overview.profit.net_profit))
    for sheet in stored:
        summary = sheet.get("profitSummary") or {}
        tbl.add_row(
            str(sheet.get("_id")),
            str(sheet.get("fileName")),
            str(sheet.get("totalRecords", 0)),
            str(sheet.get("errorRecords", 0)),
            _fmt(Decimal(summary.get("deliveredProfit", "0"))),
            _fmt(Decimal(summary.get("rpuProfit", "0"))),
            _fmt(Decimal(summary.get("netProfit", "0"))),
        )
    console.print(tbl)


@app.command(name="update-item")
def update_item(
    source_id: str = typer.Argument(..., help="Source id from a reconcile report, e.g. sale:<id>:<item>"),
    assignments: list[str] = typer.Option(
        ..., "--set", help="Field to change as key=value; repeatable"
    ),
    db: Path = _db_option(),
) -> None:
    """Edit the line item or sheet row behind a profit record."""
    updates: dict[str, str] = {}
    for assignment in assignments:
        key, sep, value = assignment.partition("=")
        if not sep or not key.strip():
            typer.echo(f"Error: --set expects key=value, got {assignment!r}", err=True)
            raise typer.Exit(1)
        updates[key.strip()] = value.strip()

    conn, repo = _open_repo(db)
    try:
        repo.update_source_item(source_id, updates)
    except ReconciliationError as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(1)
    finally:
        conn.close()
    typer.echo(f"Updated {source_id}")


@app.command(name="delete-item")
def delete_item(
    source_id: str = typer.Argument(..., help="Source id from a reconcile report, e.g. upload:<sheet>:<row>"),
    db: Path = _db_option(),
) -> None:
    """Delete the line item or sheet row behind a profit record."""
    conn, repo = _open_repo(db)
    try:
        repo.delete_source_item(source_id)
    except ReconciliationError as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(1)
    finally:
        conn.close()
    typer.echo(f"Deleted {source_id}")


if __name__ == "__main__":
    app()
