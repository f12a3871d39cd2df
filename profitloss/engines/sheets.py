"""Uploaded profit sheet bookkeeping.

These totals come from the sheet's own "Profit" column, as typed by whoever
filled it in. They are stored with the sheet and shown next to it; the
reconciliation engine computes its own figures from prices instead.
"""

from collections.abc import Iterable, Mapping
from decimal import Decimal
from typing import Any

from profitloss.models.enums import ProfitStatus
from profitloss.models.reports import SheetProfitSummary, SheetsOverview, SheetStats
from profitloss.normalization.fields import canonical_row, is_blank, resolve_row, to_decimal
from profitloss.normalization.status import classify_status


def summarize_sheet(rows: Iterable[Mapping[str, Any]]) -> SheetProfitSummary:
    """Sum the Profit column. RPU rows go to rpu_profit, all others to delivered.

    Non-numeric profit cells are skipped; blank cells count as zero.
    """
    summary = SheetProfitSummary()
    for raw in rows:
        row = resolve_row(raw)
        profit = Decimal("0") if is_blank(row["profit"]) else to_decimal(row["profit"])
        if profit is None:
            continue
        summary.total_profit += profit
        if classify_status(row["status"]) == ProfitStatus.RPU:
            summary.rpu_profit += profit
        else:
            summary.delivered_profit += profit
    summary.net_profit = summary.delivered_profit + summary.rpu_profit
    return summary


def sheet_stats(rows: Iterable[Mapping[str, Any]]) -> SheetStats:
    """Count rows; a row is a success when it carries an order id."""
    rows = list(rows)
    success = sum(1 for raw in rows if not is_blank(resolve_row(raw)["order_id"]))
    return SheetStats(
        total_records=len(rows),
        success_records=success,
        error_records=len(rows) - success,
    )


def build_sheet(file_name: str, raw_rows: Iterable[Mapping[str, Any]], notes: str | None = None) -> dict:
    """Assemble an UploadedSheet document from raw spreadsheet rows."""
    rows = [canonical_row(raw) for raw in raw_rows]
    for index, row in enumerate(rows):
        row.setdefault("_id", str(index))
    return refresh_sheet({
        "fileName": file_name,
        "uploadedData": rows,
        "status": "uploaded",
        "notes": notes,
    })


def refresh_sheet(sheet: dict) -> dict:
    """Recompute a sheet's profit summary and record counts in place."""
    rows = sheet.get("uploadedData") or []
    stats = sheet_stats(rows)
    summary = summarize_sheet(rows)
    sheet["totalRecords"] = stats.total_records
    sheet["successRecords"] = stats.success_records
    sheet["errorRecords"] = stats.error_records
    sheet["profitSummary"] = {
        "totalProfit": str(summary.total_profit),
        "deliveredProfit": str(summary.delivered_profit),
        "rpuProfit": str(summary.rpu_profit),
        "netProfit": str(summary.net_profit),
    }
    return sheet


def summarize_uploads(sheets: Iterable[Mapping[str, Any]]) -> SheetsOverview:
    """Totals across stored sheets, read from each sheet's own profit summary."""
    overview = SheetsOverview()
    for sheet in sheets:
        overview.total_uploads += 1
        overview.total_records += int(sheet.get("totalRecords") or 0)
        overview.success_records += int(sheet.get("successRecords") or 0)
        overview.error_records += int(sheet.get("errorRecords") or 0)
        summary = sheet.get("profitSummary") or {}
        overview.profit.total_profit += to_decimal(summary.get("totalProfit")) or Decimal("0")
        overview.profit.delivered_profit += to_decimal(summary.get("deliveredProfit")) or Decimal("0")
        overview.profit.rpu_profit += to_decimal(summary.get("rpuProfit")) or Decimal("0")
        overview.profit.net_profit += to_decimal(summary.get("netProfit")) or Decimal("0")
    return overview
