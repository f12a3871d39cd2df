"""CSV adapter for uploaded profit sheets.

Reads a sheet saved as CSV with its usual header row (Month, S.No., Order
Date, Order id, SKU, Quantity, Status, Payment, Payment Date, Payment Status,
Purchase Price, Profit, Re-use / Claim, Reused Date, Status of Product,
Remarks) and turns it into a single UploadedSheet document.
"""

import csv
from pathlib import Path
from uuid import uuid4

from profitloss.engines.sheets import build_sheet
from profitloss.exceptions import BatchImportError
from profitloss.ingestion.base import BaseAdapter, RawBatch
from profitloss.normalization.fields import SHEET_FIELDS, is_blank


class SheetCsvAdapter(BaseAdapter):
    """Adapter for profit sheets exported as CSV."""

    def parse(self, file_path: Path) -> RawBatch:
        if not file_path.exists():
            raise FileNotFoundError(f"File not found: {file_path}")

        text = file_path.read_text(encoding="utf-8-sig")  # Handle BOM
        reader = csv.DictReader(text.splitlines())
        if not reader.fieldnames:
            raise BatchImportError(file_path.name, "no header row found")
        headers = [h.strip() for h in reader.fieldnames if h]
        known = {key for keys in SHEET_FIELDS.values() for key in keys}
        if not known.intersection(headers):
            raise BatchImportError(
                file_path.name,
                f"no recognised sheet columns in header: {', '.join(headers)}",
            )

        rows = []
        for record in reader:
            row = {(k or "").strip(): v for k, v in record.items() if k}
            if all(is_blank(v) for v in row.values()):
                continue
            rows.append(row)
        if not rows:
            raise BatchImportError(file_path.name, "no data rows found")

        sheet = build_sheet(file_path.name, rows)
        sheet["_id"] = str(uuid4())
        return RawBatch(sheets=[sheet])

    def validate(self, batch: RawBatch) -> list[str]:
        errors = []
        for sheet in batch.sheets:
            if sheet.get("successRecords", 0) == 0:
                errors.append(f"{sheet.get('fileName')}: no row has an Order id")
            for index, row in enumerate(sheet.get("uploadedData") or []):
                if is_blank(row.get("orderDate")) and is_blank(row.get("paymentDate")):
                    errors.append(f"{sheet.get('fileName')} row {index + 1}: Order Date is missing")
        return errors
