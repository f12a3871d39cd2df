"""JSON batch adapter for exported source documents."""

import json
from pathlib import Path

from profitloss.exceptions import BatchImportError
from profitloss.ingestion.base import BaseAdapter, RawBatch
from profitloss.normalization.fields import first_present, is_blank, resolve_row

# RawBatch field -> accepted top-level keys
_SECTIONS: dict[str, tuple[str, ...]] = {
    "sales": ("sales",),
    "returns": ("returns", "rtoProducts"),
    "uploaded_rows": ("uploadedRows", "rows"),
    "sheets": ("uploadedSheets", "sheets"),
    "products": ("products",),
    "purchases": ("purchases",),
    "combos": ("combos",),
}


class JsonBatchAdapter(BaseAdapter):
    """Imports a JSON export of sales, returns, sheets and catalog documents.

    The file is either an object keyed by collection name, or a bare list,
    which is read as loose uploaded sheet rows.
    """

    def parse(self, file_path: Path) -> RawBatch:
        if not file_path.exists():
            raise FileNotFoundError(f"File not found: {file_path}")
        try:
            raw = json.loads(file_path.read_text(encoding="utf-8"))
        except json.JSONDecodeError as exc:
            raise BatchImportError(file_path.name, f"invalid JSON: {exc}") from exc

        if isinstance(raw, list):
            return RawBatch(uploaded_rows=self._section(file_path, "rows", raw))
        if not isinstance(raw, dict):
            raise BatchImportError(file_path.name, "expected a JSON object or list at top level")

        batch = RawBatch()
        for attr, keys in _SECTIONS.items():
            for key in keys:
                if key in raw:
                    getattr(batch, attr).extend(self._section(file_path, key, raw[key]))
        if batch.document_count == 0:
            raise BatchImportError(
                file_path.name,
                f"no known collections found in keys: {sorted(raw.keys())}",
            )
        return batch

    def validate(self, batch: RawBatch) -> list[str]:
        """Flag documents that will reconcile poorly. Nothing here is fatal."""
        errors = []
        for i, sale in enumerate(batch.sales):
            if not sale.get("items"):
                errors.append(f"Sale {i + 1}: has no line items")
            if is_blank(first_present(sale, "saleDate", "date")):
                errors.append(f"Sale {i + 1}: saleDate is missing")
        for i, doc in enumerate(batch.returns):
            if str(doc.get("category") or "").upper() not in ("RTO", "RPU"):
                errors.append(f"Return {i + 1}: category must be RTO or RPU")
            if not doc.get("items"):
                errors.append(f"Return {i + 1}: has no items")
        for i, sheet in enumerate(batch.sheets):
            if not sheet.get("uploadedData"):
                errors.append(f"Sheet {i + 1}: has no rows")
        rows = batch.uploaded_rows + [r for s in batch.sheets for r in s.get("uploadedData") or []]
        undated = sum(
            1 for row in rows
            if is_blank(resolve_row(row)["order_date"]) and is_blank(resolve_row(row)["payment_date"])
        )
        if undated:
            errors.append(f"{undated} sheet row(s) have no Order Date or Payment Date")
        return errors

    @staticmethod
    def _section(file_path: Path, key: str, value: object) -> list[dict]:
        if not isinstance(value, list) or not all(isinstance(doc, dict) for doc in value):
            raise BatchImportError(file_path.name, f"'{key}' must be a list of objects")
        return value
