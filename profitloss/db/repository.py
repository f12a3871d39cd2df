"""Data access layer for source documents.

Sales, returns, uploaded sheets and the catalog are stored as JSON documents.
ProfitRecords are never stored; they are rebuilt from these on every
reconciliation. Edits and deletes arrive addressed by a record's source id
and are applied to the document it came from.
"""

import json
import logging
import sqlite3
from collections.abc import Mapping
from typing import Any
from uuid import uuid4

from profitloss.engines.sheets import build_sheet, refresh_sheet
from profitloss.exceptions import SourceNotFoundError
from profitloss.ingestion.base import RawBatch
from profitloss.models.enums import SourceType
from profitloss.models.records import SourceRef
from profitloss.models.reports import DateRange
from profitloss.normalization.fields import (
    SHEET_COLUMNS,
    canonical_row,
    first_present,
    ref_id,
    to_datetime,
    to_decimal,
    to_quantity,
)

logger = logging.getLogger(__name__)

# Line-item fields an edit may change on sales and returns.
EDITABLE_ITEM_FIELDS = {"quantity", "unitPrice", "costPrice", "productName"}


class SourceRepository:
    """CRUD operations for source documents."""

    def __init__(self, conn: sqlite3.Connection):
        self.conn = conn

    # --- Import batches ---

    def create_import_batch(self, source: str, file_path: str, record_count: int = 0) -> str:
        """Create an import batch record. Returns the batch ID."""
        batch_id = str(uuid4())
        self.conn.execute(
            """INSERT INTO import_batches (id, source, file_path, record_count, status)
               VALUES (?, ?, ?, ?, 'completed')""",
            (batch_id, source, file_path, record_count),
        )
        self.conn.commit()
        return batch_id

    def get_import_batches(self) -> list[dict]:
        cursor = self.conn.execute("SELECT * FROM import_batches ORDER BY imported_at")
        columns = [desc[0] for desc in cursor.description]
        return [dict(zip(columns, row)) for row in cursor.fetchall()]

    def save_batch(self, batch: RawBatch, source: str, file_path: str) -> dict:
        """Store every document in a raw batch under one import batch. Returns counts."""
        batch_id = self.create_import_batch(source, file_path, batch.document_count)
        for sale in batch.sales:
            self.save_sale(sale, batch_id)
        for doc in batch.returns:
            self.save_return(doc, batch_id)
        for sheet in batch.sheets:
            self.save_sheet(sheet, batch_id)
        if batch.uploaded_rows:
            self.save_sheet(build_sheet(file_path, batch.uploaded_rows), batch_id)
        for product in batch.products:
            self.save_product(product, batch_id)
        for purchase in batch.purchases:
            self.save_purchase(purchase, batch_id)
        for combo in batch.combos:
            self.save_combo(combo, batch_id)
        self.conn.commit()
        return {
            "batch_id": batch_id,
            "sales": len(batch.sales),
            "returns": len(batch.returns),
            "sheets": len(batch.sheets) + (1 if batch.uploaded_rows else 0),
            "products": len(batch.products),
            "purchases": len(batch.purchases),
            "combos": len(batch.combos),
        }

    # --- Sales and returns ---

    def save_sale(self, sale: dict, batch_id: str | None = None) -> str:
        sale_id = _ensure_id(sale)
        moment = to_datetime(first_present(sale, "saleDate", "date"))
        self.conn.execute(
            """INSERT INTO sales (id, batch_id, sale_date, data)
               VALUES (?, ?, ?, ?)
               ON CONFLICT(id) DO UPDATE SET
                   batch_id = COALESCE(excluded.batch_id, sales.batch_id),
                   sale_date = excluded.sale_date,
                   data = excluded.data""",
            (sale_id, batch_id, moment.isoformat() if moment else None, _dumps(sale)),
        )
        self.conn.commit()
        return sale_id

    def save_return(self, doc: dict, batch_id: str | None = None) -> str:
        return_id = _ensure_id(doc)
        moment = to_datetime(first_present(doc, "returnDate", "date", "createdAt"))
        self.conn.execute(
            """INSERT INTO returns (id, batch_id, category, return_date, data)
               VALUES (?, ?, ?, ?, ?)
               ON CONFLICT(id) DO UPDATE SET
                   batch_id = COALESCE(excluded.batch_id, returns.batch_id),
                   category = excluded.category,
                   return_date = excluded.return_date,
                   data = excluded.data""",
            (
                return_id,
                batch_id,
                str(doc.get("category") or "").upper() or None,
                moment.isoformat() if moment else None,
                _dumps(doc),
            ),
        )
        self.conn.commit()
        return return_id

    def get_sales(self, date_range: DateRange | None = None) -> list[dict]:
        return self._dated_documents("sales", "sale_date", date_range)

    def get_returns(self, date_range: DateRange | None = None) -> list[dict]:
        return self._dated_documents("returns", "return_date", date_range)

    def get_sale(self, sale_id: str) -> dict | None:
        return self._get("sales", sale_id)

    def get_return(self, return_id: str) -> dict | None:
        return self._get("returns", return_id)

    # --- Uploaded sheets ---

    def save_sheet(self, sheet: dict, batch_id: str | None = None) -> str:
        sheet_id = _ensure_id(sheet)
        refresh_sheet(sheet)
        self.conn.execute(
            """INSERT INTO uploaded_sheets (id, batch_id, file_name, data)
               VALUES (?, ?, ?, ?)
               ON CONFLICT(id) DO UPDATE SET
                   batch_id = COALESCE(excluded.batch_id, uploaded_sheets.batch_id),
                   file_name = excluded.file_name,
                   data = excluded.data""",
            (sheet_id, batch_id, sheet.get("fileName") or "unknown", _dumps(sheet)),
        )
        self.conn.commit()
        return sheet_id

    def get_sheets(self) -> list[dict]:
        cursor = self.conn.execute(
            "SELECT data FROM uploaded_sheets ORDER BY upload_date DESC, rowid DESC"
        )
        return [json.loads(row[0]) for row in cursor.fetchall()]

    def get_sheet(self, sheet_id: str) -> dict | None:
        return self._get("uploaded_sheets", sheet_id)

    def delete_sheet(self, sheet_id: str) -> None:
        cursor = self.conn.execute("DELETE FROM uploaded_sheets WHERE id = ?", (sheet_id,))
        self.conn.commit()
        if cursor.rowcount == 0:
            raise SourceNotFoundError(f"sheet {sheet_id}")

    def add_sheet_row(self, sheet_id: str, raw_row: Mapping[str, Any]) -> str:
        """Append a row to a sheet and refresh its totals. Returns the new row id."""
        sheet = self.get_sheet(sheet_id)
        if sheet is None:
            raise SourceNotFoundError(f"sheet {sheet_id}")
        row = canonical_row(raw_row)
        row["_id"] = str(uuid4())
        sheet.setdefault("uploadedData", []).append(row)
        self.save_sheet(sheet)
        return row["_id"]

    # --- Catalog ---

    def save_product(self, product: dict, batch_id: str | None = None) -> str:
        product_id = _ensure_id(product)
        self.conn.execute(
            "INSERT OR REPLACE INTO products (id, batch_id, name, data) VALUES (?, ?, ?, ?)",
            (product_id, batch_id, product.get("name"), _dumps(product)),
        )
        self.conn.commit()
        return product_id

    def save_purchase(self, purchase: dict, batch_id: str | None = None) -> str:
        purchase_id = _ensure_id(purchase)
        self.conn.execute(
            "INSERT OR REPLACE INTO purchases (id, batch_id, data) VALUES (?, ?, ?)",
            (purchase_id, batch_id, _dumps(purchase)),
        )
        self.conn.commit()
        return purchase_id

    def save_combo(self, combo: dict, batch_id: str | None = None) -> str:
        combo_id = _ensure_id(combo)
        self.conn.execute(
            "INSERT OR REPLACE INTO combos (id, batch_id, name, data) VALUES (?, ?, ?, ?)",
            (combo_id, batch_id, combo.get("name"), _dumps(combo)),
        )
        self.conn.commit()
        return combo_id

    # --- Reconciliation input ---

    def load_batch(self, date_range: DateRange | None = None) -> RawBatch:
        """Fetch everything a reconciliation needs.

        With a date range, sales and returns outside it are skipped at the
        query; undated ones are still loaded so they surface as warnings.
        Purchases load in insertion order, which decides the cost used when
        a product was bought more than once.
        """
        return RawBatch(
            sales=self.get_sales(date_range),
            returns=self.get_returns(date_range),
            sheets=self.get_sheets(),
            products=self._documents("SELECT data FROM products ORDER BY rowid"),
            purchases=self._documents("SELECT data FROM purchases ORDER BY rowid"),
            combos=self._documents("SELECT data FROM combos ORDER BY rowid"),
        )

    # --- Round trips addressed by source id ---

    def update_source_item(self, source_id: str, updates: Mapping[str, Any]) -> dict:
        """Apply field updates to the line item or sheet row behind a source id.

        Returns the updated parent document. Unknown fields are ignored. An
        edited sheet row is rewritten in its canonical camelCase shape.
        """
        ref = SourceRef.parse(source_id)
        if ref.source_type == SourceType.UPLOADED_ROW:
            sheet, index = self._locate_row(ref)
            rows = sheet["uploadedData"]
            present = [key for key, keys in _ROW_KEYS.items() if any(k in updates for k in keys)]
            patch = canonical_row(updates)
            row = canonical_row(rows[index])
            for storage_key in present:
                row[storage_key] = patch[storage_key]
            rows[index] = row
            self.save_sheet(sheet)
            logger.info("Updated %s", source_id)
            return sheet

        doc, index = self._locate_item(ref)
        item = doc["items"][index]
        for key, value in updates.items():
            if key in EDITABLE_ITEM_FIELDS:
                item[key] = value
        if "total" in item:
            item["total"] = _line_total(item)
        self._save_for(ref, doc)
        logger.info("Updated %s", source_id)
        return doc

    def delete_source_item(self, source_id: str) -> dict:
        """Remove the line item or sheet row behind a source id. Returns the parent document."""
        ref = SourceRef.parse(source_id)
        if ref.source_type == SourceType.UPLOADED_ROW:
            sheet, index = self._locate_row(ref)
            del sheet["uploadedData"][index]
            self.save_sheet(sheet)
            logger.info("Deleted %s", source_id)
            return sheet

        doc, index = self._locate_item(ref)
        del doc["items"][index]
        self._save_for(ref, doc)
        logger.info("Deleted %s", source_id)
        return doc

    # --- Internals ---

    def _locate_item(self, ref: SourceRef) -> tuple[dict, int]:
        """Find a sale or return line item. Return items are addressed by position."""
        if ref.source_type == SourceType.SALE:
            doc = self.get_sale(ref.document_id)
        else:
            doc = self.get_return(ref.document_id)
        if doc is None:
            raise SourceNotFoundError(str(ref))
        items = doc.get("items") or []
        if ref.source_type == SourceType.SALE:
            for index, item in enumerate(items):
                if ref_id(item) == ref.item_key:
                    return doc, index
        index = ref.item_index
        if index is not None and index < len(items):
            if ref.source_type == SourceType.RETURN or ref_id(items[index]) is None:
                return doc, index
        raise SourceNotFoundError(str(ref))

    def _locate_row(self, ref: SourceRef) -> tuple[dict, int]:
        sheet = self.get_sheet(ref.document_id)
        if sheet is None:
            raise SourceNotFoundError(str(ref))
        rows = sheet.get("uploadedData") or []
        for index, row in enumerate(rows):
            if ref_id(row.get("_id", row.get("id"))) == ref.item_key:
                return sheet, index
        index = ref.item_index
        if index is not None and index < len(rows):
            if ref_id(rows[index].get("_id", rows[index].get("id"))) is None:
                return sheet, index
        raise SourceNotFoundError(str(ref))

    def _save_for(self, ref: SourceRef, doc: dict) -> None:
        if ref.source_type == SourceType.SALE:
            self.save_sale(doc)
        else:
            self.save_return(doc)

    def _get(self, table: str, doc_id: str) -> dict | None:
        cursor = self.conn.execute(f"SELECT data FROM {table} WHERE id = ?", (doc_id,))
        row = cursor.fetchone()
        return json.loads(row[0]) if row else None

    def _documents(self, sql: str, params: tuple = ()) -> list[dict]:
        cursor = self.conn.execute(sql, params)
        return [json.loads(row[0]) for row in cursor.fetchall()]

    def _dated_documents(self, table: str, column: str, date_range: DateRange | None) -> list[dict]:
        sql = f"SELECT data FROM {table}"
        clauses: list[str] = []
        params: list[str] = []
        if date_range is not None and date_range.start_bound is not None:
            clauses.append(f"{column} >= ?")
            params.append(date_range.start_bound.isoformat())
        if date_range is not None and date_range.end_bound is not None:
            clauses.append(f"{column} <= ?")
            params.append(date_range.end_bound.isoformat())
        if clauses:
            sql += f" WHERE {column} IS NULL OR ({' AND '.join(clauses)})"
        sql += " ORDER BY rowid"
        return self._documents(sql, tuple(params))


_ROW_KEYS: dict[str, tuple[str, ...]] = {
    storage_key: (storage_key, *keys) for _, storage_key, keys in SHEET_COLUMNS
}


def _ensure_id(doc: dict) -> str:
    doc_id = ref_id(doc)
    if doc_id is None:
        doc_id = str(uuid4())
        doc["_id"] = doc_id
    return doc_id


def _line_total(item: Mapping[str, Any]) -> Any:
    price = to_decimal(item.get("unitPrice"))
    quantity = to_quantity(item.get("quantity"), default=1)
    if price is None or quantity is None:
        return item.get("total")
    return str(price * quantity)


def _dumps(doc: Mapping[str, Any]) -> str:
    return json.dumps(doc, default=str)
