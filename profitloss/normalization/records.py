"""Record normalization: sales, returns and uploaded sheet rows to ProfitRecords."""

import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from profitloss.exceptions import InputShapeError
from profitloss.models.enums import ItemType, ProfitStatus, SourceType, WarningCode
from profitloss.models.records import ProfitRecord, ReconciliationWarning, SourceRef
from profitloss.normalization.costs import CostBook, CostResolution
from profitloss.normalization.fields import (
    first_present,
    is_blank,
    ref_id,
    resolve_row,
    to_datetime,
    to_decimal,
    to_quantity,
)
from profitloss.normalization.status import classify_status

logger = logging.getLogger(__name__)

LOOSE_ROWS_DOCUMENT = "rows"


@dataclass
class NormalizationResult:
    """Canonical records plus the non-fatal findings raised building them."""

    records: list[ProfitRecord] = field(default_factory=list)
    warnings: list[ReconciliationWarning] = field(default_factory=list)


class RecordNormalizer:
    """Converts the three raw record families into canonical ProfitRecords.

    Pure over its inputs: the same documents always produce the same records
    with the same source ids. Data-quality problems become warnings; only a
    structurally wrong input (not a list of documents) raises.
    """

    def __init__(
        self,
        cost_book: CostBook | None = None,
        unknown_status: ProfitStatus = ProfitStatus.DELIVERED,
    ):
        self.cost_book = cost_book or CostBook()
        self.unknown_status = unknown_status

    def normalize(
        self,
        sales: Iterable[Mapping[str, Any]] | None = (),
        returns: Iterable[Mapping[str, Any]] | None = (),
        uploaded_rows: Iterable[Mapping[str, Any]] | None = (),
        sheets: Iterable[Mapping[str, Any]] | None = (),
    ) -> NormalizationResult:
        """Normalize every source document into ProfitRecords.

        ``uploaded_rows`` are loose sheet rows; ``sheets`` are UploadedSheet
        documents whose rows live under ``uploadedData``.
        """
        result = NormalizationResult()

        for position, sale in enumerate(_documents("sales", sales)):
            self._normalize_sale(sale, position, result)
        for position, doc in enumerate(_documents("returns", returns)):
            self._normalize_return(doc, position, result)
        for index, row in enumerate(_documents("uploaded_rows", uploaded_rows)):
            self._normalize_row(row, LOOSE_ROWS_DOCUMENT, index, result)
        for position, sheet in enumerate(_documents("sheets", sheets)):
            sheet_id = ref_id(sheet) or f"sheet{position}"
            rows = _documents(f"sheets[{position}].uploadedData", sheet.get("uploadedData"))
            for index, row in enumerate(rows):
                self._normalize_row(row, sheet_id, index, result)

        logger.info(
            "Normalized %d record(s) with %d warning(s)",
            len(result.records),
            len(result.warnings),
        )
        return result

    # --- Sales ---

    def _normalize_sale(self, sale: Mapping[str, Any], position: int, result: NormalizationResult) -> None:
        sale_id = ref_id(sale) or str(position)
        moment = to_datetime(first_present(sale, "saleDate", "date"))
        items = _documents(f"sales[{position}].items", sale.get("items"))

        for index, item in enumerate(items):
            ref = SourceRef(
                source_type=SourceType.SALE,
                document_id=sale_id,
                item_key=ref_id(item) or str(index),
            )
            self._emit_line(
                ref=ref,
                item=item,
                moment=moment,
                raw_date=first_present(sale, "saleDate", "date"),
                status=ProfitStatus.DELIVERED,
                result=result,
            )

    # --- Returns ---

    def _normalize_return(self, doc: Mapping[str, Any], position: int, result: NormalizationResult) -> None:
        return_id = ref_id(doc) or str(position)
        raw_date = first_present(doc, "returnDate", "date", "createdAt")
        moment = to_datetime(raw_date)
        status = classify_status(doc.get("category"))
        items = _documents(f"returns[{position}].items", doc.get("items"))

        for index, item in enumerate(items):
            ref = SourceRef(source_type=SourceType.RETURN, document_id=return_id, item_key=str(index))
            item_status = status
            codes: list[WarningCode] = []
            if item_status is None or item_status == ProfitStatus.DELIVERED:
                item_status = self._unknown_status(ref, doc.get("category"), result)
                codes.append(WarningCode.UNRECOGNIZED_STATUS)
            self._emit_line(
                ref=ref,
                item=item,
                moment=moment,
                raw_date=raw_date,
                status=item_status,
                result=result,
                codes=codes,
            )

    # --- Shared line-item path for sales and returns ---

    def _emit_line(
        self,
        ref: SourceRef,
        item: Mapping[str, Any],
        moment: datetime | None,
        raw_date: Any,
        status: ProfitStatus,
        result: NormalizationResult,
        codes: list[WarningCode] | None = None,
    ) -> None:
        source_id = str(ref)
        codes = list(codes or [])

        quantity = to_quantity(item.get("quantity"), default=1)
        if quantity is None:
            self._drop_for_quantity(source_id, item.get("quantity"), result)
            return

        item_type = _item_type(item)
        if "costPrice" in item:
            # Caller-supplied cost basis, e.g. already adjusted for return handling.
            cost = to_decimal(item["costPrice"])
            resolution = CostResolution(cost=cost)
        else:
            resolution = self._resolve_cost(item, item_type)
            cost = resolution.cost
        if resolution.missing:
            codes.append(WarningCode.MISSING_REFERENCE)
            _warn(
                result,
                WarningCode.MISSING_REFERENCE,
                source_id,
                f"Unresolved {', '.join(resolution.missing)}; cost basis set to 0",
                missing=resolution.missing,
            )

        if moment is None:
            codes.append(WarningCode.INVALID_DATE)
            _warn(result, WarningCode.INVALID_DATE, source_id, f"Unparseable date {raw_date!r}")

        label = (
            resolution.label
            or first_present(item, "productName", "comboName", "name")
            or _embedded_name(item.get("product"))
            or _embedded_name(item.get("combo"))
            or "Unknown"
        )
        result.records.append(ProfitRecord(
            source_type=ref.source_type,
            source_id=source_id,
            date=moment,
            product_label=str(label),
            item_type=item_type,
            quantity=quantity,
            cost_price=cost,
            sold_price=to_decimal(item.get("unitPrice")),
            status=status,
            warnings=tuple(codes),
        ))

    def _resolve_cost(self, item: Mapping[str, Any], item_type: ItemType) -> CostResolution:
        if item_type == ItemType.COMBO:
            return self.cost_book.combo_cost(item.get("combo"))
        return self.cost_book.product_cost(item.get("product"))

    # --- Uploaded sheet rows ---

    def _normalize_row(
        self,
        raw: Mapping[str, Any],
        document_id: str,
        index: int,
        result: NormalizationResult,
    ) -> None:
        row = resolve_row(raw)
        ref = SourceRef(
            source_type=SourceType.UPLOADED_ROW,
            document_id=document_id,
            item_key=ref_id(raw.get("_id", raw.get("id"))) or str(index),
        )
        source_id = str(ref)
        codes: list[WarningCode] = []

        quantity = to_quantity(row["quantity"], default=1)
        if quantity is None:
            self._drop_for_quantity(source_id, row["quantity"], result)
            return

        status = classify_status(row["status"])
        if status is None:
            status = self._unknown_status(ref, row["status"], result)
            codes.append(WarningCode.UNRECOGNIZED_STATUS)

        raw_date = row["order_date"] if not is_blank(row["order_date"]) else row["payment_date"]
        moment = to_datetime(raw_date)
        if moment is None:
            codes.append(WarningCode.INVALID_DATE)
            _warn(result, WarningCode.INVALID_DATE, source_id, f"Unparseable date {raw_date!r}")

        cost = to_decimal(row["purchase_price"])
        reported = to_decimal(row["profit"])
        sold = to_decimal(row["payment"])
        if is_blank(row["payment"]) and cost is not None and reported is not None:
            sold = cost + reported / quantity

        result.records.append(ProfitRecord(
            source_type=SourceType.UPLOADED_ROW,
            source_id=source_id,
            date=moment,
            product_label=str(row["sku"] or row["order_id"] or "Unknown"),
            quantity=quantity,
            cost_price=cost,
            sold_price=sold,
            status=status,
            reported_profit=reported,
            warnings=tuple(codes),
        ))

    # --- Helpers ---

    def _unknown_status(self, ref: SourceRef, text: Any, result: NormalizationResult) -> ProfitStatus:
        _warn(
            result,
            WarningCode.UNRECOGNIZED_STATUS,
            str(ref),
            f"Status {text!r} not recognised; counted as {self.unknown_status.value}",
        )
        return self.unknown_status

    @staticmethod
    def _drop_for_quantity(source_id: str, value: Any, result: NormalizationResult) -> None:
        _warn(
            result,
            WarningCode.INVALID_QUANTITY,
            source_id,
            f"Quantity {value!r} is not a positive whole number; record dropped",
        )


def _documents(name: str, value: Any) -> list[Mapping[str, Any]]:
    """Check that an input collection is a sequence of documents."""
    if value is None:
        return []
    if isinstance(value, (Mapping, str, bytes)) or not isinstance(value, Iterable):
        raise InputShapeError(name, f"expected a list of documents, got {type(value).__name__}")
    documents = list(value)
    for index, doc in enumerate(documents):
        if not isinstance(doc, Mapping):
            raise InputShapeError(name, f"entry {index} is {type(doc).__name__}, not a document")
    return documents


def _item_type(item: Mapping[str, Any]) -> ItemType:
    declared = str(item.get("type") or "").strip().lower()
    if declared == ItemType.COMBO.value:
        return ItemType.COMBO
    if not declared and is_blank(item.get("product")) and not is_blank(item.get("combo")):
        return ItemType.COMBO
    return ItemType.PRODUCT


def _embedded_name(reference: Any) -> str | None:
    if isinstance(reference, Mapping):
        name = reference.get("name")
        return None if is_blank(name) else str(name)
    return None


def _warn(
    result: NormalizationResult,
    code: WarningCode,
    source_id: str,
    message: str,
    **details: Any,
) -> None:
    logger.warning("%s [%s]: %s", code.value, source_id, message)
    result.warnings.append(
        ReconciliationWarning(code=code, source_id=source_id, message=message, details=details)
    )
