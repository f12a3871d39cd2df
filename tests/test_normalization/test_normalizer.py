"""Tests for RecordNormalizer."""

from datetime import datetime
from decimal import Decimal

import pytest

from profitloss.exceptions import InputShapeError
from profitloss.models.enums import ItemType, ProfitStatus, SourceType, WarningCode
from profitloss.normalization.costs import CostBook
from profitloss.normalization.records import RecordNormalizer


@pytest.fixture
def normalizer(sample_products, sample_purchases, sample_combos) -> RecordNormalizer:
    book = CostBook(products=sample_products, purchases=sample_purchases, combos=sample_combos)
    return RecordNormalizer(cost_book=book)


def _by_id(result):
    return {r.source_id: r for r in result.records}


class TestSales:
    def test_each_line_item_becomes_a_delivered_record(self, normalizer, sample_sales):
        result = normalizer.normalize(sales=sample_sales)
        records = _by_id(result)
        assert set(records) == {"sale:s-1:si-1", "sale:s-1:si-2", "sale:s-2:si-3"}
        assert all(r.status == ProfitStatus.DELIVERED for r in records.values())
        assert all(r.source_type == SourceType.SALE for r in records.values())

    def test_product_line(self, normalizer, sample_sales):
        record = _by_id(normalizer.normalize(sales=sample_sales))["sale:s-1:si-1"]
        assert record.quantity == 2
        assert record.cost_price == Decimal("50")
        assert record.sold_price == Decimal("80")
        assert record.product_label == "Ceramic Mug"
        assert record.date == datetime(2024, 3, 10, 9, 30)
        assert record.warnings == ()

    def test_combo_line(self, normalizer, sample_sales):
        record = _by_id(normalizer.normalize(sales=sample_sales))["sale:s-1:si-2"]
        assert record.item_type == ItemType.COMBO
        assert record.cost_price == Decimal("130")
        assert record.product_label == "Gift Box"

    def test_sale_status_is_ignored(self, normalizer):
        sale = {"_id": "s", "saleDate": "2024-03-01", "status": "rpu",
                "items": [{"product": "p-mug", "unitPrice": 60}]}
        record = normalizer.normalize(sales=[sale]).records[0]
        assert record.status == ProfitStatus.DELIVERED

    def test_item_without_id_uses_index(self, normalizer):
        sale = {"_id": "s", "saleDate": "2024-03-01",
                "items": [{"product": "p-mug", "unitPrice": 60}, {"product": "p-cap", "unitPrice": 40}]}
        ids = [r.source_id for r in normalizer.normalize(sales=[sale]).records]
        assert ids == ["sale:s:0", "sale:s:1"]

    def test_blank_quantity_defaults_to_one(self, normalizer):
        sale = {"_id": "s", "saleDate": "2024-03-01", "items": [{"product": "p-mug", "unitPrice": 60}]}
        assert normalizer.normalize(sales=[sale]).records[0].quantity == 1

    def test_item_cost_price_overrides_catalog(self, normalizer):
        sale = {"_id": "s", "saleDate": "2024-03-01",
                "items": [{"product": "p-mug", "unitPrice": 60, "costPrice": "N/A"}]}
        result = normalizer.normalize(sales=[sale])
        assert result.records[0].cost_price is None
        assert result.warnings == []


class TestReturns:
    def test_category_sets_status(self, normalizer, sample_returns):
        records = _by_id(normalizer.normalize(returns=sample_returns))
        assert records["return:r-1:0"].status == ProfitStatus.RTO
        assert records["return:r-2:0"].status == ProfitStatus.RPU
        assert records["return:r-1:0"].source_type == SourceType.RETURN

    def test_return_uses_catalog_cost(self, normalizer, sample_returns):
        record = _by_id(normalizer.normalize(returns=sample_returns))["return:r-1:0"]
        assert record.cost_price == Decimal("50")
        assert record.sold_price == Decimal("30")

    def test_unknown_category_falls_back_and_warns(self, normalizer):
        doc = {"_id": "r", "category": "LOST", "returnDate": "2024-03-01",
               "items": [{"product": "p-mug", "unitPrice": 10}]}
        result = normalizer.normalize(returns=[doc])
        assert result.records[0].status == ProfitStatus.DELIVERED
        assert WarningCode.UNRECOGNIZED_STATUS in result.records[0].warnings
        assert [w.code for w in result.warnings] == [WarningCode.UNRECOGNIZED_STATUS]

    def test_configurable_fallback(self, sample_products):
        normalizer = RecordNormalizer(CostBook(products=sample_products), unknown_status=ProfitStatus.RTO)
        doc = {"_id": "r", "returnDate": "2024-03-01", "items": [{"product": "p-mug", "unitPrice": 10}]}
        assert normalizer.normalize(returns=[doc]).records[0].status == ProfitStatus.RTO

    def test_created_at_is_date_fallback(self, normalizer):
        doc = {"_id": "r", "category": "RTO", "createdAt": "2024-05-01T10:00:00Z",
               "items": [{"product": "p-mug", "unitPrice": 10}]}
        assert normalizer.normalize(returns=[doc]).records[0].date == datetime(2024, 5, 1, 10, 0)


class TestUploadedRows:
    def test_sheet_rows(self, normalizer, sample_sheet_rows):
        sheet = {"_id": "sheet-1", "uploadedData": sample_sheet_rows}
        records = _by_id(normalizer.normalize(sheets=[sheet]))
        first = records["upload:sheet-1:0"]
        assert first.status == ProfitStatus.DELIVERED
        assert first.cost_price == Decimal("300")
        assert first.sold_price == Decimal("499")
        assert first.reported_profit == Decimal("199")
        assert first.product_label == "MUG-BLUE"
        second = records["upload:sheet-1:1"]
        assert second.status == ProfitStatus.RPU
        assert second.quantity == 2
        assert second.date == datetime(2024, 4, 18)

    def test_loose_rows_use_rows_document(self, normalizer, sample_sheet_rows):
        ids = [r.source_id for r in normalizer.normalize(uploaded_rows=sample_sheet_rows).records]
        assert ids == ["upload:rows:0", "upload:rows:1"]

    def test_row_id_is_item_key(self, normalizer):
        sheet = {"_id": "sh", "uploadedData": [{"_id": "row-9", "Order Date": "2024-03-01",
                                                 "Status": "Delivered", "Payment": 10, "Purchase Price": 5}]}
        assert normalizer.normalize(sheets=[sheet]).records[0].source_id == "upload:sh:row-9"

    def test_sold_price_derived_from_profit_when_payment_blank(self, normalizer):
        row = {"Order Date": "2024-03-01", "Status": "Delivered", "Quantity": 2,
               "Purchase Price": "100", "Profit": "40"}
        record = normalizer.normalize(uploaded_rows=[row]).records[0]
        assert record.sold_price == Decimal("120")

    def test_blank_status_falls_back_and_warns(self, normalizer):
        row = {"Order Date": "2024-03-01", "Payment": 10, "Purchase Price": 5}
        result = normalizer.normalize(uploaded_rows=[row])
        assert result.records[0].status == ProfitStatus.DELIVERED
        assert result.warnings[0].code == WarningCode.UNRECOGNIZED_STATUS

    def test_payment_date_fallback(self, normalizer):
        row = {"Payment Date": "2024-06-02", "Status": "RTO", "Payment": 10, "Purchase Price": 5}
        assert normalizer.normalize(uploaded_rows=[row]).records[0].date == datetime(2024, 6, 2)

    def test_label_falls_back_to_order_id(self, normalizer):
        row = {"Order id": "OD-7", "Order Date": "2024-03-01", "Status": "Delivered"}
        assert normalizer.normalize(uploaded_rows=[row]).records[0].product_label == "OD-7"


class TestDataQuality:
    def test_invalid_date_is_kept_and_flagged(self, normalizer):
        sale = {"_id": "s", "saleDate": "someday", "items": [{"product": "p-mug", "unitPrice": 60}]}
        result = normalizer.normalize(sales=[sale])
        assert result.records[0].date is None
        assert WarningCode.INVALID_DATE in result.records[0].warnings

    def test_missing_product_costs_zero(self, normalizer):
        sale = {"_id": "s", "saleDate": "2024-03-01", "items": [{"product": "p-gone", "unitPrice": 60}]}
        result = normalizer.normalize(sales=[sale])
        assert result.records[0].cost_price == Decimal("0")
        assert result.records[0].product_label == "Unknown"
        assert result.warnings[0].code == WarningCode.MISSING_REFERENCE
        assert result.warnings[0].details["missing"] == ["product:p-gone"]

    def test_invalid_quantity_drops_record(self, normalizer):
        sale = {"_id": "s", "saleDate": "2024-03-01",
                "items": [{"product": "p-mug", "unitPrice": 60, "quantity": 0},
                          {"product": "p-mug", "unitPrice": 60, "quantity": 1}]}
        result = normalizer.normalize(sales=[sale])
        assert [r.source_id for r in result.records] == ["sale:s:1"]
        assert result.warnings[0].code == WarningCode.INVALID_QUANTITY

    def test_idempotent(self, normalizer, sample_sales, sample_returns, sample_sheet_rows):
        first = normalizer.normalize(sample_sales, sample_returns, sample_sheet_rows)
        second = normalizer.normalize(sample_sales, sample_returns, sample_sheet_rows)
        assert first.records == second.records

    @pytest.mark.parametrize("bad", [{"_id": "s"}, "sales", 42])
    def test_non_list_input_raises(self, normalizer, bad):
        with pytest.raises(InputShapeError):
            normalizer.normalize(sales=bad)

    def test_non_document_entry_raises(self, normalizer):
        with pytest.raises(InputShapeError):
            normalizer.normalize(returns=[{"_id": "r"}, "oops"])

    def test_none_collections_are_empty(self, normalizer):
        assert normalizer.normalize(None, None, None, None).records == []
