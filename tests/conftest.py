"""Shared test fixtures for the profit/loss reconciler."""

from datetime import datetime
from decimal import Decimal

import pytest

from profitloss.ingestion.base import RawBatch
from profitloss.models.enums import ProfitStatus, SourceType
from profitloss.models.records import ProfitRecord


@pytest.fixture
def make_record():
    """Factory for computed ProfitRecords with sensible defaults."""
    counter = iter(range(10_000))

    def _make(
        profit: str | Decimal = "10",
        status: ProfitStatus = ProfitStatus.DELIVERED,
        date: datetime | None = datetime(2024, 3, 15, 12, 0),
        quantity: int = 1,
        source_type: SourceType = SourceType.SALE,
    ) -> ProfitRecord:
        profit = Decimal(str(profit))
        return ProfitRecord(
            source_type=source_type,
            source_id=f"sale:doc{next(counter)}:0",
            date=date,
            quantity=quantity,
            cost_price=Decimal("0"),
            sold_price=profit / quantity,
            status=status,
            profit_per_unit=profit / quantity,
            profit_total=profit,
        )

    return _make


@pytest.fixture
def sample_products() -> list[dict]:
    return [
        {"_id": "p-mug", "name": "Ceramic Mug", "costPrice": "50"},
        {"_id": "p-tee", "name": "Cotton Tee"},
        {"_id": "p-cap", "name": "Cap", "purchasePrice": 30},
    ]


@pytest.fixture
def sample_purchases() -> list[dict]:
    return [
        {"_id": "pur-1", "items": [{"product": "p-tee", "unitCost": "120", "quantity": 10}]},
        {"_id": "pur-2", "items": [{"product": "p-tee", "unitCost": "999", "quantity": 1}]},
    ]


@pytest.fixture
def sample_combos() -> list[dict]:
    return [
        {
            "_id": "c-gift",
            "name": "Gift Box",
            "products": [
                {"product": "p-mug", "quantity": 2},
                {"product": "p-cap", "quantity": 1},
            ],
        },
    ]


@pytest.fixture
def sample_sales() -> list[dict]:
    return [
        {
            "_id": "s-1",
            "saleDate": "2024-03-10T09:30:00Z",
            "items": [
                {"_id": "si-1", "product": "p-mug", "quantity": 2, "unitPrice": "80"},
                {"_id": "si-2", "type": "combo", "combo": "c-gift", "quantity": 1, "unitPrice": 200},
            ],
        },
        {
            "_id": "s-2",
            "saleDate": "2024-04-02",
            "items": [{"_id": "si-3", "product": "p-tee", "quantity": 1, "unitPrice": "150"}],
        },
    ]


@pytest.fixture
def sample_returns() -> list[dict]:
    return [
        {
            "_id": "r-1",
            "category": "RTO",
            "returnDate": "2024-03-20",
            "items": [{"product": "p-mug", "quantity": 1, "unitPrice": "30"}],
        },
        {
            "_id": "r-2",
            "category": "RPU",
            "returnDate": "2024-04-05",
            "items": [{"product": "p-cap", "quantity": 1, "unitPrice": "45"}],
        },
    ]


@pytest.fixture
def sample_sheet_rows() -> list[dict]:
    return [
        {
            "Order Date": "2024-03-12",
            "Order id": "OD-1001",
            "SKU": "MUG-BLUE",
            "Quantity": "1",
            "Status": "Delivered",
            "Payment": "499",
            "Purchase Price": "300",
            "Profit": "199",
        },
        {
            "orderDate": "2024-04-18",
            "orderId": "OD-1002",
            "sku": "TEE-M",
            "quantity": "2",
            "status": "RPU",
            "payment": "250",
            "purchasePrice": "200",
            "profit": "100",
        },
    ]


@pytest.fixture
def sample_batch(
    sample_sales, sample_returns, sample_sheet_rows, sample_products, sample_purchases, sample_combos
) -> RawBatch:
    return RawBatch(
        sales=sample_sales,
        returns=sample_returns,
        sheets=[{"_id": "sheet-1", "fileName": "march.csv", "uploadedData": sample_sheet_rows}],
        products=sample_products,
        purchases=sample_purchases,
        combos=sample_combos,
    )
