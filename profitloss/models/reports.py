"""Report output models."""

from datetime import date, datetime, time, timezone
from decimal import ROUND_HALF_UP, Decimal

from pydantic import BaseModel, Field, model_validator

from profitloss.exceptions import InvalidDateRangeError
from profitloss.models.records import ProfitRecord, ReconciliationWarning

CENTS = Decimal("0.01")


def money(value: Decimal | None) -> Decimal | None:
    """Round a currency amount for presentation."""
    if value is None:
        return None
    return value.quantize(CENTS, rounding=ROUND_HALF_UP)


class DateRange(BaseModel):
    """Inclusive reporting window. Either end may be open.

    A plain date as ``end`` covers that whole day, up to 23:59:59.999999.
    """

    start: datetime | date | None = None
    end: datetime | date | None = None

    @model_validator(mode="after")
    def _check_order(self) -> "DateRange":
        if self.start is not None and self.end is not None:
            if self.start_bound > self.end_bound:
                raise InvalidDateRangeError(self.start, self.end)
        return self

    @property
    def start_bound(self) -> datetime | None:
        if self.start is None:
            return None
        if isinstance(self.start, datetime):
            if self.start.tzinfo is not None:
                return self.start.astimezone(timezone.utc).replace(tzinfo=None)
            return self.start
        return datetime.combine(self.start, time.min)

    @property
    def end_bound(self) -> datetime | None:
        if self.end is None:
            return None
        day = self.end.date() if isinstance(self.end, datetime) else self.end
        return datetime.combine(day, time.max)

    def contains(self, moment: datetime | None) -> bool:
        if moment is None:
            return False
        start, end = self.start_bound, self.end_bound
        if start is not None and moment < start:
            return False
        if end is not None and moment > end:
            return False
        return True


class MonthlyAggregate(BaseModel):
    month: str  # "YYYY-MM"
    label: str  # "March 2024"
    total_profit: Decimal = Decimal("0")
    delivered_profit: Decimal = Decimal("0")
    rpu_profit: Decimal = Decimal("0")


class Summary(BaseModel):
    total_profit: Decimal = Decimal("0")
    delivered_profit: Decimal = Decimal("0")
    rpu_profit: Decimal = Decimal("0")
    rto_profit: Decimal = Decimal("0")
    total_records: int = 0


class ProfitReport(BaseModel):
    """Result of one reconciliation request."""

    date_range: DateRange = Field(default_factory=DateRange)
    profit_data: list[ProfitRecord] = Field(default_factory=list)
    monthly_chart_data: list[MonthlyAggregate] = Field(default_factory=list)
    summary: Summary = Field(default_factory=Summary)
    all_time_summary: Summary | None = None
    warnings: list[ReconciliationWarning] = Field(default_factory=list)

    def to_response(self) -> dict:
        """Build the camelCase response body, rounding money to cents."""
        body = {
            "profitData": [_record_body(r) for r in self.profit_data],
            "monthlyChartData": [
                {
                    "month": m.month,
                    "label": m.label,
                    "totalProfit": money(m.total_profit),
                    "deliveredProfit": money(m.delivered_profit),
                    "rpuProfit": money(m.rpu_profit),
                }
                for m in self.monthly_chart_data
            ],
            "summary": _summary_body(self.summary),
            "warnings": [
                {"code": w.code.value, "sourceId": w.source_id, "message": w.message}
                for w in self.warnings
            ],
        }
        if self.all_time_summary is not None:
            body["allTimeSummary"] = _summary_body(self.all_time_summary)
        return body


def _summary_body(summary: Summary) -> dict:
    return {
        "totalProfit": money(summary.total_profit),
        "deliveredProfit": money(summary.delivered_profit),
        "rpuProfit": money(summary.rpu_profit),
        "rtoProfit": money(summary.rto_profit),
        "totalRecords": summary.total_records,
    }


def _record_body(record: ProfitRecord) -> dict:
    return {
        "sourceType": record.source_type.value,
        "sourceId": record.source_id,
        "date": record.date.isoformat() if record.date else None,
        "status": record.status.value,
        "itemType": record.item_type.value,
        "productLabel": record.product_label,
        "quantity": record.quantity,
        "costPrice": money(record.cost_price),
        "soldPrice": money(record.sold_price),
        "profitPerUnit": money(record.profit_per_unit),
        "profitTotal": money(record.profit_total),
        "warnings": [code.value for code in record.warnings],
    }


class SheetProfitSummary(BaseModel):
    """Profit totals taken from an uploaded sheet's own "Profit" column."""

    total_profit: Decimal = Decimal("0")
    delivered_profit: Decimal = Decimal("0")
    rpu_profit: Decimal = Decimal("0")
    net_profit: Decimal = Decimal("0")


class SheetStats(BaseModel):
    total_records: int = 0
    success_records: int = 0
    error_records: int = 0


class SheetsOverview(BaseModel):
    """Totals across every uploaded sheet."""

    total_uploads: int = 0
    total_records: int = 0
    success_records: int = 0
    error_records: int = 0
    profit: SheetProfitSummary = Field(default_factory=SheetProfitSummary)
