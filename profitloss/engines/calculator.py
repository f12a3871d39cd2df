"""Profit calculator: per-unit and line margins for canonical records."""

import logging
from collections.abc import Iterable
from decimal import Decimal

from profitloss.models.enums import SourceType, WarningCode
from profitloss.models.records import ProfitRecord, ReconciliationWarning

logger = logging.getLogger(__name__)

ZERO = Decimal("0")


class ProfitCalculator:
    """Annotates ProfitRecords with profit figures.

    The margin is always ``sold - cost``; status never flips the sign. RTO and
    RPU records are only kept apart downstream, in aggregation. No rounding
    happens here so sums stay exact.
    """

    def __init__(self, mismatch_tolerance: Decimal = Decimal("0.01")):
        self.mismatch_tolerance = mismatch_tolerance
        self.warnings: list[ReconciliationWarning] = []

    def compute(self, record: ProfitRecord) -> ProfitRecord:
        """Return a copy of ``record`` with profit_per_unit and profit_total set."""
        cost, sold = record.cost_price, record.sold_price
        if cost is None or sold is None or not cost.is_finite() or not sold.is_finite():
            bad = "cost" if cost is None or not cost.is_finite() else "sold"
            self._warn(
                WarningCode.INVALID_NUMERIC,
                record.source_id,
                f"Non-numeric {bad} price; profit set to 0",
            )
            return record.model_copy(
                update={"profit_per_unit": ZERO, "profit_total": ZERO}
            ).with_warning(WarningCode.INVALID_NUMERIC)

        per_unit = sold - cost
        total = per_unit * record.quantity
        computed = record.model_copy(update={"profit_per_unit": per_unit, "profit_total": total})

        if (
            record.source_type == SourceType.UPLOADED_ROW
            and record.reported_profit is not None
            and abs(record.reported_profit - total) > self.mismatch_tolerance
        ):
            self._warn(
                WarningCode.PROFIT_MISMATCH,
                record.source_id,
                f"Sheet profit {record.reported_profit} differs from computed {total}",
            )
            computed = computed.with_warning(WarningCode.PROFIT_MISMATCH)
        return computed

    def compute_all(self, records: Iterable[ProfitRecord]) -> list[ProfitRecord]:
        self.warnings = []
        return [self.compute(record) for record in records]

    def _warn(self, code: WarningCode, source_id: str, message: str) -> None:
        logger.warning("%s [%s]: %s", code.value, source_id, message)
        self.warnings.append(ReconciliationWarning(code=code, source_id=source_id, message=message))
