"""Reconciliation engine: the normalize, compute, aggregate pipeline.

Takes already-fetched Sale, Return and UploadedSheet documents and produces
the profit/loss report for a date range. Performs no I/O and keeps no state
between calls.
"""

import logging
from decimal import Decimal

from pydantic import BaseModel

from profitloss.engines.aggregator import Aggregator
from profitloss.engines.calculator import ProfitCalculator
from profitloss.ingestion.base import RawBatch
from profitloss.models.enums import ProfitStatus
from profitloss.models.records import ReconciliationWarning, SourceRef
from profitloss.models.reports import DateRange, ProfitReport
from profitloss.normalization.costs import CostBook
from profitloss.normalization.records import RecordNormalizer

logger = logging.getLogger(__name__)


class ReconciliationSettings(BaseModel):
    """Knobs for one engine instance."""

    # Status given to rows whose status text isn't recognised. Flagged either way.
    unknown_status: ProfitStatus = ProfitStatus.DELIVERED
    include_all_time: bool = False
    profit_tolerance: Decimal = Decimal("0.01")


class ReconciliationEngine:
    """Orchestrates normalization, profit calculation and aggregation."""

    def __init__(self, settings: ReconciliationSettings | None = None):
        self.settings = settings or ReconciliationSettings()
        self.aggregator = Aggregator()
        self.warnings: list[ReconciliationWarning] = []

    def reconcile(
        self,
        batch: RawBatch,
        date_range: DateRange | None = None,
        cost_book: CostBook | None = None,
    ) -> ProfitReport:
        """Run the full pipeline for one request.

        Steps:
        1. Normalize sales, returns and sheet rows into ProfitRecords
        2. Compute per-unit and line profit for each record
        3. Filter to the date range and build list, monthly and summary views

        Args:
            batch: Source documents fetched by the caller.
            date_range: Reporting window; open-ended when omitted.
            cost_book: Cost lookup to use instead of the batch's own catalog.

        Raises:
            InputShapeError: a batch collection isn't a list of documents.
        """
        self.warnings = []
        date_range = date_range or DateRange()

        normalizer = RecordNormalizer(
            cost_book=cost_book or batch.cost_book(),
            unknown_status=self.settings.unknown_status,
        )
        normalized = normalizer.normalize(
            sales=batch.sales,
            returns=batch.returns,
            uploaded_rows=batch.uploaded_rows,
            sheets=batch.sheets,
        )

        calculator = ProfitCalculator(mismatch_tolerance=self.settings.profit_tolerance)
        computed = calculator.compute_all(normalized.records)

        report = self.aggregator.aggregate(computed, date_range)
        if self.settings.include_all_time:
            report.all_time_summary = self.aggregator.summarize(computed)

        self.warnings = normalized.warnings + calculator.warnings
        report.warnings = list(self.warnings)

        logger.info(
            "Reconciled %d of %d record(s): total profit %s, %d warning(s)",
            report.summary.total_records,
            len(computed),
            report.summary.total_profit,
            len(self.warnings),
        )
        return report

    @staticmethod
    def locate(source_id: str) -> SourceRef:
        """Parse a record's source id so an edit or delete can reach its document."""
        return SourceRef.parse(source_id)
