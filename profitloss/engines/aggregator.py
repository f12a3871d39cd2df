"""Aggregation of profit records into list, monthly and summary views."""

import logging
from collections.abc import Iterable
from datetime import datetime
from decimal import Decimal

from profitloss.models.enums import ProfitStatus
from profitloss.models.records import ProfitRecord
from profitloss.models.reports import DateRange, MonthlyAggregate, ProfitReport, Summary

logger = logging.getLogger(__name__)


class Aggregator:
    """Folds computed ProfitRecords into the three report views."""

    def aggregate(
        self,
        records: Iterable[ProfitRecord],
        date_range: DateRange | None = None,
    ) -> ProfitReport:
        """Filter by date range, then build the list, monthly and summary views.

        Records without a valid date never pass the filter, even when the
        range is fully open.
        """
        date_range = date_range or DateRange()
        records = list(records)
        filtered = [r for r in records if date_range.contains(r.date)]
        if len(filtered) != len(records):
            logger.info("Excluded %d record(s) outside %s..%s or undated",
                        len(records) - len(filtered), date_range.start, date_range.end)

        # Stable sort: equal dates keep input order.
        profit_data = sorted(filtered, key=lambda r: r.date, reverse=True)

        return ProfitReport(
            date_range=date_range,
            profit_data=profit_data,
            monthly_chart_data=self.monthly(filtered),
            summary=self.summarize(filtered),
        )

    def summarize(self, records: Iterable[ProfitRecord]) -> Summary:
        """Grand totals over ``records`` as given, dated or not."""
        summary = Summary()
        for record in records:
            summary.total_profit += record.profit_total
            summary.total_records += 1
            if record.status == ProfitStatus.DELIVERED:
                summary.delivered_profit += record.profit_total
            elif record.status == ProfitStatus.RPU:
                summary.rpu_profit += record.profit_total
            elif record.status == ProfitStatus.RTO:
                summary.rto_profit += record.profit_total
        return summary

    def monthly(self, records: Iterable[ProfitRecord]) -> list[MonthlyAggregate]:
        """Per-month totals in chronological order.

        RTO records count toward a month's total_profit but have no field of
        their own in the monthly series.
        """
        buckets: dict[tuple[int, int], MonthlyAggregate] = {}
        for record in records:
            if record.date is None:
                continue
            key = (record.date.year, record.date.month)
            bucket = buckets.get(key)
            if bucket is None:
                bucket = buckets[key] = _empty_month(record.date)
            bucket.total_profit += record.profit_total
            if record.status == ProfitStatus.DELIVERED:
                bucket.delivered_profit += record.profit_total
            elif record.status == ProfitStatus.RPU:
                bucket.rpu_profit += record.profit_total
        return [buckets[key] for key in sorted(buckets)]


def _empty_month(moment: datetime) -> MonthlyAggregate:
    return MonthlyAggregate(
        month=f"{moment.year:04d}-{moment.month:02d}",
        label=moment.strftime("%B %Y"),
        total_profit=Decimal("0"),
        delivered_profit=Decimal("0"),
        rpu_profit=Decimal("0"),
    )
