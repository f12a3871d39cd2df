"""Data models for the profit/loss reconciler."""

from profitloss.models.enums import ItemType, ProfitStatus, SourceType, WarningCode
from profitloss.models.records import ProfitRecord, ReconciliationWarning, SourceRef
from profitloss.models.reports import (
    DateRange,
    MonthlyAggregate,
    ProfitReport,
    SheetProfitSummary,
    SheetsOverview,
    SheetStats,
    Summary,
)

__all__ = [
    "DateRange",
    "ItemType",
    "MonthlyAggregate",
    "ProfitRecord",
    "ProfitReport",
    "ProfitStatus",
    "ReconciliationWarning",
    "SheetProfitSummary",
    "SheetsOverview",
    "SheetStats",
    "SourceRef",
    "SourceType",
    "Summary",
    "WarningCode",
]
