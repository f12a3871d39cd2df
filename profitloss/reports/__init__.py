"""Report generation for the profit/loss reconciler."""

from profitloss.reports.profit_loss import ProfitLossReportGenerator

__all__ = ["ProfitLossReportGenerator"]
