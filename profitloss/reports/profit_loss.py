"""Profit/loss statement generator."""

from pathlib import Path

from jinja2 import Environment, FileSystemLoader

from profitloss.models.reports import ProfitReport, money

TEMPLATE_DIR = Path(__file__).parent / "templates"


class ProfitLossReportGenerator:
    """Generates a plain-text profit/loss statement for a date range."""

    def __init__(self) -> None:
        self.env = Environment(loader=FileSystemLoader(str(TEMPLATE_DIR)))
        self.env.filters["money"] = _format_money

    def render(self, report: ProfitReport, show_records: bool = True) -> str:
        """Render profit/loss statement."""
        template = self.env.get_template("profit_loss.txt")
        return template.render(
            report=report,
            start=_format_bound(report.date_range.start),
            end=_format_bound(report.date_range.end),
            show_records=show_records,
        )


def _format_money(value) -> str:
    if value is None:
        return "-"
    return f"{money(value):,.2f}"


def _format_bound(value) -> str:
    if value is None:
        return "open"
    return value.isoformat()
