"""Tests for ProfitCalculator."""

from datetime import datetime
from decimal import Decimal

from profitloss.engines.calculator import ProfitCalculator
from profitloss.models.enums import ProfitStatus, SourceType, WarningCode
from profitloss.models.records import ProfitRecord


def _record(cost, sold, quantity=1, status=ProfitStatus.DELIVERED, **kwargs) -> ProfitRecord:
    return ProfitRecord(
        source_type=kwargs.pop("source_type", SourceType.SALE),
        source_id=kwargs.pop("source_id", "sale:s:0"),
        date=datetime(2024, 3, 1),
        quantity=quantity,
        cost_price=None if cost is None else Decimal(cost),
        sold_price=None if sold is None else Decimal(sold),
        status=status,
        **kwargs,
    )


class TestCompute:
    def test_margin_times_quantity(self):
        result = ProfitCalculator().compute(_record("50", "80", quantity=2))
        assert result.profit_per_unit == Decimal("30")
        assert result.profit_total == Decimal("60")

    def test_loss_is_negative(self):
        result = ProfitCalculator().compute(_record("50", "30"))
        assert result.profit_total == Decimal("-20")

    def test_status_never_flips_sign(self):
        calc = ProfitCalculator()
        for status in ProfitStatus:
            assert calc.compute(_record("50", "30", status=status)).profit_total == Decimal("-20")

    def test_no_rounding(self):
        result = ProfitCalculator().compute(_record("10.005", "20.0149", quantity=3))
        assert result.profit_total == Decimal("30.0297")

    def test_input_record_unchanged(self):
        record = _record("50", "80")
        ProfitCalculator().compute(record)
        assert record.profit_total == Decimal("0")


class TestGracefulDegradation:
    def test_missing_cost_gives_zero_profit(self):
        calc = ProfitCalculator()
        result = calc.compute(_record(None, "80", quantity=2))
        assert result.profit_per_unit == Decimal("0")
        assert result.profit_total == Decimal("0")
        assert WarningCode.INVALID_NUMERIC in result.warnings
        assert calc.warnings[0].code == WarningCode.INVALID_NUMERIC
        assert "cost" in calc.warnings[0].message

    def test_missing_sold_price(self):
        calc = ProfitCalculator()
        calc.compute(_record("50", None))
        assert "sold" in calc.warnings[0].message


class TestProfitMismatch:
    def test_sheet_profit_disagreeing_is_flagged(self):
        calc = ProfitCalculator()
        record = _record("100", "150", source_type=SourceType.UPLOADED_ROW,
                         source_id="upload:rows:0", reported_profit=Decimal("45"))
        result = calc.compute(record)
        assert result.profit_total == Decimal("50")
        assert WarningCode.PROFIT_MISMATCH in result.warnings

    def test_within_tolerance_is_fine(self):
        calc = ProfitCalculator()
        record = _record("100", "150", source_type=SourceType.UPLOADED_ROW,
                         source_id="upload:rows:0", reported_profit=Decimal("50.01"))
        assert calc.compute(record).warnings == ()
        assert calc.warnings == []


class TestComputeAll:
    def test_resets_warnings(self):
        calc = ProfitCalculator()
        calc.compute_all([_record(None, "1")])
        calc.compute_all([_record("1", "2")])
        assert calc.warnings == []
