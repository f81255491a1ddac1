"""
Unit tests for the totals consistency checks.
"""

from field_extraction.extraction_result import FieldSet
from field_extraction.postprocessor.validators import (
    TotalsValidator,
    check_totals,
    evaluate_totals,
)


class TestCheckTotals:
    """ht / tva_pct / tva_amount / ttc relations."""

    def test_consistent_rate(self):
        assert check_totals(1000, 20, None, 1200) is True

    def test_inconsistent_rate(self):
        assert check_totals(1000, 20, None, 1300) is False

    def test_within_two_percent(self):
        assert check_totals(1000, 20, None, 1220) is True
        assert check_totals(1000, 20, None, 1230) is False

    def test_vat_amount_relation(self):
        assert check_totals(1000, None, 200, 1200) is True
        assert check_totals(1000, None, 100, 1200) is False

    def test_rate_predicts_amount(self):
        assert check_totals(1000, 20, 200, None) is True

    def test_insufficient_fields(self):
        assert check_totals(1000, None, None, 1200) is False
        assert check_totals(None, None, None, None) is False


class TestEvaluateTotals:
    """Reported decision details."""

    def test_method_and_values(self):
        result = evaluate_totals(1000, 20, None, 1200)
        assert result.method == "ht_pct_ttc"
        assert result.expected == 1200.0
        assert result.actual == 1200

    def test_no_method_without_inputs(self):
        result = evaluate_totals(None, 20, None, 1200)
        assert result.totals_ok is False
        assert result.method is None


class TestTotalsValidator:
    """FieldSet-level validation."""

    def test_net_to_pay_replaces_missing_ttc(self):
        validator = TotalsValidator(tolerance=0.02)
        fs = FieldSet(ht=1000.0, tva_pct=20.0, net_to_pay=1200.0)
        assert validator.validate(fs).totals_ok is True

    def test_ttc_preferred_over_net_to_pay(self):
        validator = TotalsValidator(tolerance=0.02)
        fs = FieldSet(ht=1000.0, tva_pct=20.0, ttc=1500.0, net_to_pay=1200.0)
        assert validator.validate(fs).totals_ok is False
