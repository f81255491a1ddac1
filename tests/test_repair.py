"""
Unit tests for the arithmetic repair pass.
"""

import pytest

from field_extraction.extraction_result import FieldSet
from field_extraction.postprocessor import ArithmeticRepairer


@pytest.fixture
def repairer():
    return ArithmeticRepairer(tolerance=0.02, min_ratio=1.0, max_ratio=1.5)


class TestDerivation:
    """Filling one missing member of ht / tva_pct / ttc."""

    def test_rate_and_amount_from_ht_and_ttc(self, repairer):
        outcome = repairer.repair(FieldSet(ht=1000.0, ttc=1200.0))
        assert outcome.field_set.tva_pct == 20.0
        assert outcome.field_set.tva_amount == 200.0
        assert outcome.totals_ok is True
        assert 'pct_from_ht_ttc' in outcome.actions

    def test_ttc_from_ht_and_rate(self, repairer):
        outcome = repairer.repair(FieldSet(ht=500.0, tva_pct=5.5))
        assert outcome.field_set.ttc == 527.5
        assert outcome.field_set.tva_amount == 27.5
        assert outcome.actions[0] == 'ttc_from_ht_pct'

    def test_ht_from_ttc_and_rate(self, repairer):
        outcome = repairer.repair(FieldSet(ttc=120.0, tva_pct=20.0))
        assert outcome.field_set.ht == 100.0
        assert outcome.field_set.tva_amount == 20.0
        assert outcome.field_set.ttc == 120.0

    def test_nothing_to_derive(self, repairer):
        outcome = repairer.repair(FieldSet(ht=100.0))
        assert outcome.field_set == FieldSet(ht=100.0)
        assert outcome.actions == ()
        assert outcome.totals_ok is False


class TestRatioGuard:
    """Implausible ht/ttc pairs."""

    def test_swapped_totals_are_swapped_back(self, repairer):
        outcome = repairer.repair(FieldSet(ht=1200.0, ttc=1000.0))
        fs = outcome.field_set
        assert (fs.ht, fs.ttc) == (1000.0, 1200.0)
        assert fs.tva_pct == 20.0
        assert fs.tva_amount == 200.0
        assert 'swap_ht_ttc' in outcome.actions
        assert outcome.totals_ok is True

    def test_too_large_ratio_discards_ttc(self, repairer):
        outcome = repairer.repair(FieldSet(ht=100.0, ttc=300.0))
        fs = outcome.field_set
        assert fs.ht == 100.0
        assert fs.ttc is None
        assert fs.tva_pct is None
        assert 'discard_ttc' in outcome.actions

    def test_extracted_rate_survives_guard(self, repairer):
        """Only values derived from the rejected pair are dropped."""
        outcome = repairer.repair(FieldSet(ht=1200.0, ttc=1000.0, tva_pct=20.0))
        fs = outcome.field_set
        assert (fs.ht, fs.tva_pct, fs.ttc) == (1000.0, 20.0, 1200.0)


class TestRecompute:
    """tva_amount and ttc always follow ht and the rate."""

    def test_read_vat_amount_is_overwritten(self, repairer):
        outcome = repairer.repair(
            FieldSet(ht=1000.0, tva_pct=20.0, tva_amount=150.0, ttc=1200.0)
        )
        assert outcome.field_set.tva_amount == 200.0
        assert outcome.actions == ('recompute_tva_amount',)

    def test_inconsistent_ttc_is_recomputed(self, repairer):
        outcome = repairer.repair(FieldSet(ht=1000.0, tva_pct=20.0, ttc=1250.0))
        assert outcome.extracted_consistency.totals_ok is False
        assert outcome.field_set.ttc == 1200.0
        assert outcome.totals_ok is True

    def test_other_fields_untouched(self, repairer):
        fs = FieldSet(ht=1000.0, tva_pct=20.0, supplier="Dupont Conseil", siret="12345678900012")
        repaired = repairer.repair(fs).field_set
        assert repaired.supplier == "Dupont Conseil"
        assert repaired.siret == "12345678900012"


class TestIdempotence:
    """Repairing twice changes nothing the second time."""

    @pytest.mark.parametrize("field_set", [
        FieldSet(ht=1200.0, ttc=1000.0),
        FieldSet(ht=100.0, ttc=300.0),
        FieldSet(ttc=120.0, tva_pct=20.0),
        FieldSet(ht=1000.0, tva_pct=20.0, tva_amount=150.0, ttc=1200.0),
        FieldSet(ht=333.33, tva_pct=5.5),
        FieldSet(),
    ])
    def test_second_pass_is_a_no_op(self, repairer, field_set):
        first = repairer.repair(field_set)
        second = repairer.repair(first.field_set)
        assert second.field_set == first.field_set
        assert second.actions == ()
