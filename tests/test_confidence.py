"""
Unit tests for the confidence scorer.
"""

import pytest

from field_extraction.arbitration import ConfidenceScorer
from field_extraction.extraction_result import FieldSet


@pytest.fixture
def scorer():
    return ConfidenceScorer(base=0.3, bonuses={
        'totals_ok': 0.25,
        'identifier': 0.10,
        'date': 0.10,
        'currency': 0.10,
        'amount': 0.10,
        'supplier': 0.05,
    })


class TestConfidenceScorer:
    """Additive and bounded scoring."""

    def test_consistent_totals_with_currency(self, scorer):
        fs = FieldSet(ht=1000.0, tva_pct=20.0, tva_amount=200.0, ttc=1200.0)
        assert scorer.score(fs, True, "Total TTC 1 200,00 €") == 0.75

    def test_empty_field_set_gets_base(self, scorer):
        assert scorer.score(FieldSet(), False, "") == 0.3

    def test_every_signal(self, scorer):
        fs = FieldSet(
            ht=1000.0, ttc=1200.0, siret="12345678900012", document_date="2024-03-05",
            currency="EUR", supplier="Dupont Conseil"
        )
        assert scorer.score(fs, True) == 1.0

    def test_currency_from_field_or_text(self, scorer):
        assert scorer.signals(FieldSet(currency="EUR"), False)['currency'] is True
        assert scorer.signals(FieldSet(), False, "montant 12 euros")['currency'] is True
        assert scorer.signals(FieldSet(), False, "montant 12")['currency'] is False

    def test_tender_deadline_counts_as_date(self, scorer):
        assert scorer.signals(FieldSet(tender_deadline="2025-09-15"), False)['date'] is True

    @pytest.mark.parametrize("extra", [
        dict(siren="123456789"),
        dict(document_date="2024-03-05"),
        dict(supplier="Dupont Conseil"),
        dict(net_to_pay=1200.0),
    ])
    def test_adding_a_signal_never_lowers_the_score(self, scorer, extra):
        base = FieldSet(ht=1000.0)
        assert scorer.score(base.with_values(**extra), False) >= scorer.score(base, False)

    def test_upper_bound(self):
        scorer = ConfidenceScorer(base=0.9, bonuses={'totals_ok': 0.5, 'amount': 0.5})
        assert scorer.score(FieldSet(ht=1.0), True) == 1.0

    def test_lower_bound(self):
        scorer = ConfidenceScorer(base=-1.0, bonuses={})
        assert scorer.score(FieldSet(), False) == 0.0

    def test_negative_bonus_treated_as_zero(self):
        scorer = ConfidenceScorer(base=0.3, bonuses={'amount': -0.2})
        assert scorer.bonuses['amount'] == 0.0
        assert scorer.score(FieldSet(ht=1.0), False) == 0.3
