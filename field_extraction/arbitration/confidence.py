"""
Confidence Scorer Module.

    score = clamp(base + sum(bonuses), 0, 1)

The base is a low prior; each signal adds its bonus independently:
    - totals_ok: the repaired totals are consistent
    - identifier: a SIRET or SIREN was found
    - date: a document date or tender deadline was found
    - currency: a currency marker appears in the source text
    - amount: at least one amount was found
    - supplier: a supplier name was found

Bonuses are read from configuration; negative values are treated as 0
so that adding a signal never lowers the score.

Author: ML Engineering Team
"""

from typing import Dict, Optional

from config import get_config
from field_extraction.candidates.models import FieldName
from field_extraction.extraction_result import FieldSet
from field_extraction.postprocessor.normalizers import CURRENCY_PATTERN
from field_extraction.utils.logger import get_logger

# Initialize module logger
logger = get_logger(__name__)

DEFAULT_BONUSES = {
    'totals_ok': 0.25,
    'identifier': 0.10,
    'date': 0.10,
    'currency': 0.10,
    'amount': 0.10,
    'supplier': 0.05,
}

IDENTIFIER_FIELDS = (FieldName.SIRET, FieldName.SIREN)
DATE_FIELDS = (FieldName.DOCUMENT_DATE, FieldName.TENDER_DEADLINE)
AMOUNT_FIELDS = (
    FieldName.HT,
    FieldName.TTC,
    FieldName.TVA_AMOUNT,
    FieldName.NET_TO_PAY,
    FieldName.TENDER_BUDGET,
)


class ConfidenceScorer:
    """
    Additive, bounded confidence.

    Attributes:
        base: Prior without any signal.
        bonuses: Bonus per signal name.

    Example:
        >>> scorer = ConfidenceScorer()
        >>> scorer.score(FieldSet(ht=1000.0, ttc=1200.0, tva_pct=20.0), True, "1 200,00 €")
        0.75
    """

    def __init__(self, base: Optional[float] = None, bonuses: Optional[Dict[str, float]] = None) -> None:
        self.base = base if base is not None else get_config("confidence.base", 0.3)
        configured = bonuses if bonuses is not None else get_config("confidence.bonuses", {})
        self.bonuses = {
            name: max(0.0, float(value))
            for name, value in dict(DEFAULT_BONUSES, **(configured or {})).items()
        }

    def signals(self, field_set: FieldSet, totals_ok: bool, text: str = "") -> Dict[str, bool]:
        """Which positive signals are present."""
        return {
            'totals_ok': bool(totals_ok),
            'identifier': any(field_set.has(f) for f in IDENTIFIER_FIELDS),
            'date': any(field_set.has(f) for f in DATE_FIELDS),
            'currency': field_set.has(FieldName.CURRENCY) or bool(CURRENCY_PATTERN.search(text or "")),
            'amount': any(field_set.has(f) for f in AMOUNT_FIELDS),
            'supplier': field_set.has(FieldName.SUPPLIER),
        }

    def score(self, field_set: FieldSet, totals_ok: bool, text: str = "") -> float:
        """
        Compute the confidence of a repaired field set.

        Args:
            field_set: Final field set.
            totals_ok: Consistency of the repaired totals.
            text: Acquired raw text, searched for a currency marker.

        Returns:
            Confidence in [0, 1], rounded to 4 decimals.
        """
        present = self.signals(field_set, totals_ok, text)
        total = self.base + sum(self.bonuses.get(name, 0.0) for name, on in present.items() if on)
        confidence = round(min(1.0, max(0.0, total)), 4)
        logger.debug(
            f"Confidence {confidence} from signals {[name for name, on in present.items() if on]}"
        )
        return confidence
