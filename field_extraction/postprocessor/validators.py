"""
Data Validators Module.

Arithmetic consistency between the pre-tax amount, the VAT rate, the VAT
amount and the tax-inclusive total.

Author: ML Engineering Team
"""

from dataclasses import dataclass
from typing import Any, Dict, Optional

from config import get_config
from field_extraction.utils.logger import get_logger

# Initialize module logger
logger = get_logger(__name__)

DEFAULT_TOLERANCE = 0.02


@dataclass(frozen=True)
class ConsistencyResult:
    """
    Outcome of a totals check and the values it was decided on.

    Attributes:
        totals_ok: Whether the predicted value matched the extracted one.
        ht, tva_pct, tva_amount, ttc: Inputs of the check.
        method: Which relation was checked, None if too few inputs.
        expected: Predicted value.
        actual: Extracted value it was compared to.
    """
    totals_ok: bool
    ht: Optional[float] = None
    tva_pct: Optional[float] = None
    tva_amount: Optional[float] = None
    ttc: Optional[float] = None
    method: Optional[str] = None
    expected: Optional[float] = None
    actual: Optional[float] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            'totals_ok': self.totals_ok,
            'method': self.method,
            'expected': self.expected,
            'actual': self.actual,
        }


def _within(expected: float, actual: float, tolerance: float) -> bool:
    return abs(actual - expected) <= tolerance * max(abs(expected), 1.0)


def evaluate_totals(
    ht: Optional[float],
    tva_pct: Optional[float],
    tva_amount: Optional[float],
    ttc: Optional[float],
    tolerance: float = DEFAULT_TOLERANCE
) -> ConsistencyResult:
    """
    Check totals and report how the decision was made.

    Relations tried in order:
        1. ht and tva_pct predict ttc
        2. ht and tva_amount predict ttc
        3. ht and tva_pct predict tva_amount

    Args:
        ht: Pre-tax amount.
        tva_pct: VAT rate in percent.
        tva_amount: VAT amount.
        ttc: Tax-inclusive total.
        tolerance: Relative tolerance.

    Returns:
        ConsistencyResult; totals_ok is False when no relation applies.
    """
    inputs = dict(ht=ht, tva_pct=tva_pct, tva_amount=tva_amount, ttc=ttc)

    if ht is not None and tva_pct is not None and ttc is not None:
        method, expected, actual = "ht_pct_ttc", ht * (1 + tva_pct / 100), ttc
    elif ht is not None and tva_amount is not None and ttc is not None:
        method, expected, actual = "ht_amount_ttc", ht + tva_amount, ttc
    elif ht is not None and tva_pct is not None and tva_amount is not None:
        method, expected, actual = "ht_pct_amount", ht * tva_pct / 100, tva_amount
    else:
        return ConsistencyResult(totals_ok=False, **inputs)

    ok = _within(expected, actual, tolerance)
    if not ok:
        logger.debug(f"Totals mismatch ({method}): expected {expected:.2f}, got {actual:.2f}")

    return ConsistencyResult(
        totals_ok=ok,
        method=method,
        expected=round(expected, 2),
        actual=actual,
        **inputs
    )


def check_totals(
    ht: Optional[float],
    tva_pct: Optional[float],
    tva_amount: Optional[float],
    ttc: Optional[float],
    tolerance: float = DEFAULT_TOLERANCE
) -> bool:
    """
    Whether the available totals agree within the relative tolerance.

    Example:
        >>> check_totals(1000, 20, None, 1200)
        True
        >>> check_totals(1000, 20, None, 1300)
        False
    """
    return evaluate_totals(ht, tva_pct, tva_amount, ttc, tolerance).totals_ok


class TotalsValidator:
    """
    Configured totals checker used by the repair pass.

    Example:
        >>> validator = TotalsValidator()
        >>> validator.validate(field_set).totals_ok
        True
    """

    def __init__(self, tolerance: Optional[float] = None) -> None:
        self.tolerance = tolerance if tolerance is not None else get_config(
            "repair.tolerance", DEFAULT_TOLERANCE
        )

    def validate(self, field_set) -> ConsistencyResult:
        """Check a FieldSet, using net_to_pay when ttc is missing."""
        ttc = field_set.ttc if field_set.ttc is not None else field_set.net_to_pay
        return evaluate_totals(
            field_set.ht,
            field_set.tva_pct,
            field_set.tva_amount,
            ttc,
            self.tolerance
        )
