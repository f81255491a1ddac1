"""
Arithmetic Repair Module.

This module provides the ArithmeticRepairer that runs once over the
arbitrated field set:
    1. Derive a missing ttc, tva_pct or ht from the two others
    2. Reject implausible ht/ttc pairs (swap or discard ttc)
    3. Recompute tva_amount and ttc whenever ht and tva_pct are known
    4. Recompute the totals consistency

A directly read VAT amount is far less reliable than one derived from
ht and the rate, so step 3 always overwrites it.

Author: ML Engineering Team
"""

from dataclasses import dataclass
from typing import List, Optional, Set, Tuple

from config import get_config
from field_extraction.extraction_result import FieldSet
from field_extraction.utils.helpers import round_amount
from field_extraction.utils.logger import get_logger
from .validators import ConsistencyResult, TotalsValidator

# Initialize module logger
logger = get_logger(__name__)


@dataclass(frozen=True)
class RepairOutcome:
    """
    Result of a repair pass.

    Attributes:
        field_set: Repaired field set.
        consistency: Totals check on the repaired values.
        extracted_consistency: Totals check on the values as arbitrated.
        actions: Repair steps that changed something, in order.
    """
    field_set: FieldSet
    consistency: ConsistencyResult
    extracted_consistency: ConsistencyResult
    actions: Tuple[str, ...] = ()

    @property
    def totals_ok(self) -> bool:
        return self.consistency.totals_ok


class ArithmeticRepairer:
    """
    Repairs the HT / VAT / TTC block of a field set.

    The pass is idempotent: repairing an already repaired field set
    returns an equal field set.

    Attributes:
        min_ratio: Lowest plausible ttc/ht ratio.
        max_ratio: Highest plausible ttc/ht ratio.
        validator: TotalsValidator used before and after repair.

    Example:
        >>> repairer = ArithmeticRepairer()
        >>> outcome = repairer.repair(FieldSet(ht=1200.0, ttc=1000.0))
        >>> outcome.field_set.ht, outcome.field_set.ttc
        (1000.0, 1200.0)
    """

    def __init__(
        self,
        tolerance: Optional[float] = None,
        min_ratio: Optional[float] = None,
        max_ratio: Optional[float] = None
    ) -> None:
        """Initialize the repairer with configuration."""
        self.min_ratio = min_ratio if min_ratio is not None else get_config("repair.min_ratio", 1.0)
        self.max_ratio = max_ratio if max_ratio is not None else get_config("repair.max_ratio", 1.5)
        self.validator = TotalsValidator(tolerance)

        logger.debug(
            f"ArithmeticRepairer initialized (ratio=[{self.min_ratio}, {self.max_ratio}], "
            f"tolerance={self.validator.tolerance})"
        )

    def repair(self, field_set: FieldSet) -> RepairOutcome:
        """
        Run the full repair pass.

        Args:
            field_set: Arbitrated field set.

        Returns:
            RepairOutcome with the repaired field set and both checks.
        """
        extracted = self.validator.validate(field_set)
        actions: List[str] = []

        repaired, derived = self._derive(field_set, actions)

        guarded = self._guard(repaired, actions)
        if guarded is not repaired:
            # Values derived from the rejected pair are no longer trustworthy
            guarded = guarded.with_values(**{name: None for name in derived})
            guarded, _ = self._derive(guarded, actions)

        final = self._recompute(guarded, actions)
        consistency = self.validator.validate(final)

        if actions:
            logger.debug(f"Repair actions: {', '.join(actions)}")

        return RepairOutcome(
            field_set=final,
            consistency=consistency,
            extracted_consistency=extracted,
            actions=tuple(actions)
        )

    def _derive(self, fs: FieldSet, actions: List[str]) -> Tuple[FieldSet, Set[str]]:
        """Fill one missing member of ht / tva_pct / ttc from the two others."""
        derived: Set[str] = set()

        if fs.ht is not None and fs.tva_pct is not None and fs.ttc is None:
            fs = fs.with_values(ttc=round_amount(fs.ht * (1 + fs.tva_pct / 100)))
            derived.add('ttc')
            actions.append('ttc_from_ht_pct')

        if fs.ht is not None and fs.ttc is not None and fs.tva_pct is None and fs.ht != 0:
            fs = fs.with_values(tva_pct=round_amount((fs.ttc / fs.ht - 1) * 100))
            derived.add('tva_pct')
            actions.append('pct_from_ht_ttc')

        if fs.ttc is not None and fs.tva_pct is not None and fs.ht is None and fs.tva_pct != -100:
            fs = fs.with_values(ht=round_amount(fs.ttc / (1 + fs.tva_pct / 100)))
            derived.add('ht')
            actions.append('ht_from_ttc_pct')

        return fs, derived

    def _guard(self, fs: FieldSet, actions: List[str]) -> FieldSet:
        """Swap or drop an implausible ht/ttc pair."""
        if fs.ht is None or fs.ttc is None or fs.ht <= 0:
            return fs

        ratio = fs.ttc / fs.ht
        if self.min_ratio <= ratio <= self.max_ratio:
            return fs

        if fs.ht >= fs.ttc:
            logger.debug(f"Implausible ttc/ht ratio {ratio:.2f}: swapping ht and ttc")
            actions.append('swap_ht_ttc')
            return fs.with_values(ht=fs.ttc, ttc=fs.ht)

        logger.debug(f"Implausible ttc/ht ratio {ratio:.2f}: discarding ttc")
        actions.append('discard_ttc')
        return fs.with_values(ttc=None)

    def _recompute(self, fs: FieldSet, actions: List[str]) -> FieldSet:
        """Derive tva_amount and ttc from ht and tva_pct when both are known."""
        if fs.ht is None or fs.tva_pct is None:
            return fs

        tva_amount = round_amount(fs.ht * fs.tva_pct / 100)
        ttc = round_amount(fs.ht + tva_amount)

        if tva_amount != fs.tva_amount:
            actions.append('recompute_tva_amount')
        if ttc != fs.ttc:
            actions.append('recompute_ttc')

        return fs.with_values(tva_amount=tva_amount, ttc=ttc)
