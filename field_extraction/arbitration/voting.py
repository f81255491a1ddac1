"""
Arbitration Module.

Selects one authoritative value per field from the candidate pool:
    1. highest score
    2. ties go to the more reliable source
       (template > layout = tabular > proximity > pattern)
    3. remaining ties go to the candidate added first

A field without candidates stays None; that is a normal outcome.

Author: ML Engineering Team
"""

from typing import Dict, Optional, Sequence

from field_extraction.candidates.models import Candidate, CandidatePool, FieldName, Typed
from field_extraction.extraction_result import FieldSet
from field_extraction.utils.logger import get_logger

# Initialize module logger
logger = get_logger(__name__)


def select(candidates: Sequence[Candidate]) -> Optional[Candidate]:
    """
    Best candidate of one field.

    Example:
        >>> a = Candidate(FieldName.HT, 900.0, 0.6, Source.PATTERN)
        >>> b = Candidate(FieldName.HT, 1000.0, 0.8, Source.LAYOUT)
        >>> select([a, b]).value
        1000.0
    """
    best: Optional[Candidate] = None
    for candidate in candidates:
        if best is None or (candidate.score, candidate.source.priority) > (best.score, best.source.priority):
            best = candidate
    return best


class Arbitrator:
    """
    Per-field voting over a CandidatePool.

    Example:
        >>> winners = Arbitrator().vote(pool)
        >>> field_set = Arbitrator().arbitrate(pool)
    """

    def vote(self, pool: CandidatePool) -> Dict[FieldName, Candidate]:
        """Winning candidate per field that has at least one candidate."""
        winners: Dict[FieldName, Candidate] = {}
        for field_name in FieldName:
            winner = select(pool.for_field(field_name))
            if winner is not None:
                winners[field_name] = winner
        return winners

    def arbitrate(self, pool: CandidatePool) -> FieldSet:
        """
        Build the field set from the winning candidates.

        Args:
            pool: Candidates from every generator.

        Returns:
            FieldSet with None for fields without candidates.
        """
        winners = self.vote(pool)
        values: Dict[FieldName, Typed] = {name: c.value for name, c in winners.items()}

        for name, candidate in winners.items():
            logger.debug(
                f"Arbitrated {name.value}={candidate.value!r} "
                f"(source={candidate.source.value}, score={candidate.score}, "
                f"among {len(pool.for_field(name))})"
            )
        return FieldSet.from_mapping(values)
