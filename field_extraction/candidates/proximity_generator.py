"""
Proximity-in-Summary Candidate Generator.

Recap blocks (HT / TVA / TTC lines) sit near the end of an invoice. This
generator restricts itself to the tail of the text, finds the
currency-suffixed amounts and the recap labels there, and pairs each
label with the nearest amount that no other label has claimed.

Pairing is greedy over all (label, amount) pairs sorted by character
distance, so the closest pairs are fixed first and an amount printed
once can satisfy at most one label.

Author: ML Engineering Team
"""

from dataclasses import dataclass
from typing import Dict, List, Optional, Set, Tuple

from config import get_config
from field_extraction.postprocessor.normalizers import normalize_number, normalize_percentage
from field_extraction.utils.logger import get_logger
from .models import Candidate, FieldName, Source
from .patterns import CURRENCY_AMOUNT, LABELS, RATE_LABEL

logger = get_logger(__name__)

DEFAULT_SCORES = {
    'ht': 0.75,
    'ttc': 0.8,
    'net_to_pay': 0.75,
    'tva_amount': 0.65,
    'tva_pct': 0.7,
}


@dataclass(frozen=True)
class AmountToken:
    """Currency-suffixed amount; offsets are relative to the full text."""
    start: int
    end: int
    value: float
    raw: str


@dataclass(frozen=True)
class LabelHit:
    """Recap label occurrence; offsets are relative to the full text."""
    field: FieldName
    start: int
    end: int
    raw: str
    rate: Optional[float] = None


@dataclass(frozen=True)
class Assignment:
    """A label paired with the amount token it consumed."""
    label: LabelHit
    token: AmountToken
    distance: int


def span_distance(label: LabelHit, token: AmountToken) -> int:
    """Character gap between a label and a token, 0 when they overlap."""
    if token.start >= label.end:
        return token.start - label.end
    if label.start >= token.end:
        return label.start - token.end
    return 0


class ProximityGenerator:
    """
    Recap-block label/amount pairing.

    Attributes:
        summary_ratio: Fraction of the text, from the end, that is searched.
        summary_min_chars: Minimum window length for short documents.
        scores: Source score per field.

    Example:
        >>> generator = ProximityGenerator()
        >>> text = "Total HT 1 000,00 €\\nTVA 20 % 200,00 €\\nTotal TTC 1 200,00 €"
        >>> {c.field.value: c.value for c in generator.generate(text)}
        {'ht': 1000.0, 'tva_amount': 200.0, 'ttc': 1200.0, 'tva_pct': 20.0}
    """

    def __init__(
        self,
        summary_ratio: Optional[float] = None,
        summary_min_chars: Optional[int] = None,
        scores: Optional[Dict[str, float]] = None
    ) -> None:
        self.summary_ratio = summary_ratio if summary_ratio is not None else get_config(
            "candidates.proximity.summary_ratio", 0.30
        )
        self.summary_min_chars = summary_min_chars if summary_min_chars is not None else get_config(
            "candidates.proximity.summary_min_chars", 300
        )
        configured = scores if scores is not None else get_config("candidates.proximity.scores", {})
        self.scores = dict(DEFAULT_SCORES, **(configured or {}))

    def window_start(self, text: str) -> int:
        """Offset where the summary window begins, snapped to a line start."""
        length = len(text)
        start = int(length * (1 - self.summary_ratio))
        start = min(start, max(0, length - self.summary_min_chars))
        return text.rfind('\n', 0, start) + 1 if start > 0 else 0

    def find_amounts(self, text: str, offset: int = 0) -> List[AmountToken]:
        tokens = []
        for match in CURRENCY_AMOUNT.finditer(text, offset):
            value = normalize_number(match.group(1))
            if value is not None:
                tokens.append(AmountToken(match.start(), match.end(), value, match.group(0)))
        return tokens

    def find_labels(self, text: str, offset: int = 0) -> List[LabelHit]:
        """Label occurrences in document order, overlapping hits dropped."""
        hits = []
        for field_name, pattern in LABELS.items():
            for match in pattern.finditer(text, offset):
                rate = None
                if field_name is FieldName.TVA_AMOUNT:
                    rate_match = RATE_LABEL.match(match.group(0).strip())
                    if rate_match:
                        rate = normalize_percentage(rate_match.group(1))
                hits.append(LabelHit(field_name, match.start(), match.end(), match.group(0), rate))

        hits.sort(key=lambda hit: (hit.start, -(hit.end - hit.start)))
        kept: List[LabelHit] = []
        for hit in hits:
            if kept and hit.start < kept[-1].end:
                continue
            kept.append(hit)
        return kept

    def assign(self, text: str) -> List[Assignment]:
        """
        Pair labels with amounts inside the summary window.

        Returns:
            Assignments in label document order. Every token appears in
            at most one assignment.
        """
        if not text:
            return []

        offset = self.window_start(text)
        labels = self.find_labels(text, offset)
        tokens = self.find_amounts(text, offset)

        pairs: List[Tuple[int, int, int, int, LabelHit, AmountToken]] = []
        for label in labels:
            for token in tokens:
                before = 0 if token.start >= label.end else 1
                pairs.append((span_distance(label, token), before, label.start, token.start, label, token))
        pairs.sort(key=lambda p: p[:4])

        claimed_labels: Set[int] = set()
        claimed_tokens: Set[int] = set()
        assignments = []
        for distance, _, label_start, token_start, label, token in pairs:
            if label_start in claimed_labels or token_start in claimed_tokens:
                continue
            claimed_labels.add(label_start)
            claimed_tokens.add(token_start)
            assignments.append(Assignment(label, token, distance))

        assignments.sort(key=lambda a: a.label.start)
        return assignments

    def generate(self, text: str) -> List[Candidate]:
        """
        Produce recap candidates; the last label occurrence wins per field.

        Args:
            text: Full raw text.

        Returns:
            Candidates for ht, tva_amount, ttc, net_to_pay and tva_pct.
        """
        if not text:
            return []

        chosen: Dict[FieldName, Candidate] = {}
        for assignment in self.assign(text):
            field_name = assignment.label.field
            chosen[field_name] = Candidate(
                field_name,
                assignment.token.value,
                self.scores[field_name.value],
                Source.PROXIMITY,
                assignment.token.raw
            )

        # The rate printed inside a "TVA x %" label is a candidate of its own
        offset = self.window_start(text)
        for label in self.find_labels(text, offset):
            if label.rate is not None and 0 <= label.rate <= 100:
                chosen[FieldName.TVA_PCT] = Candidate(
                    FieldName.TVA_PCT, label.rate, self.scores['tva_pct'], Source.PROXIMITY, label.raw
                )

        logger.debug(f"Proximity generator: {len(chosen)} candidates")
        return list(chosen.values())
