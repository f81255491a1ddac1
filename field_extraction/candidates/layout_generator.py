"""
Layout Candidate Generator.

Pairs label tokens with value tokens using page coordinates. Only
text-bearing PDFs carry positioned tokens; for every other modality the
generator returns nothing.

Steps per page:
    1. Group tokens into lines by vertical centre
    2. Merge adjacent numeric tokens into value spans
       ("1" "000,00" "€" becomes one amount, "20" "%" one percentage)
    3. Find label keywords in each line's text
    4. Pair each label with the nearest span of the right kind, either
       to its right on the same row or below it in the same column

Author: ML Engineering Team
"""

import re
from dataclasses import dataclass
from typing import Dict, List, Optional, Pattern, Sequence, Tuple

from config import get_config
from field_extraction.document import Page, Token
from field_extraction.postprocessor.normalizers import (
    normalize_date,
    normalize_number,
    normalize_percentage,
)
from field_extraction.utils.logger import get_logger
from .models import Candidate, FieldName, Source, Typed, ValueKind
from .patterns import LABELS, LAYOUT_LABELS

logger = get_logger(__name__)

BBox = Tuple[float, float, float, float]

NUMERIC_TOKEN = re.compile(r'^\d[\d.,]*(?:€|%|EUR)?$', re.IGNORECASE)
THOUSANDS_GROUP = re.compile(r'^\d{3}(?:[.,]\d{1,2})?(?:€|%|EUR)?$', re.IGNORECASE)
LEADING_GROUP = re.compile(r'^\d{1,3}$')
UNIT_TOKEN = re.compile(r'^(?:€|%|EUR)$', re.IGNORECASE)
DATE_TOKEN = re.compile(r'^\d{1,2}[/-]\d{1,2}[/-](?:\d{4}|\d{2})$')

ALL_LABELS: Dict[FieldName, Pattern] = dict(LABELS, **LAYOUT_LABELS)


@dataclass
class Line:
    """Tokens of one visual line, left to right, with their text offsets."""
    tokens: List[Token]
    text: str = ""
    offsets: Tuple[Tuple[int, int], ...] = ()

    def finalize(self) -> 'Line':
        self.tokens.sort(key=lambda t: t.x0)
        parts, offsets, cursor = [], [], 0
        for token in self.tokens:
            parts.append(token.text)
            offsets.append((cursor, cursor + len(token.text)))
            cursor += len(token.text) + 1
        self.text = ' '.join(parts)
        self.offsets = tuple(offsets)
        return self


@dataclass(frozen=True)
class ValueSpan:
    """Merged value tokens with their parsed value."""
    kind: ValueKind
    value: Typed
    bbox: BBox
    raw: str


@dataclass(frozen=True)
class LabelBox:
    """A label keyword located on the page."""
    field: FieldName
    bbox: BBox
    raw: str


def union_bbox(tokens: Sequence[Token]) -> BBox:
    return (
        min(t.x0 for t in tokens),
        min(t.top for t in tokens),
        max(t.x1 for t in tokens),
        max(t.bottom for t in tokens),
    )


def group_lines(tokens: Sequence[Token]) -> List[Line]:
    """Group tokens into lines by vertical centre, top to bottom."""
    lines: List[Line] = []
    centers: List[float] = []
    heights: List[float] = []

    for token in sorted(tokens, key=lambda t: (t.top, t.x0)):
        if lines:
            tolerance = max(heights[-1], token.height, 1.0) * 0.5
            if abs(token.center_y - centers[-1]) <= tolerance:
                lines[-1].tokens.append(token)
                count = len(lines[-1].tokens)
                centers[-1] += (token.center_y - centers[-1]) / count
                heights[-1] = max(heights[-1], token.height)
                continue
        lines.append(Line(tokens=[token]))
        centers.append(token.center_y)
        heights.append(token.height)

    return [line.finalize() for line in lines]


def _make_span(tokens: List[Token]) -> Optional[ValueSpan]:
    raw = ' '.join(t.text for t in tokens)
    if '%' in raw:
        value = normalize_percentage(raw)
        if value is None or not 0 <= value <= 100:
            return None
        return ValueSpan(ValueKind.PERCENTAGE, value, union_bbox(tokens), raw)
    value = normalize_number(raw)
    if value is None:
        return None
    return ValueSpan(ValueKind.NUMBER, value, union_bbox(tokens), raw)


def value_spans(line: Line) -> List[ValueSpan]:
    """Merge a line's numeric tokens into amount, percentage and date spans."""
    spans: List[ValueSpan] = []
    current: List[Token] = []

    def flush():
        if current:
            span = _make_span(current)
            if span is not None:
                spans.append(span)
            current.clear()

    for token in line.tokens:
        text = token.text.strip()

        if DATE_TOKEN.match(text):
            flush()
            iso = normalize_date(text)
            if iso:
                spans.append(ValueSpan(ValueKind.DATE, iso, token.bbox, text))
            continue

        if current:
            previous = current[-1]
            gap = token.x0 - previous.x1
            close = gap <= max(previous.height, token.height) * 0.6
            closed = previous.text.upper().endswith(('€', '%', 'EUR'))
            if close and not closed and UNIT_TOKEN.match(text):
                current.append(token)
                continue
            if close and not closed and LEADING_GROUP.match(previous.text) and THOUSANDS_GROUP.match(text):
                current.append(token)
                continue
            flush()

        if NUMERIC_TOKEN.match(text):
            current.append(token)

    flush()
    return spans


def find_labels(line: Line) -> List[LabelBox]:
    """Label keywords of a line, mapped back to token boxes."""
    labels = []
    for field_name, pattern in ALL_LABELS.items():
        for match in pattern.finditer(line.text):
            start, end = match.span()
            covered = [
                token for token, (t_start, t_end) in zip(line.tokens, line.offsets)
                if t_start < end and t_end > start
            ]
            if covered:
                labels.append(LabelBox(field_name, union_bbox(covered), match.group(0)))
    return labels


def _overlaps(a: BBox, b: BBox) -> bool:
    return a[0] < b[2] and b[0] < a[2] and a[1] < b[3] and b[1] < a[3]


class LayoutGenerator:
    """
    Spatial label/value pairing over positioned tokens.

    Attributes:
        score: Source reliability attached to every candidate.
        max_right_distance: Largest horizontal gap for a same-row value.
        max_below_distance: Largest vertical gap for a value below the label.
        below_penalty: Weight applied to below-the-label distances.

    Example:
        >>> generator = LayoutGenerator()
        >>> candidates = generator.generate(acquired.pages)
    """

    def __init__(
        self,
        score: Optional[float] = None,
        max_right_distance: Optional[float] = None,
        max_below_distance: Optional[float] = None,
        below_penalty: Optional[float] = None
    ) -> None:
        self.score = score if score is not None else get_config("candidates.layout.score", 0.8)
        self.max_right_distance = max_right_distance if max_right_distance is not None else get_config(
            "candidates.layout.max_right_distance", 320.0
        )
        self.max_below_distance = max_below_distance if max_below_distance is not None else get_config(
            "candidates.layout.max_below_distance", 40.0
        )
        self.below_penalty = below_penalty if below_penalty is not None else get_config(
            "candidates.layout.below_penalty", 2.0
        )

    def generate(self, pages: Sequence[Page]) -> List[Candidate]:
        """
        Produce layout candidates; the last paired label wins per field.

        Args:
            pages: Positioned pages. Pages without tokens are skipped.

        Returns:
            At most one candidate per field.
        """
        chosen: Dict[FieldName, Candidate] = {}

        for page in pages:
            if not page.tokens:
                continue
            lines = group_lines(page.tokens)
            spans = [span for line in lines for span in value_spans(line)]
            if not spans:
                continue

            for line in lines:
                for label in find_labels(line):
                    span = self._nearest(label, spans)
                    if span is not None:
                        chosen[label.field] = Candidate(
                            label.field, span.value, self.score, Source.LAYOUT, span.raw
                        )

        logger.debug(f"Layout generator: {len(chosen)} candidates")
        return list(chosen.values())

    def _nearest(self, label: LabelBox, spans: Sequence[ValueSpan]) -> Optional[ValueSpan]:
        """Closest span of the label field's kind, right of it or below it."""
        lx0, ltop, lx1, lbottom = label.bbox
        best: Optional[ValueSpan] = None
        best_distance = float('inf')

        for span in spans:
            if span.kind is not label.field.kind or _overlaps(span.bbox, label.bbox):
                continue
            sx0, stop, sx1, sbottom = span.bbox

            same_row = stop < lbottom and sbottom > ltop
            if same_row and sx0 >= lx1 - 1.0:
                gap = sx0 - lx1
                if gap > self.max_right_distance:
                    continue
                distance = max(gap, 0.0)
            elif stop >= lbottom - 1.0 and sx0 < lx1 and sx1 > lx0:
                gap = stop - lbottom
                if gap > self.max_below_distance:
                    continue
                distance = max(gap, 0.0) * self.below_penalty
            else:
                continue

            if distance < best_distance:
                best, best_distance = span, distance

        return best
