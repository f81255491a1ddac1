"""
Pattern Candidate Generator.

Scans the full raw text with one pattern per field and proposes the
value of the preferred match:
    - amount-like fields keep the LAST match (later totals are usually
      the grand total on multi-total documents)
    - header fields keep the FIRST match; the supplier is only searched
      in the leading header window

Which fields use the last match is configurable
(candidates.pattern.last_match_fields).

Author: ML Engineering Team
"""

import re
from typing import Callable, Dict, Iterable, List, Optional

from config import get_config
from field_extraction.document import ModuleHint
from field_extraction.postprocessor.normalizers import (
    normalize_date,
    normalize_number,
    normalize_percentage,
)
from field_extraction.utils.logger import get_logger
from .models import Candidate, FieldName, Source, Typed, ValueKind
from .patterns import (
    INVOICE_HEADING,
    PATTERNS,
    POSTAL_CITY,
    SUPPLIER,
    SUPPLIER_BLACKLIST,
    TENDER_PATTERNS,
    find_all,
)

# Initialize module logger
logger = get_logger(__name__)

INVOICE_FIELDS = (
    FieldName.HT,
    FieldName.TVA_PCT,
    FieldName.TVA_AMOUNT,
    FieldName.TTC,
    FieldName.NET_TO_PAY,
    FieldName.INVOICE_NUMBER,
)

SHARED_FIELDS = (
    FieldName.SIRET,
    FieldName.SIREN,
    FieldName.DOCUMENT_DATE,
    FieldName.CURRENCY,
)

TENDER_FIELDS = (
    FieldName.TENDER_DEADLINE,
    FieldName.TENDER_BUDGET,
    FieldName.TENDER_REFERENCE,
    FieldName.TENDER_AUTHORITY,
)

CITY_STOPWORDS = frozenset(['euros', 'euro', 'eur', 'ht', 'ttc', 'tva', 'cedex'])

DEFAULT_LAST_MATCH = ['ht', 'tva_pct', 'tva_amount', 'ttc', 'net_to_pay']


def _has_digit(value: str) -> bool:
    return any(ch.isdigit() for ch in value)


def _clean_reference(raw: str) -> Optional[str]:
    value = raw.strip().rstrip('.-/_')
    return value if len(value) >= 3 and _has_digit(value) else None


def _clean_identifier(raw: str, length: int) -> Optional[str]:
    digits = re.sub(r'\s', '', raw)
    return digits if len(digits) == length and digits.isdigit() else None


def _clean_percentage(raw: str) -> Optional[float]:
    value = normalize_percentage(raw)
    if value is None or not 0 <= value <= 100:
        return None
    return value


# Raw match text to typed value, per field; None rejects the match
CONVERTERS: Dict[FieldName, Callable[[str], Optional[Typed]]] = {
    FieldName.SIRET: lambda raw: _clean_identifier(raw, 14),
    FieldName.SIREN: lambda raw: _clean_identifier(raw, 9),
    FieldName.INVOICE_NUMBER: _clean_reference,
    FieldName.TENDER_REFERENCE: _clean_reference,
    FieldName.CURRENCY: lambda raw: "EUR",
    FieldName.TENDER_AUTHORITY: lambda raw: raw.strip(" .,;:-") or None,
}

KIND_CONVERTERS: Dict[ValueKind, Callable[[str], Optional[Typed]]] = {
    ValueKind.NUMBER: normalize_number,
    ValueKind.PERCENTAGE: _clean_percentage,
    ValueKind.DATE: normalize_date,
    ValueKind.TEXT: lambda raw: raw.strip() or None,
}


class PatternGenerator:
    """
    Keyword/pattern candidate generator.

    Attributes:
        score: Source reliability attached to every candidate.
        header_window: Number of leading characters searched for the supplier.
        last_match_fields: Fields that keep the last match.

    Example:
        >>> generator = PatternGenerator()
        >>> [c.field.value for c in generator.generate("Total TTC 1 200,00 €")]
        ['ttc', 'currency']
    """

    def __init__(
        self,
        score: Optional[float] = None,
        header_window: Optional[int] = None,
        last_match_fields: Optional[Iterable[str]] = None
    ) -> None:
        """Initialize the generator with configuration."""
        self.score = score if score is not None else get_config("candidates.pattern.score", 0.6)
        self.header_window = header_window if header_window is not None else get_config(
            "candidates.pattern.header_window", 500
        )
        if last_match_fields is None:
            last_match_fields = get_config("candidates.pattern.last_match_fields", DEFAULT_LAST_MATCH)
        self.last_match_fields = {FieldName(name) for name in last_match_fields}

    def generate(self, text: str, module: ModuleHint = ModuleHint.INVOICE) -> List[Candidate]:
        """
        Produce at most one candidate per field.

        Args:
            text: Full raw text of the document.
            module: Module hint; selects the pattern families.

        Returns:
            Candidates in field order.
        """
        if not text or not text.strip():
            return []

        if module is ModuleHint.TENDER:
            fields = TENDER_FIELDS + SHARED_FIELDS
        else:
            fields = INVOICE_FIELDS + SHARED_FIELDS

        candidates = []
        for field_name in fields:
            pattern = PATTERNS.get(field_name) or TENDER_PATTERNS[field_name]
            candidate = self._pick(field_name, find_all(pattern, text))
            if candidate is not None:
                candidates.append(candidate)

        supplier = self._supplier(text)
        if supplier is not None:
            candidates.append(supplier)

        if module is ModuleHint.TENDER:
            candidates.extend(self._postal_city(text))

        logger.debug(f"Pattern generator: {len(candidates)} candidates")
        return candidates

    def _pick(self, field_name: FieldName, matches: List[re.Match]) -> Optional[Candidate]:
        """Apply the first/last match policy, skipping unparsable matches."""
        if field_name in self.last_match_fields:
            matches = list(reversed(matches))

        convert = CONVERTERS.get(field_name) or KIND_CONVERTERS[field_name.kind]
        for match in matches:
            raw = match.group(1)
            value = convert(raw)
            if value is not None:
                return Candidate(field_name, value, self.score, Source.PATTERN, raw)
        return None

    def _supplier(self, text: str) -> Optional[Candidate]:
        """Legal-form anchored name in the header, else the line after "Facture"."""
        header = text[:self.header_window]

        for match in SUPPLIER.finditer(header):
            name = match.group(1).strip()
            if self._acceptable_supplier(name):
                return Candidate(FieldName.SUPPLIER, name, self.score, Source.PATTERN, match.group(0))

        heading = INVOICE_HEADING.search(header)
        if heading:
            for line in header[heading.end():].splitlines()[1:]:
                name = line.strip()
                if not name:
                    continue
                if self._acceptable_supplier(name) and not _has_digit(name):
                    return Candidate(FieldName.SUPPLIER, name, self.score, Source.PATTERN, line)
                break
        return None

    @staticmethod
    def _acceptable_supplier(name: str) -> bool:
        words = re.findall(r"[\wÀ-ÿ]+", name.lower())
        if not words or len(name) > 80:
            return False
        return not any(word in SUPPLIER_BLACKLIST for word in words)

    def _postal_city(self, text: str) -> List[Candidate]:
        """First postal code followed by a plausible city name."""
        for match in POSTAL_CITY.finditer(text):
            words = [w for w in match.group(2).split() if w.lower() not in CITY_STOPWORDS]
            if not words:
                continue
            return [
                Candidate(FieldName.TENDER_POSTAL_CODE, match.group(1), self.score,
                          Source.PATTERN, match.group(0)),
                Candidate(FieldName.TENDER_CITY, ' '.join(words).upper(), self.score,
                          Source.PATTERN, match.group(0)),
            ]
        return []
