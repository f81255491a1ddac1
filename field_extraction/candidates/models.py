"""
Candidate Data Model.

Defines the field vocabulary of the engine and the candidate values that
the generators propose for those fields.

A candidate is a typed value for one field, tagged with the generator
that produced it and that generator's reliability score. Candidates are
immutable: arbitration compares them, nothing rewrites them.

Author: ML Engineering Team
"""

import re
from dataclasses import dataclass
import dataclasses
from enum import Enum
from typing import Dict, Iterable, Iterator, List, Union

from field_extraction.utils.exceptions import InvalidCandidateError


# A typed value is a float for numbers and percentages, an ISO
# "YYYY-MM-DD" string for dates and a plain string for text.
Typed = Union[float, str]

ISO_DATE = re.compile(r'^\d{4}-\d{2}-\d{2}$')


class ValueKind(Enum):
    """Value shape expected for a field."""
    NUMBER = "number"
    PERCENTAGE = "percentage"
    DATE = "date"
    TEXT = "text"


class FieldName(str, Enum):
    """
    Stable field keys of the extraction output.

    The string values are the keys of the serialized field set and do
    not depend on the module hint.
    """
    HT = "ht"
    TVA_PCT = "tva_pct"
    TVA_AMOUNT = "tva_amount"
    TTC = "ttc"
    NET_TO_PAY = "net_to_pay"
    SIRET = "siret"
    SIREN = "siren"
    SUPPLIER = "supplier"
    INVOICE_NUMBER = "invoice_number"
    DOCUMENT_DATE = "document_date"
    CURRENCY = "currency"
    TENDER_DEADLINE = "tender_deadline"
    TENDER_BUDGET = "tender_budget"
    TENDER_REFERENCE = "tender_reference"
    TENDER_AUTHORITY = "tender_authority"
    TENDER_POSTAL_CODE = "tender_postal_code"
    TENDER_CITY = "tender_city"

    @property
    def kind(self) -> ValueKind:
        return FIELD_KINDS[self]

    @property
    def is_amount(self) -> bool:
        return self.kind is ValueKind.NUMBER


FIELD_KINDS: Dict[FieldName, ValueKind] = {
    FieldName.HT: ValueKind.NUMBER,
    FieldName.TVA_PCT: ValueKind.PERCENTAGE,
    FieldName.TVA_AMOUNT: ValueKind.NUMBER,
    FieldName.TTC: ValueKind.NUMBER,
    FieldName.NET_TO_PAY: ValueKind.NUMBER,
    FieldName.SIRET: ValueKind.TEXT,
    FieldName.SIREN: ValueKind.TEXT,
    FieldName.SUPPLIER: ValueKind.TEXT,
    FieldName.INVOICE_NUMBER: ValueKind.TEXT,
    FieldName.DOCUMENT_DATE: ValueKind.DATE,
    FieldName.CURRENCY: ValueKind.TEXT,
    FieldName.TENDER_DEADLINE: ValueKind.DATE,
    FieldName.TENDER_BUDGET: ValueKind.NUMBER,
    FieldName.TENDER_REFERENCE: ValueKind.TEXT,
    FieldName.TENDER_AUTHORITY: ValueKind.TEXT,
    FieldName.TENDER_POSTAL_CODE: ValueKind.TEXT,
    FieldName.TENDER_CITY: ValueKind.TEXT,
}


class Source(Enum):
    """Generator that produced a candidate."""
    PATTERN = "pattern"
    LAYOUT = "layout"
    PROXIMITY = "proximity"
    TABULAR = "tabular"
    TEMPLATE = "template"

    @property
    def priority(self) -> int:
        """Tie-break rank: template > layout/tabular > proximity > pattern."""
        return SOURCE_PRIORITY[self]


SOURCE_PRIORITY: Dict[Source, int] = {
    Source.TEMPLATE: 4,
    Source.LAYOUT: 3,
    Source.TABULAR: 3,
    Source.PROXIMITY: 2,
    Source.PATTERN: 1,
}


def _check_number(value) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise TypeError("expected a number")
    return float(value)


def _check_date(value) -> str:
    if not isinstance(value, str) or not ISO_DATE.match(value):
        raise TypeError("expected an ISO date string")
    return value


def _check_text(value) -> str:
    if not isinstance(value, str) or not value.strip():
        raise TypeError("expected non-empty text")
    return value.strip()


VALUE_CHECKS = {
    ValueKind.NUMBER: _check_number,
    ValueKind.PERCENTAGE: _check_number,
    ValueKind.DATE: _check_date,
    ValueKind.TEXT: _check_text,
}


def coerce_value(field_name: FieldName, value) -> Typed:
    """
    Check a raw value against the field's kind and return its typed form.

    Raises:
        InvalidCandidateError: If the value does not fit the field.
    """
    try:
        check = VALUE_CHECKS[field_name.kind]
    except KeyError:
        raise InvalidCandidateError(field_name.value, value, "unhandled value kind")
    try:
        return check(value)
    except TypeError as e:
        raise InvalidCandidateError(field_name.value, value, str(e))


@dataclass(frozen=True)
class Candidate:
    """
    A proposed value for one field.

    Attributes:
        field: Field the value is proposed for.
        value: Typed value (float, ISO date string or text).
        score: Source reliability in [0, 1].
        source: Generator that produced it.
        raw: Matched source text, kept for tracing only.

    Example:
        >>> Candidate(FieldName.HT, 1000.0, 0.6, Source.PATTERN, "1 000,00")
    """
    field: FieldName
    value: Typed
    score: float
    source: Source
    raw: str = dataclasses.field(default="", compare=False)

    def __post_init__(self):
        if not 0.0 <= self.score <= 1.0:
            raise InvalidCandidateError(self.field.value, self.value, "score out of [0, 1]")
        object.__setattr__(self, 'value', coerce_value(self.field, self.value))

    def to_dict(self) -> Dict[str, Union[str, float]]:
        return {
            'field': self.field.value,
            'value': self.value,
            'score': self.score,
            'source': self.source.value,
            'raw': self.raw,
        }


class CandidatePool:
    """
    Candidates from every generator, keyed by field name.

    Generators add to the pool independently; arbitration reads it.
    Insertion order is preserved per field.
    """

    def __init__(self, candidates: Iterable[Candidate] = ()) -> None:
        self._by_field: Dict[FieldName, List[Candidate]] = {}
        self.extend(candidates)

    def add(self, candidate: Candidate) -> None:
        self._by_field.setdefault(candidate.field, []).append(candidate)

    def extend(self, candidates: Iterable[Candidate]) -> None:
        for candidate in candidates:
            self.add(candidate)

    def for_field(self, field_name: FieldName) -> List[Candidate]:
        return list(self._by_field.get(field_name, []))

    def fields(self) -> List[FieldName]:
        return list(self._by_field.keys())

    def count_by_source(self) -> Dict[str, int]:
        counts: Dict[str, int] = {}
        for candidate in self:
            counts[candidate.source.value] = counts.get(candidate.source.value, 0) + 1
        return counts

    def __iter__(self) -> Iterator[Candidate]:
        for candidates in self._by_field.values():
            yield from candidates

    def __len__(self) -> int:
        return sum(len(c) for c in self._by_field.values())
