"""
Supplier Template Candidate Generator.

A supplier template lists, per field, the anchor labels that supplier
prints in front of its values ("Montant HT :", "Net à régler"). Templates
are supplied by the caller, keyed by SIRET or by supplier name:

    templates = {
        "12345678900012": {"ht": ["Montant HT"], "ttc": "Net à régler"},
        "Atelier Martin": {"invoice_number": "Réf. pièce"},
    }

The template is chosen from the SIRET and supplier already proposed by
the pattern pass. Each anchor found in the text is read in the short
window that follows it. A template that recognises enough fields is
trusted more than any generic generator; a partial hit scores below the
pattern generator.

Author: ML Engineering Team
"""

import re
from dataclasses import dataclass
from typing import Dict, List, Mapping, Optional, Sequence, Tuple, Union

from config import get_config
from field_extraction.postprocessor.normalizers import normalize_date, normalize_number
from field_extraction.utils.exceptions import InvalidTemplateError
from field_extraction.utils.logger import get_logger
from .models import Candidate, FieldName, Source, Typed, ValueKind

# Initialize module logger
logger = get_logger(__name__)

AnchorSpec = Union[str, Sequence[str]]
TemplateMapping = Mapping[str, Mapping[str, AnchorSpec]]

# Digits with inner spaces, dots or commas; never spans a line break
NUMBER_AFTER = re.compile(r'\d(?:[\d.,\u00a0\u202f ]*\d)?')
WORD_AFTER = re.compile(r'^[\s:#°]*([^\s:]+)')


@dataclass(frozen=True)
class SupplierTemplate:
    """
    Anchors of one supplier.

    Attributes:
        key: SIRET or supplier name the template is registered under.
        anchors: Anchor labels per field, in lookup order.
    """
    key: str
    anchors: Tuple[Tuple[FieldName, Tuple[str, ...]], ...]

    @classmethod
    def from_mapping(cls, key: str, fields: Mapping[str, AnchorSpec]) -> 'SupplierTemplate':
        """
        Build a template from its caller-supplied mapping.

        Raises:
            InvalidTemplateError: On an unknown field or an empty anchor list.
        """
        if not isinstance(fields, Mapping):
            raise InvalidTemplateError(key, "expected a mapping of field to anchor labels")

        anchors = []
        for name, value in fields.items():
            try:
                field_name = FieldName(name)
            except ValueError:
                raise InvalidTemplateError(key, f"unknown field '{name}'")
            labels = (value,) if isinstance(value, str) else tuple(value or ())
            labels = tuple(label for label in labels if isinstance(label, str) and label.strip())
            if not labels:
                raise InvalidTemplateError(key, f"no anchor label for field '{name}'")
            anchors.append((field_name, labels))
        return cls(key, tuple(anchors))

    @property
    def is_siret(self) -> bool:
        digits = re.sub(r'\s', '', self.key)
        return len(digits) == 14 and digits.isdigit()

    def matches(self, siret: Optional[str], supplier: Optional[str]) -> bool:
        if self.is_siret:
            return siret is not None and re.sub(r'\s', '', self.key) == siret
        if not supplier:
            return False
        key, name = self.key.strip().lower(), supplier.strip().lower()
        return bool(key) and (key in name or name in key)


def read_value(kind: ValueKind, window: str) -> Optional[Typed]:
    """Read a value of the given kind at the start of the text after an anchor."""
    if kind is ValueKind.DATE:
        return normalize_date(window)

    if kind is ValueKind.TEXT:
        match = WORD_AFTER.match(window)
        value = match.group(1).strip(".,;") if match else ""
        return value or None

    match = NUMBER_AFTER.search(window)
    if not match:
        return None
    value = normalize_number(match.group(0).rstrip('.,'))
    if kind is ValueKind.PERCENTAGE and value is not None and not 0 <= value <= 100:
        return None
    return value


class TemplateGenerator:
    """
    Anchor-based candidate generator driven by supplier templates.

    Attributes:
        score: Score when at least min_fields fields are read.
        partial_score: Score of a template that reads fewer fields.
        min_fields: Fields needed for the full score.
        window: Characters read after each anchor label.

    Example:
        >>> generator = TemplateGenerator()
        >>> generator.generate(text, {"Atelier Martin": {"ht": "Montant HT"}}, supplier="Atelier Martin")
    """

    def __init__(
        self,
        score: Optional[float] = None,
        partial_score: Optional[float] = None,
        min_fields: Optional[int] = None,
        window: Optional[int] = None
    ) -> None:
        """Initialize the generator with configuration."""
        self.score = score if score is not None else get_config("candidates.template.score", 0.85)
        self.partial_score = partial_score if partial_score is not None else get_config(
            "candidates.template.partial_score", 0.5
        )
        self.min_fields = min_fields if min_fields is not None else get_config("candidates.template.min_fields", 3)
        self.window = window if window is not None else get_config("candidates.template.window", 50)

    def find_template(
        self,
        templates: Optional[TemplateMapping],
        siret: Optional[str] = None,
        supplier: Optional[str] = None
    ) -> Optional[SupplierTemplate]:
        """
        Template of the document's supplier.

        SIRET-keyed templates are tried before name-keyed ones; the first
        match in mapping order wins.
        """
        if not templates:
            return None

        parsed = [SupplierTemplate.from_mapping(key, fields) for key, fields in templates.items()]
        for template in sorted(parsed, key=lambda t: not t.is_siret):
            if template.matches(siret, supplier):
                return template
        return None

    def read(self, text: str, template: SupplierTemplate) -> Dict[FieldName, Tuple[Typed, str]]:
        """Value and matched text per field; the first readable anchor wins."""
        found: Dict[FieldName, Tuple[Typed, str]] = {}
        lowered = text.lower()

        for field_name, labels in template.anchors:
            for label in labels:
                index = lowered.find(label.lower())
                if index < 0:
                    continue
                start = index + len(label)
                window = text[start:start + self.window]
                value = read_value(field_name.kind, window)
                if value is not None:
                    found[field_name] = (value, text[index:start + self.window])
                    break
        return found

    def generate(
        self,
        text: str,
        templates: Optional[TemplateMapping],
        siret: Optional[str] = None,
        supplier: Optional[str] = None
    ) -> List[Candidate]:
        """
        Produce candidates from the matching supplier template.

        Args:
            text: Full raw text of the document.
            templates: Caller-supplied templates keyed by SIRET or name.
            siret: SIRET proposed for the document, if any.
            supplier: Supplier name proposed for the document, if any.

        Returns:
            One candidate per field read; empty when no template matches.

        Raises:
            InvalidTemplateError: If a template is malformed.
        """
        if not text:
            return []

        template = self.find_template(templates, siret, supplier)
        if template is None:
            return []

        found = self.read(text, template)
        score = self.score if len(found) >= self.min_fields else self.partial_score
        logger.debug(f"Template '{template.key}': {len(found)} field(s), score={score}")

        return [
            Candidate(field_name, value, score, Source.TEMPLATE, raw)
            for field_name, (value, raw) in found.items()
        ]
