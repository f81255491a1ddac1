"""
Extraction Result Data Classes.

This module defines the engine's output: the arbitrated field set, the
confidence score and the trace of the call.

Author: ML Engineering Team
"""

import json
from dataclasses import dataclass, field, fields, replace
from datetime import datetime
from typing import Any, Dict, Optional, Tuple

from config import get_config
from field_extraction.candidates.models import FieldName, Typed, coerce_value
from field_extraction.trace import StepRecord


@dataclass(frozen=True)
class FieldSet:
    """
    One authoritative value per field, or None.

    Attribute names match the FieldName values, so the serialized keys
    are stable whatever the module hint.

    Example:
        >>> fs = FieldSet(ht=1000.0, tva_pct=20.0)
        >>> fs.get(FieldName.HT)
        1000.0
        >>> fs.with_values(ttc=1200.0).ttc
        1200.0
    """
    ht: Optional[float] = None
    tva_pct: Optional[float] = None
    tva_amount: Optional[float] = None
    ttc: Optional[float] = None
    net_to_pay: Optional[float] = None
    siret: Optional[str] = None
    siren: Optional[str] = None
    supplier: Optional[str] = None
    invoice_number: Optional[str] = None
    document_date: Optional[str] = None
    currency: Optional[str] = None
    tender_deadline: Optional[str] = None
    tender_budget: Optional[float] = None
    tender_reference: Optional[str] = None
    tender_authority: Optional[str] = None
    tender_postal_code: Optional[str] = None
    tender_city: Optional[str] = None

    @classmethod
    def from_mapping(cls, values: Dict[FieldName, Typed]) -> 'FieldSet':
        """Build a field set from arbitrated values, checking their kinds."""
        return cls(**{
            name.value: coerce_value(name, value)
            for name, value in values.items()
            if value is not None
        })

    def get(self, field_name: FieldName) -> Optional[Typed]:
        return getattr(self, field_name.value)

    def has(self, field_name: FieldName) -> bool:
        return self.get(field_name) is not None

    def with_values(self, **changes: Optional[Typed]) -> 'FieldSet':
        """Return a copy with some fields replaced."""
        return replace(self, **changes)

    @property
    def present_fields(self) -> Tuple[str, ...]:
        return tuple(f.name for f in fields(self) if getattr(self, f.name) is not None)

    @property
    def is_empty(self) -> bool:
        return not self.present_fields

    def to_dict(self) -> Dict[str, Optional[Typed]]:
        return {f.name: getattr(self, f.name) for f in fields(self)}


@dataclass(frozen=True)
class ExtractionResult:
    """
    Represents the result of one extraction call.

    Attributes:
        field_set: Arbitrated and repaired field values.
        confidence: Calibrated confidence in [0, 1].
        trace: Ordered step records of the call.
        totals_ok: Whether the repaired totals are consistent.
        modality: Acquisition modality that was used.
        module: Module hint given by the caller.
        source: File name or MIME hint given by the caller.
        text_length: Length of the acquired raw text.
        processing_time: Seconds spent in the call.
        extraction_timestamp: ISO timestamp of the call.

    Example:
        >>> result = engine.extract(data, "facture.pdf", "invoice")
        >>> result.field_set.ttc
        1200.0
        >>> print(result.to_json())
    """
    field_set: FieldSet = field(default_factory=FieldSet)
    confidence: float = 0.0
    trace: Tuple[StepRecord, ...] = ()
    totals_ok: bool = False
    modality: Optional[str] = None
    module: Optional[str] = None
    source: Optional[str] = None
    text_length: int = 0
    processing_time: float = 0.0
    extraction_timestamp: str = field(default_factory=lambda: datetime.now().isoformat())

    @property
    def success(self) -> bool:
        """False when the call degraded to an empty field set."""
        return not self.field_set.is_empty

    def review_threshold(self) -> float:
        """Configured manual-review threshold for this result's module."""
        thresholds = get_config("review.thresholds", {}) or {}
        return float(thresholds.get(self.module or "invoice", 0.8))

    def needs_review(self, threshold: Optional[float] = None) -> bool:
        """
        Whether the review UI should offer manual correction.

        Args:
            threshold: Explicit threshold; defaults to the module's
                configured one.
        """
        if threshold is None:
            threshold = self.review_threshold()
        return self.confidence < threshold

    def to_dict(self) -> Dict[str, Any]:
        """
        Convert to a plain structured object.

        Returns:
            Dictionary with field_set, confidence, totals_ok and trace.
        """
        return {
            'field_set': self.field_set.to_dict(),
            'confidence': self.confidence,
            'totals_ok': self.totals_ok,
            'needs_review': self.needs_review(),
            'modality': self.modality,
            'module': self.module,
            'source': self.source,
            'text_length': self.text_length,
            'processing_time': self.processing_time,
            'extraction_timestamp': self.extraction_timestamp,
            'trace': [record.to_dict() for record in self.trace],
        }

    def to_json(self, indent: int = 2) -> str:
        return json.dumps(self.to_dict(), indent=indent, ensure_ascii=False, default=str)

    def __repr__(self) -> str:
        return (
            f"ExtractionResult(ttc={self.field_set.ttc!r}, "
            f"ht={self.field_set.ht!r}, "
            f"confidence={self.confidence:.2f}, "
            f"steps={len(self.trace)})"
        )
