"""
Field Extraction Engine - Package.

Turns scanned or digital French business documents (supplier invoices,
expense receipts, public-tender notices, spreadsheet exports) into typed
fields with one calibrated confidence score and a step trace.

Modules:
    - acquisition: modality routing, PDF/image/tabular reading
    - ocr_engine: pooled multi-pass optical recognition
    - candidates: pattern, layout, proximity and tabular generators
    - arbitration: per-field voting and confidence scoring
    - postprocessor: normalization, consistency and arithmetic repair
    - utils: logging, exceptions and helpers

Architecture:
    Acquisition → Candidate generators → Arbitration → Repair → Confidence
                                                              ↓
                                                    ExtractionResult + trace
"""

__version__ = "1.0.0"
__author__ = "ML Engineering Team"

from .engine import ExtractionEngine
from .extraction_result import ExtractionResult, FieldSet

__all__ = ['ExtractionEngine', 'ExtractionResult', 'FieldSet']
