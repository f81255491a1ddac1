"""
OCR Engine Module for the Field Extraction Engine.

This module provides optical recognition for image-only documents:
    - Tesseract backend configurable per layout variant
    - Bounded pool of reusable backends with guaranteed release
    - Multi-pass, quality-driven recognition with early exit

Author: ML Engineering Team
"""

from .multipass import MultiPassRecognizer, quality_score
from .ocr_result import RecognitionPass, RecognitionResult
from .pool import RecognitionPool
from .tesseract_backend import TesseractBackend

__all__ = [
    'MultiPassRecognizer',
    'quality_score',
    'RecognitionPass',
    'RecognitionResult',
    'RecognitionPool',
    'TesseractBackend',
]
