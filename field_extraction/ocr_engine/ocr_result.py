"""
Recognition Result Data Classes.

Output format of the multi-pass recognizer.

Classes:
    RecognitionPass: One recognition attempt under one layout variant
    RecognitionResult: Best text kept for one image, with all attempts

Author: ML Engineering Team
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional


@dataclass(frozen=True)
class RecognitionPass:
    """
    One recognition attempt.

    Attributes:
        variant: Layout-assumption variant name (e.g. "single_block").
        text: Recognized text, empty for failed passes.
        quality: Alphanumeric ratio of the text.
        succeeded: False when the backend raised.
        error: Failure reason for failed passes.
        processing_time: Seconds spent in the pass.
    """
    variant: str
    text: str = ""
    quality: float = 0.0
    succeeded: bool = True
    error: Optional[str] = None
    processing_time: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        data = {
            'variant': self.variant,
            'status': 'success' if self.succeeded else 'failed',
            'quality': round(self.quality, 4),
            'text_length': len(self.text),
            'processing_time': round(self.processing_time, 4),
        }
        if self.error:
            data['error'] = self.error
        return data


@dataclass
class RecognitionResult:
    """
    Result of the multi-pass search for one image.

    Attributes:
        text: Text of the best successful pass, empty when all failed.
        quality: Quality of the kept text.
        variant: Variant that produced the kept text.
        passes: Every attempted pass in order.
        too_blurry: True when the best quality is below the readability
            threshold.

    Example:
        >>> result = recognizer.recognize(image)
        >>> if result.too_blurry:
        ...     print("image too blurry, review needed")
    """
    text: str = ""
    quality: float = 0.0
    variant: Optional[str] = None
    passes: List[RecognitionPass] = field(default_factory=list)
    too_blurry: bool = False

    @property
    def failed_passes(self) -> List[RecognitionPass]:
        return [p for p in self.passes if not p.succeeded]

    @property
    def all_failed(self) -> bool:
        """True when at least one pass ran and none succeeded."""
        return bool(self.passes) and not any(p.succeeded for p in self.passes)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'variant': self.variant,
            'quality': round(self.quality, 4),
            'text_length': len(self.text),
            'too_blurry': self.too_blurry,
            'passes': [p.to_dict() for p in self.passes],
        }
