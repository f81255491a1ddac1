"""
Multi-pass Recognizer.

Recognizes one image under several layout-assumption variants and
keeps the best output:
    - each pass is scored by the share of alphanumeric characters
    - passes run sequentially and stop at the first one whose quality
      reaches the threshold
    - when none does, the best attempted pass is kept
    - a failing pass is recorded and left out of the comparison

recognize() never raises: with every pass failed it returns empty text.

Author: ML Engineering Team
"""

import time
from typing import Optional, Sequence

from PIL import Image

from config import get_config
from field_extraction.utils.exceptions import OCRError
from field_extraction.utils.logger import get_logger
from .ocr_result import RecognitionPass, RecognitionResult
from .pool import RecognitionPool
from .tesseract_backend import DEFAULT_VARIANTS

# Initialize module logger
logger = get_logger(__name__)


def quality_score(text: str) -> float:
    """
    Cheap text-quality proxy: alphanumeric characters over total length.

    >>> quality_score("Total 12")
    0.875
    >>> quality_score("")
    0.0
    """
    if not text:
        return 0.0
    return sum(1 for ch in text if ch.isalnum()) / len(text)


class MultiPassRecognizer:
    """
    Quality-driven search over recognition variants.

    Attributes:
        pool: Backend pool used for every pass.
        variants: Variant names, in the order they are tried.
        quality_threshold: Quality that ends the search early.
        blurry_threshold: Best quality under which the image is flagged.

    Example:
        >>> recognizer = MultiPassRecognizer(RecognitionPool())
        >>> result = recognizer.recognize(image)
        >>> result.variant, result.quality
        ('single_block', 0.82)
    """

    def __init__(
        self,
        pool: RecognitionPool,
        variants: Optional[Sequence[str]] = None,
        quality_threshold: Optional[float] = None,
        blurry_threshold: Optional[float] = None
    ) -> None:
        self.pool = pool
        if variants is None:
            configured = get_config("ocr.variants", DEFAULT_VARIANTS) or DEFAULT_VARIANTS
            variants = [v['name'] for v in configured]
        self.variants = list(variants)
        self.quality_threshold = quality_threshold if quality_threshold is not None else get_config(
            "ocr.quality_threshold", 0.70
        )
        self.blurry_threshold = blurry_threshold if blurry_threshold is not None else get_config(
            "ocr.blurry_threshold", 0.35
        )

    def recognize(self, image: Image.Image) -> RecognitionResult:
        """
        Run the variant search on one image.

        Args:
            image: Image to recognize.

        Returns:
            RecognitionResult with the kept text and every pass.
        """
        result = RecognitionResult()
        best: Optional[RecognitionPass] = None

        for variant in self.variants:
            attempt = self._run_pass(image, variant)
            result.passes.append(attempt)

            if not attempt.succeeded:
                continue
            if best is None or attempt.quality > best.quality:
                best = attempt
            if attempt.quality >= self.quality_threshold:
                logger.debug(f"Early exit after variant '{variant}' (quality={attempt.quality:.2f})")
                break

        if best is not None:
            result.text = best.text
            result.quality = best.quality
            result.variant = best.variant
        result.too_blurry = result.quality < self.blurry_threshold

        if result.all_failed:
            logger.warning(f"All {len(result.passes)} recognition passes failed")
        else:
            logger.debug(
                f"Recognition kept variant '{result.variant}' "
                f"(quality={result.quality:.2f}, {len(result.passes)} pass(es))"
            )
        return result

    def _run_pass(self, image: Image.Image, variant: str) -> RecognitionPass:
        started = time.time()
        try:
            with self.pool.acquire(variant) as backend:
                text = backend.recognize(image) or ""
        except OCRError as e:
            logger.warning(f"Recognition pass '{variant}' failed: {e}")
            return RecognitionPass(variant, succeeded=False, error=str(e),
                                   processing_time=time.time() - started)
        except Exception as e:
            logger.warning(f"Recognition pass '{variant}' raised {type(e).__name__}: {e}")
            return RecognitionPass(variant, succeeded=False, error=f"{type(e).__name__}: {e}",
                                   processing_time=time.time() - started)

        return RecognitionPass(
            variant, text=text, quality=quality_score(text), processing_time=time.time() - started
        )
