"""
Tesseract OCR Backend.

This module provides text recognition using Tesseract (pytesseract).
One backend instance serves one recognition call at a time; the pool
configures it for a layout variant before each call.

Layout variants map to Tesseract page segmentation modes:
    - single_block: --psm 6 (uniform block of text)
    - sparse_text:  --psm 11 (scattered text, no order)
    - automatic:    --psm 3 (automatic page segmentation)

Requirements:
    - Tesseract OCR installed on the system, with the French data
    - pytesseract Python package

Author: ML Engineering Team
"""

from typing import Dict, Optional

import pytesseract
from PIL import Image

from config import get_config
from field_extraction.utils.exceptions import OCREngineNotAvailableError, OCRProcessingError
from field_extraction.utils.logger import get_logger

# Initialize module logger
logger = get_logger(__name__)

DEFAULT_VARIANTS = [
    {'name': 'single_block', 'psm': 6},
    {'name': 'sparse_text', 'psm': 11},
    {'name': 'automatic', 'psm': 3},
]


def variant_modes() -> Dict[str, int]:
    """Configured variant name to page segmentation mode."""
    variants = get_config("ocr.variants", DEFAULT_VARIANTS) or DEFAULT_VARIANTS
    return {v['name']: int(v['psm']) for v in variants}


class TesseractBackend:
    """
    Tesseract recognition backend.

    Attributes:
        language: Tesseract language code (e.g., "fra").
        psm: Page Segmentation Mode of the current variant.
        oem: OCR Engine Mode (0-3).
        extra_config: Additional Tesseract configuration.

    Example:
        >>> backend = TesseractBackend()
        >>> backend.configure("sparse_text")
        >>> text = backend.recognize(image)
    """

    def __init__(self, language: Optional[str] = None) -> None:
        """Initialize the Tesseract backend with configuration."""
        self.language = language or get_config("ocr.tesseract.lang", "fra")
        self.oem = get_config("ocr.tesseract.oem", 3)
        self.extra_config = get_config("ocr.tesseract.config", "")
        self.modes = variant_modes()
        self.variant = next(iter(self.modes), 'automatic')
        self.psm = self.modes.get(self.variant, 3)

        self._check_dependencies()

        logger.debug(f"TesseractBackend initialized (lang={self.language}, oem={self.oem})")

    def _check_dependencies(self) -> None:
        """
        Check that the Tesseract binary is reachable.

        Raises:
            OCREngineNotAvailableError: If Tesseract is not installed.
        """
        try:
            version = pytesseract.get_tesseract_version()
            logger.info(f"Tesseract version: {version}")
        except Exception as e:
            raise OCREngineNotAvailableError(f"Tesseract OCR (not installed or not in PATH): {e}")

    def configure(self, variant: str) -> None:
        """
        Select the layout variant for the next call.

        Raises:
            OCRProcessingError: If the variant is unknown.
        """
        if variant not in self.modes:
            raise OCRProcessingError(variant, f"unknown layout variant, expected one of {list(self.modes)}")
        self.variant = variant
        self.psm = self.modes[variant]

    def _build_config(self) -> str:
        """
        Build Tesseract configuration string.

        Returns:
            Configuration string for Tesseract.
        """
        config_parts = [
            f"--psm {self.psm}",
            f"--oem {self.oem}"
        ]

        if self.extra_config:
            config_parts.append(self.extra_config)

        return ' '.join(config_parts)

    def recognize(self, image: Image.Image) -> str:
        """
        Recognize the text of an image under the current variant.

        Args:
            image: PIL Image to process.

        Returns:
            Recognized text.

        Raises:
            OCRProcessingError: If Tesseract fails.
        """
        if image.mode != 'RGB':
            image = image.convert('RGB')

        config = self._build_config()
        logger.debug(f"Running Tesseract (variant={self.variant}, config: {config})")

        try:
            text = pytesseract.image_to_string(image, lang=self.language, config=config)
        except Exception as e:
            raise OCRProcessingError(self.variant, str(e))

        return text.strip()
