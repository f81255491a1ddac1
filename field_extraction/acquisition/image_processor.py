"""
Image Processor Module.

Prepares raster images for optical recognition:
    - Loading and validation from bytes
    - Orientation correction from EXIF
    - RGB conversion and size capping
    - Optional contrast enhancement

Supports the formats Pillow can open (JPEG, PNG, TIFF, BMP, ...).

Author: ML Engineering Team
"""

import io

from PIL import Image, ImageEnhance, ImageOps

from config import get_config
from field_extraction.utils.exceptions import CorruptedDocumentError
from field_extraction.utils.logger import get_logger

# Initialize module logger
logger = get_logger(__name__)


def is_image(content: bytes) -> bool:
    """True when Pillow recognises the bytes as an image."""
    try:
        with Image.open(io.BytesIO(content)) as image:
            image.verify()
        return True
    except Exception:
        return False


class ImageProcessor:
    """
    Processor for raster images.

    Attributes:
        max_width: Maximum image width in pixels.
        max_height: Maximum image height in pixels.
        auto_orient: Whether to apply the EXIF orientation.
        enhance_contrast: Whether to apply contrast enhancement.
        contrast_factor: Enhancement factor.

    Example:
        >>> processor = ImageProcessor()
        >>> image = processor.load(content, "receipt.jpg")
    """

    def __init__(self) -> None:
        """Initialize the image processor with configuration."""
        self.max_width = get_config("acquisition.image.max_width", 2480)
        self.max_height = get_config("acquisition.image.max_height", 3508)
        self.auto_orient = get_config("acquisition.image.auto_orient", True)
        self.enhance_contrast = get_config("acquisition.image.enhance_contrast", True)
        self.contrast_factor = get_config("acquisition.image.contrast_factor", 1.5)

        logger.debug(f"ImageProcessor initialized (max_size={self.max_width}x{self.max_height})")

    def load(self, content: bytes, source_hint: str = "image") -> Image.Image:
        """
        Decode and prepare an image.

        Args:
            content: Image bytes.
            source_hint: Name used in error messages.

        Returns:
            RGB image ready for recognition.

        Raises:
            CorruptedDocumentError: If the bytes are not a readable image.
        """
        try:
            image = Image.open(io.BytesIO(content))
            image.load()
        except Exception as e:
            logger.error(f"Failed to decode image {source_hint}: {e}")
            raise CorruptedDocumentError(source_hint, str(e))

        original_size = image.size
        image = self.prepare(image)
        logger.debug(f"Prepared image {source_hint}: {original_size} -> {image.size}")
        return image

    def prepare(self, image: Image.Image) -> Image.Image:
        """
        Apply the preparation pipeline.

        Steps:
            1. Fix orientation from EXIF
            2. Convert to RGB
            3. Downscale if too large
            4. Enhance contrast (optional)
        """
        if self.auto_orient:
            image = ImageOps.exif_transpose(image)

        image = self._convert_to_rgb(image)
        image = self._resize_if_needed(image)

        if self.enhance_contrast:
            image = ImageEnhance.Contrast(image).enhance(self.contrast_factor)

        return image

    @staticmethod
    def _convert_to_rgb(image: Image.Image) -> Image.Image:
        if image.mode == 'RGB':
            return image
        if image.mode == 'RGBA':
            # Flatten transparency onto white
            background = Image.new('RGB', image.size, (255, 255, 255))
            background.paste(image, mask=image.split()[3])
            return background
        return image.convert('RGB')

    def _resize_if_needed(self, image: Image.Image) -> Image.Image:
        width, height = image.size
        if width <= self.max_width and height <= self.max_height:
            return image

        ratio = min(self.max_width / width, self.max_height / height)
        new_size = (max(1, int(width * ratio)), max(1, int(height * ratio)))
        return image.resize(new_size, Image.LANCZOS)
