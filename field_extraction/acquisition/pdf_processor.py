"""
PDF Processor Module.

This module handles PDF payloads:
    - Text layer extraction with positioned words (pdfplumber)
    - Text layer detection (text-bearing vs image-only PDFs)
    - Page rendering to images for optical recognition

Rendering uses PyMuPDF and falls back to pdf2image (Poppler) when
PyMuPDF cannot render the document.

Author: ML Engineering Team
"""

import io
from dataclasses import dataclass, field
from typing import List

import fitz  # PyMuPDF
import pdf2image
import pdfplumber
from PIL import Image

from config import get_config
from field_extraction.document import Page, Token
from field_extraction.utils.exceptions import CorruptedDocumentError
from field_extraction.utils.logger import get_logger

# Initialize module logger
logger = get_logger(__name__)


@dataclass
class TextLayer:
    """
    Embedded text of a PDF.

    Attributes:
        text: Page texts joined by newlines.
        pages: Positioned words per page.
        has_text: True when at least one page carries a usable text layer.
    """
    text: str = ""
    pages: List[Page] = field(default_factory=list)
    has_text: bool = False


class PDFProcessor:
    """
    Processor for PDF payloads.

    Attributes:
        dpi: Resolution for page rendering.
        max_pages: Maximum number of pages read or rendered.
        min_text_chars: Characters a page needs to count as a text layer.

    Example:
        >>> processor = PDFProcessor()
        >>> layer = processor.extract_text_layer(content)
        >>> if not layer.has_text:
        ...     images = processor.render_pages(content)
    """

    def __init__(self) -> None:
        """Initialize the PDF processor with configuration."""
        self.dpi = get_config("acquisition.pdf.dpi", 300)
        self.max_pages = get_config("acquisition.pdf.max_pages", 10)
        self.min_text_chars = get_config("acquisition.pdf.min_text_chars", 5)

        logger.debug(f"PDFProcessor initialized (DPI={self.dpi}, max_pages={self.max_pages})")

    def extract_text_layer(self, content: bytes, source_hint: str = "pdf") -> TextLayer:
        """
        Read the embedded text and word boxes of a PDF.

        Args:
            content: PDF bytes.
            source_hint: Name used in error messages.

        Returns:
            TextLayer; has_text is False for image-only PDFs.

        Raises:
            CorruptedDocumentError: If pdfplumber cannot open the PDF.
        """
        try:
            pdf = pdfplumber.open(io.BytesIO(content))
        except Exception as e:
            logger.error(f"pdfplumber could not open {source_hint}: {e}")
            raise CorruptedDocumentError(source_hint, str(e))

        texts: List[str] = []
        pages: List[Page] = []
        has_text = False

        with pdf:
            for index, pdf_page in enumerate(pdf.pages[:self.max_pages]):
                page_text = pdf_page.extract_text() or ""
                if len(page_text.strip()) >= self.min_text_chars:
                    has_text = True
                texts.append(page_text)

                tokens = tuple(
                    Token(
                        text=word['text'],
                        page_index=index,
                        bbox=(float(word['x0']), float(word['top']),
                              float(word['x1']), float(word['bottom']))
                    )
                    for word in pdf_page.extract_words(keep_blank_chars=False)
                    if word.get('text', '').strip()
                )
                pages.append(Page(index, tokens, float(pdf_page.width), float(pdf_page.height)))

        logger.debug(
            f"Text layer of {source_hint}: {len(pages)} page(s), "
            f"{sum(len(p.tokens) for p in pages)} words, has_text={has_text}"
        )
        return TextLayer(text='\n'.join(texts), pages=pages, has_text=has_text)

    def render_pages(self, content: bytes, source_hint: str = "pdf") -> List[Image.Image]:
        """
        Render PDF pages to RGB images.

        Args:
            content: PDF bytes.
            source_hint: Name used in error messages.

        Returns:
            One image per page, at most max_pages.

        Raises:
            CorruptedDocumentError: If neither renderer can read the PDF.
        """
        try:
            images = self._render_with_pymupdf(content)
        except Exception as e:
            logger.warning(f"PyMuPDF rendering failed for {source_hint}, trying pdf2image: {e}")
            try:
                images = self._render_with_pdf2image(content)
            except Exception as fallback_error:
                logger.error(f"pdf2image rendering failed for {source_hint}: {fallback_error}")
                raise CorruptedDocumentError(source_hint, str(fallback_error))

        logger.info(f"Rendered {len(images)} page(s) of {source_hint}")
        return images

    def _render_with_pymupdf(self, content: bytes) -> List[Image.Image]:
        logger.debug("Using PyMuPDF for PDF rendering")
        images = []

        doc = fitz.open(stream=content, filetype="pdf")
        try:
            # PDF user space is 72 DPI
            zoom = self.dpi / 72.0
            matrix = fitz.Matrix(zoom, zoom)

            for page_num in range(min(len(doc), self.max_pages)):
                pix = doc.load_page(page_num).get_pixmap(matrix=matrix)
                image = Image.open(io.BytesIO(pix.tobytes("png")))
                images.append(image.convert('RGB') if image.mode != 'RGB' else image)
        finally:
            doc.close()

        return images

    def _render_with_pdf2image(self, content: bytes) -> List[Image.Image]:
        logger.debug("Using pdf2image for PDF rendering")
        images = pdf2image.convert_from_bytes(
            content,
            dpi=self.dpi,
            first_page=1,
            last_page=self.max_pages,
            fmt='png'
        )
        return [img.convert('RGB') if img.mode != 'RGB' else img for img in images]
