"""
Acquisition Router Module.

Turns a Document into raw text, optional page layout and optional rows:
    - CSV / XLSX: rows are read and handed to tabular inference; the
      text is the serialized rows, kept for the trace only
    - Text-bearing PDF: embedded text and word coordinates, no OCR
    - Image-only PDF: pages rendered, then multi-pass OCR per page
    - Raster image: multi-pass OCR directly

Every branch leaves StepRecords in the trace (download, classify, then
pdf_text, pdf_render, image_load, ocr or tabular_read). Acquisition
failures are recorded as failed steps and returned as an unsuccessful
AcquiredDocument; acquire() never raises.

Usage:
    from field_extraction.acquisition import AcquisitionRouter

    router = AcquisitionRouter(recognizer)
    acquired = router.acquire(document, trace)

Author: ML Engineering Team
"""

from typing import List, Optional, Tuple

from PIL import Image

from config import get_config
from field_extraction.document import AcquiredDocument, Document, Modality
from field_extraction.ocr_engine import MultiPassRecognizer, RecognitionPool
from field_extraction.trace import StepStatus, TraceRecorder
from field_extraction.utils.exceptions import (
    DocumentTooLargeError,
    EmptyDocumentError,
    UnsupportedModalityError,
)
from field_extraction.utils.helpers import format_file_size, get_file_extension
from field_extraction.utils.logger import get_logger
from .image_processor import ImageProcessor, is_image
from .pdf_processor import PDFProcessor, TextLayer
from .tabular_reader import TabularReader

# Initialize module logger
logger = get_logger(__name__)

PDF_MAGIC = b'%PDF'
ZIP_MAGIC = b'PK\x03\x04'


class AcquisitionRouter:
    """
    Modality classification and per-branch text acquisition.

    Attributes:
        recognizer: Multi-pass recognizer used for image-only input.
        max_bytes: Largest accepted payload.

    Example:
        >>> router = AcquisitionRouter()
        >>> acquired = router.acquire(Document(content, "export.csv"), TraceRecorder())
        >>> acquired.modality
        <Modality.CSV: 'csv'>
    """

    PDF_EXTENSIONS = {'.pdf'}
    IMAGE_EXTENSIONS = {'.jpg', '.jpeg', '.png', '.tiff', '.tif', '.bmp', '.webp'}
    CSV_EXTENSIONS = {'.csv'}
    XLSX_EXTENSIONS = {'.xlsx', '.xlsm'}
    SUPPORTED_EXTENSIONS = frozenset(PDF_EXTENSIONS | IMAGE_EXTENSIONS | CSV_EXTENSIONS | XLSX_EXTENSIONS)

    MIME_TYPES = {
        'application/pdf': 'pdf',
        'text/csv': Modality.CSV,
        'application/vnd.openxmlformats-officedocument.spreadsheetml.sheet': Modality.XLSX,
    }

    def __init__(
        self,
        recognizer: Optional[MultiPassRecognizer] = None,
        max_bytes: Optional[int] = None,
        pdf_processor: Optional[PDFProcessor] = None,
        image_processor: Optional[ImageProcessor] = None,
        tabular_reader: Optional[TabularReader] = None
    ) -> None:
        self.recognizer = recognizer or MultiPassRecognizer(RecognitionPool())
        self.max_bytes = max_bytes if max_bytes is not None else get_config(
            "acquisition.max_bytes", 20 * 1024 * 1024
        )
        self.pdf_processor = pdf_processor or PDFProcessor()
        self.image_processor = image_processor or ImageProcessor()
        self.tabular_reader = tabular_reader or TabularReader()

    @property
    def supported(self) -> List[str]:
        return sorted(self.SUPPORTED_EXTENSIONS)

    def acquire(self, document: Document, trace: TraceRecorder) -> AcquiredDocument:
        """
        Acquire the text of a document.

        Args:
            document: Payload and hints.
            trace: Recorder of the current call.

        Returns:
            AcquiredDocument; success is False when acquisition failed.
        """
        modality: Optional[Modality] = None
        try:
            with trace.step("download", source=document.source_hint) as metrics:
                metrics['bytes'] = document.size
                self._check_size(document)

            with trace.step("classify") as metrics:
                modality, layer = self._classify(document)
                metrics['modality'] = modality.value

            if modality.is_tabular:
                return self._acquire_tabular(document, modality, trace)
            if modality is Modality.TEXT_PDF:
                return self._acquire_text_pdf(layer, trace)
            if modality is Modality.IMAGE_PDF:
                with trace.step("pdf_render") as metrics:
                    images = [
                        self.image_processor.prepare(page)
                        for page in self.pdf_processor.render_pages(document.content, document.source_hint)
                    ]
                    metrics['pages'] = len(images)
                return self._acquire_ocr(images, modality, trace)

            with trace.step("image_load") as metrics:
                image = self.image_processor.load(document.content, document.source_hint)
                metrics['size'] = list(image.size)
            return self._acquire_ocr([image], modality, trace)

        except Exception as e:
            logger.error(f"Acquisition failed for '{document.source_hint}': {e}")
            return AcquiredDocument(modality=modality, success=False, error=str(e))

    def _check_size(self, document: Document) -> None:
        if document.size == 0:
            raise EmptyDocumentError(document.source_hint)
        if document.size > self.max_bytes:
            raise DocumentTooLargeError(document.size, self.max_bytes)
        logger.debug(f"Received {format_file_size(document.size)} for '{document.source_hint}'")

    def _classify(self, document: Document) -> Tuple[Modality, Optional[TextLayer]]:
        """
        Decide the modality from magic bytes, then the name or MIME hint.

        PDFs are checked for a text layer here; the layer is reused by the
        text-bearing branch.

        Raises:
            UnsupportedModalityError: If no modality fits.
            CorruptedDocumentError: If a PDF cannot be opened.
        """
        content = document.content
        hint = (document.source_hint or "").strip().lower()
        extension = get_file_extension(hint) if '/' not in hint else ''
        declared = self.MIME_TYPES.get(hint)

        if content.startswith(PDF_MAGIC) or extension in self.PDF_EXTENSIONS or declared == 'pdf':
            layer = self.pdf_processor.extract_text_layer(content, document.source_hint)
            return (Modality.TEXT_PDF if layer.has_text else Modality.IMAGE_PDF), layer

        if content.startswith(ZIP_MAGIC) or extension in self.XLSX_EXTENSIONS or declared is Modality.XLSX:
            return Modality.XLSX, None

        if extension in self.CSV_EXTENSIONS or declared is Modality.CSV:
            return Modality.CSV, None

        if extension in self.IMAGE_EXTENSIONS or hint.startswith('image/') or is_image(content):
            return Modality.RASTER_IMAGE, None

        raise UnsupportedModalityError(document.source_hint or extension, self.supported)

    def _acquire_tabular(self, document: Document, modality: Modality, trace: TraceRecorder) -> AcquiredDocument:
        with trace.step("tabular_read", modality=modality.value) as metrics:
            if modality is Modality.XLSX:
                rows = self.tabular_reader.read_xlsx(document.content, document.source_hint)
            else:
                rows = self.tabular_reader.read_csv(document.content, document.source_hint)
            text = self.tabular_reader.serialize(rows)
            metrics['rows'] = len(rows)
            metrics['text_length'] = len(text)
            if not rows:
                metrics['status'] = StepStatus.NO_MATCH

        return AcquiredDocument(modality=modality, text=text, rows=rows)

    def _acquire_text_pdf(self, layer: TextLayer, trace: TraceRecorder) -> AcquiredDocument:
        with trace.step("pdf_text") as metrics:
            metrics['pages'] = len(layer.pages)
            metrics['tokens'] = sum(len(page.tokens) for page in layer.pages)
            metrics['text_length'] = len(layer.text)

        return AcquiredDocument(modality=Modality.TEXT_PDF, text=layer.text, pages=list(layer.pages))

    def _acquire_ocr(self, images: List[Image.Image], modality: Modality, trace: TraceRecorder) -> AcquiredDocument:
        """Multi-pass recognition page by page; pages are joined by newlines."""
        texts = []
        for index, image in enumerate(images):
            with trace.step("ocr", page=index) as metrics:
                result = self.recognizer.recognize(image)
                metrics.update(result.to_dict())
                if result.all_failed:
                    metrics['status'] = StepStatus.FAILED
                elif not result.text:
                    metrics['status'] = StepStatus.NO_MATCH
                elif result.too_blurry or result.failed_passes:
                    metrics['status'] = StepStatus.PARTIAL
            texts.append(result.text)

        text = '\n'.join(t for t in texts if t)
        logger.info(f"OCR produced {len(text)} characters over {len(images)} page(s)")
        return AcquiredDocument(modality=modality, text=text)
