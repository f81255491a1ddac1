"""
Shared fixtures for the extraction engine tests.

Recognition runs against fake backends so that no Tesseract binary is
needed; documents are built in memory with PyMuPDF, openpyxl and Pillow.
"""

import io
from typing import Callable, Dict, List, Sequence, Union

import fitz
import openpyxl
import pytest
from PIL import Image

from field_extraction.ocr_engine import MultiPassRecognizer, RecognitionPool

SUMMARY_TEXT = "Total HT 1 000,00 €\nTVA 20 %\nTotal TTC 1 200,00 €"


class FakeBackend:
    """Recognition backend returning canned text per layout variant."""

    def __init__(self, outputs: Dict[str, Union[str, Exception]]):
        self.outputs = outputs
        self.variant = None
        self.calls: List[str] = []

    def configure(self, variant: str) -> None:
        self.variant = variant

    def recognize(self, image) -> str:
        self.calls.append(self.variant)
        result = self.outputs.get(self.variant, "")
        if isinstance(result, Exception):
            raise result
        return result


@pytest.fixture
def backend_factory() -> Callable[[Dict[str, Union[str, Exception]]], Callable[[], FakeBackend]]:
    """Build a factory producing FakeBackends that share one output table."""
    def make(outputs):
        created = []

        def factory():
            backend = FakeBackend(outputs)
            created.append(backend)
            return backend

        factory.created = created
        return factory

    return make


@pytest.fixture
def make_recognizer(backend_factory):
    """Multi-pass recognizer over a fake pool."""
    def make(outputs, **kwargs):
        pool = RecognitionPool(size=1, factory=backend_factory(outputs), timeout=1.0)
        return MultiPassRecognizer(pool, **kwargs)

    return make


@pytest.fixture
def make_pdf() -> Callable[[Sequence[str]], bytes]:
    """PDF with one text line per entry on a single page; no lines gives an image-only page."""
    def make(lines=()):
        doc = fitz.open()
        page = doc.new_page()
        for index, line in enumerate(lines):
            page.insert_text((72, 72 + index * 20), line, fontsize=11)
        data = doc.tobytes()
        doc.close()
        return data

    return make


@pytest.fixture
def make_xlsx() -> Callable[[Sequence[Sequence]], bytes]:
    def make(rows):
        workbook = openpyxl.Workbook()
        sheet = workbook.active
        for row in rows:
            sheet.append(list(row))
        buffer = io.BytesIO()
        workbook.save(buffer)
        return buffer.getvalue()

    return make


@pytest.fixture
def png_bytes() -> bytes:
    buffer = io.BytesIO()
    Image.new("RGB", (200, 100), "white").save(buffer, format="PNG")
    return buffer.getvalue()


@pytest.fixture
def summary_text() -> str:
    """Recap block of a simple invoice, as recognized text."""
    return SUMMARY_TEXT
