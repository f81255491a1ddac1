"""
Document Data Model.

Input side of the engine: the caller's payload, the modality it was
classified as, and what acquisition produced from it (raw text,
positioned tokens for text-bearing PDFs, rows for tabular files).

Author: ML Engineering Team
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, List, Optional, Tuple


class Modality(Enum):
    """How a document's text is acquired."""
    TEXT_PDF = "text-pdf"
    IMAGE_PDF = "image-pdf"
    RASTER_IMAGE = "raster-image"
    CSV = "csv"
    XLSX = "xlsx"

    @property
    def is_tabular(self) -> bool:
        return self in (Modality.CSV, Modality.XLSX)


class ModuleHint(Enum):
    """Business module the caller extracts for."""
    INVOICE = "invoice"
    EXPENSE = "expense"
    TENDER = "tender"
    TABLE = "table"

    @classmethod
    def parse(cls, value: Any) -> 'ModuleHint':
        """Accept an enum member or its string value; default to invoice."""
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            return cls.INVOICE


@dataclass(frozen=True)
class Document:
    """
    Opaque payload of one extraction call.

    Attributes:
        content: Raw bytes.
        source_hint: File name or MIME type given by the caller.
        module: Module hint.
    """
    content: bytes
    source_hint: str = ""
    module: ModuleHint = ModuleHint.INVOICE

    @property
    def size(self) -> int:
        return len(self.content)


@dataclass(frozen=True)
class Token:
    """
    A positioned word on a page.

    Attributes:
        text: Word text.
        page_index: Zero-based page number.
        bbox: (x0, top, x1, bottom) in PDF points, origin top-left.
    """
    text: str
    page_index: int
    bbox: Tuple[float, float, float, float]

    @property
    def x0(self) -> float:
        return self.bbox[0]

    @property
    def top(self) -> float:
        return self.bbox[1]

    @property
    def x1(self) -> float:
        return self.bbox[2]

    @property
    def bottom(self) -> float:
        return self.bbox[3]

    @property
    def height(self) -> float:
        return self.bbox[3] - self.bbox[1]

    @property
    def center_y(self) -> float:
        return (self.bbox[1] + self.bbox[3]) / 2


@dataclass(frozen=True)
class Page:
    """Ordered positioned tokens of one page."""
    index: int
    tokens: Tuple[Token, ...] = ()
    width: float = 0.0
    height: float = 0.0


@dataclass
class AcquiredDocument:
    """
    Output of the acquisition router.

    Attributes:
        modality: Classified modality, None when classification failed.
        text: Raw text (serialized rows for tabular input).
        pages: Positioned pages, text-bearing PDFs only.
        rows: Cell rows, tabular input only.
        success: False when acquisition failed.
        error: Failure reason.
    """
    modality: Optional[Modality] = None
    text: str = ""
    pages: List[Page] = field(default_factory=list)
    rows: List[List[Any]] = field(default_factory=list)
    success: bool = True
    error: Optional[str] = None

    @property
    def has_layout(self) -> bool:
        return any(page.tokens for page in self.pages)
