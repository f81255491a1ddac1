"""
Tabular Reader Module.

Reads CSV and XLSX payloads into cell rows.

CSV text is decoded with the first configured encoding that works and
its delimiter is read from the header line among ";", "," and tab. XLSX workbooks are read
with openpyxl (cached values, first/active sheet).

Author: ML Engineering Team
"""

import csv
import io
from typing import Any, List, Optional

import openpyxl

from config import get_config
from field_extraction.utils.exceptions import CorruptedDocumentError
from field_extraction.utils.logger import get_logger

logger = get_logger(__name__)

Rows = List[List[Any]]


class SemicolonDialect(csv.excel):
    """Default dialect of French spreadsheet exports."""
    delimiter = ';'


class TabularReader:
    """
    Reader for spreadsheet and CSV payloads.

    Attributes:
        delimiters: Candidate CSV delimiters.
        encodings: Text encodings tried in order.

    Example:
        >>> reader = TabularReader()
        >>> rows = reader.read_csv(b"HT;TTC\\n100;120\\n")
        >>> rows[1]
        ['100', '120']
    """

    def __init__(self) -> None:
        self.delimiters = get_config("acquisition.tabular.delimiters", ";,\t")
        self.encodings = get_config("acquisition.tabular.encodings", ["utf-8-sig", "cp1252", "latin-1"])

    def read_csv(self, content: bytes, source_hint: str = "csv") -> Rows:
        """
        Parse CSV bytes into rows of strings.

        Raises:
            CorruptedDocumentError: If the bytes cannot be decoded.
        """
        text = self._decode(content)
        if text is None:
            raise CorruptedDocumentError(source_hint, "undecodable CSV text")

        delimiter = self._detect_delimiter(text)
        rows = [row for row in csv.reader(io.StringIO(text), SemicolonDialect, delimiter=delimiter)]
        logger.debug(f"Read {len(rows)} CSV rows (delimiter={delimiter!r})")
        return rows

    def read_xlsx(self, content: bytes, source_hint: str = "xlsx") -> Rows:
        """
        Read the active sheet of an XLSX workbook.

        Raises:
            CorruptedDocumentError: If openpyxl cannot open the workbook.
        """
        try:
            workbook = openpyxl.load_workbook(io.BytesIO(content), read_only=True, data_only=True)
        except Exception as e:
            raise CorruptedDocumentError(source_hint, f"unreadable workbook: {e}")

        try:
            sheet = workbook.active
            title = sheet.title
            rows = [list(row) for row in sheet.iter_rows(values_only=True)]
        finally:
            workbook.close()

        logger.debug(f"Read {len(rows)} XLSX rows from sheet '{title}'")
        return rows

    def _detect_delimiter(self, text: str) -> str:
        """
        Most frequent delimiter of the first non-empty line.

        The header line is used because data lines carry decimal commas.
        Ties go to the earlier configured delimiter.
        """
        first_line = next((line for line in text.splitlines() if line.strip()), "")
        counts = [(first_line.count(d), -i, d) for i, d in enumerate(self.delimiters)]
        count, _, delimiter = max(counts)
        return delimiter if count else SemicolonDialect.delimiter

    def _decode(self, content: bytes) -> Optional[str]:
        for encoding in self.encodings:
            try:
                return content.decode(encoding)
            except UnicodeDecodeError:
                continue
        return None

    @staticmethod
    def serialize(rows: Rows) -> str:
        """Plain-text rendering of rows, used for the trace only."""
        lines = []
        for row in rows:
            lines.append(';'.join('' if cell is None else str(cell) for cell in row))
        return '\n'.join(lines)
