"""
Tabular Inference Module.

Reads HT / TVA / TTC directly from spreadsheet or CSV rows:
    - Row semantics: a row labelled "Total HT", "TVA 20 %", "Total TTC"
      or "Net à payer" gives its last numeric cell
    - Column semantics: below a detected header row, HT / TVA / TTC
      columns are summed, a rate column with a single value gives the
      VAT rate, and a line-total (or quantity x unit price) column gives
      HT when no HT column exists

Explicit total rows win over column sums.

Author: ML Engineering Team
"""

import re
from typing import Any, Dict, List, Optional, Sequence

from config import get_config
from field_extraction.postprocessor.normalizers import normalize_number, normalize_percentage
from field_extraction.utils.helpers import round_amount
from field_extraction.utils.logger import get_logger
from .models import Candidate, FieldName, Source
from .patterns import LABELS, RATE_LABEL

logger = get_logger(__name__)

Row = Sequence[Any]

# Checked in order; the first matching role wins for a header cell
HEADER_ROLES = [
    ('unit_price', re.compile(r'\bp\.?\s?u\.?\b|prix\s+unit', re.IGNORECASE)),
    ('qty', re.compile(r'\bq(?:t[ée]|uantit[ée])s?\b', re.IGNORECASE)),
    ('label', re.compile(r'd[ée]signation|libell[ée]|description|article', re.IGNORECASE)),
    ('rate', re.compile(r'\btaux\b|%', re.IGNORECASE)),
    ('ttc', re.compile(r'\bt\.?\s?t\.?\s?c\.?\b', re.IGNORECASE)),
    ('ht', re.compile(r'\bh\.?\s?t\.?\b|hors\s+tax', re.IGNORECASE)),
    ('tva', re.compile(r'\bt\.?v\.?a\.?\b', re.IGNORECASE)),
    ('total', re.compile(r'\btotal\b|\bmontant\b', re.IGNORECASE)),
]

AMOUNT_ROLES = ('ht', 'ttc', 'tva', 'total')

TOTAL_ROW = re.compile(r'\btotal\b|\bsous[\s-]?total\b|net\s*(?:à|a)\s*payer', re.IGNORECASE)

ROW_LABEL_FIELDS = (FieldName.HT, FieldName.TTC, FieldName.NET_TO_PAY, FieldName.TVA_AMOUNT)

COLUMN_FIELDS = {'ht': FieldName.HT, 'ttc': FieldName.TTC, 'tva': FieldName.TVA_AMOUNT}


def _text_cells(row: Row) -> List[str]:
    return [str(cell).strip() for cell in row if isinstance(cell, str) and cell.strip()]


def _numbers(row: Row) -> List[float]:
    values = []
    for cell in row:
        value = normalize_number(cell) if cell not in (None, "") else None
        if value is not None:
            values.append(value)
    return values


def _is_summary_row(row: Row) -> bool:
    """Total, VAT or net-to-pay rows are not line items."""
    for cell in _text_cells(row):
        if TOTAL_ROW.search(cell) or RATE_LABEL.search(cell):
            return True
        if any(LABELS[f].search(cell) for f in ROW_LABEL_FIELDS):
            return True
    return False


def header_roles(row: Row) -> Dict[str, int]:
    """Map column roles to indices for a candidate header row."""
    roles: Dict[str, int] = {}
    for index, cell in enumerate(row):
        if not isinstance(cell, str) or normalize_number(cell) is not None:
            continue
        for role, pattern in HEADER_ROLES:
            if pattern.search(cell):
                roles.setdefault(role, index)
                break
    return roles


class TabularInference:
    """
    Direct HT / TTC inference from rows.

    Attributes:
        score: Score of values read from explicit rows or HT/TTC columns.
        line_total_score: Score of HT computed from line totals.
        header_scan_rows: How many leading rows may hold the header.

    Example:
        >>> rows = [["Désignation", "Total HT", "TVA", "Total TTC"],
        ...         ["Prestation", "1000,00", "200,00", "1200,00"]]
        >>> {c.field.value: c.value for c in TabularInference().generate(rows)}
        {'ht': 1000.0, 'ttc': 1200.0, 'tva_amount': 200.0}
    """

    def __init__(
        self,
        score: Optional[float] = None,
        line_total_score: Optional[float] = None,
        header_scan_rows: Optional[int] = None
    ) -> None:
        self.score = score if score is not None else get_config("candidates.tabular.score", 0.8)
        self.line_total_score = line_total_score if line_total_score is not None else get_config(
            "candidates.tabular.line_total_score", 0.65
        )
        self.header_scan_rows = header_scan_rows if header_scan_rows is not None else get_config(
            "acquisition.tabular.header_scan_rows", 10
        )

    def generate(self, rows: Sequence[Row]) -> List[Candidate]:
        """
        Infer candidates from rows.

        Args:
            rows: Cell rows; cells are strings or numbers.

        Returns:
            At most one candidate per field.
        """
        rows = [row for row in rows if any(cell not in (None, "") for cell in row)]
        if not rows:
            return []

        chosen: Dict[FieldName, Candidate] = {}
        for candidate in self._from_columns(rows):
            chosen[candidate.field] = candidate
        for candidate in self._from_total_rows(rows):
            chosen[candidate.field] = candidate

        logger.debug(f"Tabular inference: {len(chosen)} candidates from {len(rows)} rows")
        return list(chosen.values())

    def _from_total_rows(self, rows: Sequence[Row]) -> List[Candidate]:
        """Rows whose label cell names a total; the last such row wins."""
        found: Dict[FieldName, Candidate] = {}
        for row in rows:
            numbers = _numbers(row)
            if not numbers:
                continue
            for cell in _text_cells(row):
                rate = RATE_LABEL.search(cell)
                if rate:
                    pct = normalize_percentage(rate.group(1))
                    if pct is not None and 0 <= pct <= 100:
                        found[FieldName.TVA_PCT] = Candidate(
                            FieldName.TVA_PCT, pct, self.score, Source.TABULAR, cell
                        )
                field_name = next(
                    (f for f in ROW_LABEL_FIELDS if LABELS[f].search(cell)), None
                )
                if field_name is not None:
                    found[field_name] = Candidate(
                        field_name, numbers[-1], self.score, Source.TABULAR, cell
                    )
                    break
        return list(found.values())

    def _find_header(self, rows: Sequence[Row]) -> Optional[int]:
        """Index of the leading row with the most amount-column roles."""
        best_index, best_count = None, 0
        for index, row in enumerate(rows[:self.header_scan_rows]):
            roles = header_roles(row)
            count = sum(1 for role in roles if role in AMOUNT_ROLES or role == 'unit_price')
            if count > best_count:
                best_index, best_count = index, count
        return best_index

    def _from_columns(self, rows: Sequence[Row]) -> List[Candidate]:
        header_index = self._find_header(rows)
        if header_index is None:
            return []

        roles = header_roles(rows[header_index])
        body = [row for row in rows[header_index + 1:] if not _is_summary_row(row)]
        if not body:
            return []

        candidates = []
        for role, field_name in COLUMN_FIELDS.items():
            total = self._column_sum(body, roles.get(role))
            if total is not None:
                candidates.append(Candidate(field_name, total, self.score, Source.TABULAR, role))

        rate_values = {
            value for value in (self._cell_rate(row, roles.get('rate')) for row in body)
            if value is not None
        }
        if len(rate_values) == 1:
            candidates.append(
                Candidate(FieldName.TVA_PCT, rate_values.pop(), self.score, Source.TABULAR, 'rate')
            )

        if 'ht' not in roles:
            line_total = self._column_sum(body, roles.get('total'))
            if line_total is None and 'qty' in roles and 'unit_price' in roles:
                line_total = self._products(body, roles['qty'], roles['unit_price'])
            if line_total is not None:
                candidates.append(Candidate(
                    FieldName.HT, line_total, self.line_total_score, Source.TABULAR, 'line_total'
                ))

        return candidates

    @staticmethod
    def _cell(row: Row, index: Optional[int]) -> Any:
        if index is None or index >= len(row):
            return None
        return row[index]

    def _column_sum(self, body: Sequence[Row], index: Optional[int]) -> Optional[float]:
        if index is None:
            return None
        values = [normalize_number(self._cell(row, index)) for row in body]
        values = [v for v in values if v is not None]
        return round_amount(sum(values)) if values else None

    def _cell_rate(self, row: Row, index: Optional[int]) -> Optional[float]:
        cell = self._cell(row, index)
        if cell in (None, ""):
            return None
        value = normalize_percentage(cell)
        if value is not None and 0 < value < 1:
            # spreadsheets store 20 % as 0.2
            value = value * 100
        if value is None or not 0 <= value <= 100:
            return None
        return round(value, 2)

    def _products(self, body: Sequence[Row], qty_index: int, price_index: int) -> Optional[float]:
        total, seen = 0.0, False
        for row in body:
            qty = normalize_number(self._cell(row, qty_index))
            price = normalize_number(self._cell(row, price_index))
            if qty is not None and price is not None:
                total += qty * price
                seen = True
        return round_amount(total) if seen else None
