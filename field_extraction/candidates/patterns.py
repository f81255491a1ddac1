"""
French Pattern Bank.

Regular expressions for French invoices, expense receipts and public
tender notices. Each field pattern exposes the value in group 1.

Label patterns (LABELS) match only the label text; they are shared by
the layout and proximity generators.

Author: ML Engineering Team
"""

import re
from typing import Dict, Iterator, List, Pattern

from .models import FieldName

FLAGS = re.IGNORECASE | re.UNICODE

# French amount: "1 234,56", "1.234,56", "1234.56", "1234"
AMOUNT = (
    r'(?:\d{1,3}(?:[ \u00a0\u202f\u2009.]\d{3})+|\d+)'
    r'(?:[.,]\d{1,2})?(?!\d)'
)

# Amount followed by a currency marker, used in recap blocks
CURRENCY_AMOUNT = re.compile(
    r'(?<![\d.,])'
    r'((?:\d{1,3}(?:[ \u00a0\u202f\u2009.]\d{3})+|\d+)[.,]\d{2})'
    r'\s*(?:€|EUR\b)',
    FLAGS
)

PERCENT = r'\d{1,2}(?:[.,]\d{1,2})?'

DATE = r'\d{1,2}[/-]\d{1,2}[/-](?:\d{4}|\d{2})(?!\d)'

SEP = r'\s*[:\-]?\s*'

HT_LABEL = r'(?:total|montant|base|sous[\s-]?total)?\s*h\.?\s?t\.?\b'
TTC_LABEL = r'(?:total|montant)?\s*t\.?\s?t\.?\s?c\.?\b'
TVA_LABEL = r'\bt\.?v\.?a\.?(?!\s*intra)'

# Invoice and expense fields
PATTERNS: Dict[FieldName, Pattern] = {
    FieldName.HT: re.compile(
        r'\b' + HT_LABEL + SEP + r'(' + AMOUNT + r')(?!\s*%)', FLAGS
    ),
    FieldName.TTC: re.compile(
        r'\b' + TTC_LABEL + SEP + r'(' + AMOUNT + r')(?!\s*%)', FLAGS
    ),
    FieldName.TVA_PCT: re.compile(
        TVA_LABEL + r'\s*(?:à|a|de)?' + SEP + r'(' + PERCENT + r')\s*%', FLAGS
    ),
    FieldName.TVA_AMOUNT: re.compile(
        TVA_LABEL + r'(?:\s*(?:à|a|de)?\s*' + PERCENT + r'\s*%)?' + SEP
        + r'(' + AMOUNT + r')(?!\s*%)(?![.,]?\d)', FLAGS
    ),
    FieldName.NET_TO_PAY: re.compile(
        r'net\s*(?:à|a)\s*payer' + SEP + r'(' + AMOUNT + r')', FLAGS
    ),
    FieldName.SIRET: re.compile(r'\b(\d{3}\s?\d{3}\s?\d{3}\s?\d{5})\b'),
    FieldName.SIREN: re.compile(r'\bsiren\b' + SEP + r'(\d{3}\s?\d{3}\s?\d{3})\b', FLAGS),
    FieldName.INVOICE_NUMBER: re.compile(
        r'(?:facture|invoice)\s*(?:n[°o]\.?|num(?:éro|ero)?\.?|#)?' + SEP
        + r'([A-Z0-9][A-Z0-9\-/_.]{2,})', FLAGS
    ),
    FieldName.DOCUMENT_DATE: re.compile(r'(?<!\d)(' + DATE + r')'),
    FieldName.CURRENCY: re.compile(r'(€|\bEUR\b|\beuros?\b)', FLAGS),
}

# Supplier: legal form followed by a capitalised name on the same line
SUPPLIER = re.compile(
    r'\b(?i:société|societe|entreprise|sarl|sasu|sas|eurl|sa)\s+'
    r"([A-ZÀ-Ý][A-Za-zÀ-ÿ0-9&'\-]*(?:[ \t]+[A-ZÀ-Ý0-9&][A-Za-zÀ-ÿ0-9&'\-]*)*)"
)

SUPPLIER_BLACKLIST = frozenset(
    ['france', 'avenue', 'rue', 'boulevard', 'chemin', 'bis', 'ter', 'quartier', 'cedex']
)

# Heading used by the supplier fallback
INVOICE_HEADING = re.compile(r'^\s*facture\b', FLAGS | re.MULTILINE)

# Public tender notice fields
TENDER_PATTERNS: Dict[FieldName, Pattern] = {
    FieldName.TENDER_DEADLINE: re.compile(
        r'(?:date\s*limite|date\s*de\s*remise|remise\s*des\s*offres)[^\n]{0,80}?(' + DATE + r')',
        FLAGS
    ),
    FieldName.TENDER_BUDGET: re.compile(
        r'(?:montant|budget|estimation)(?:\s*(?:estimé|estime|prévisionnel|previsionnel)e?)?'
        r'[^\n\d]{0,40}?(' + AMOUNT + r')(?!\s*%)', FLAGS
    ),
    FieldName.TENDER_REFERENCE: re.compile(
        r'(?:réf(?:érence)?|ref(?:erence)?)\.?\s*(?:de\s+l[\'’]avis|du\s+marché|du\s+marche)?'
        + SEP + r'([A-Z0-9][A-Z0-9\-/_.]{2,})', FLAGS
    ),
    FieldName.TENDER_AUTHORITY: re.compile(
        r'(?:organisme|acheteur|pouvoir\s+adjudicateur|ma[iî]tre\s+d[\'’]ouvrage)'
        + SEP + r'([^\n]{3,120})', FLAGS
    ),
}

# Postal code (metropolitan departments 01-95) followed by a city name
POSTAL_CITY = re.compile(
    r"\b((?:0[1-9]|[1-8]\d|9[0-5])\d{3})[ \t]+([A-Za-zÀ-ÿ][A-Za-zÀ-ÿ'\-]*(?:[ \t]+[A-Za-zÀ-ÿ][A-Za-zÀ-ÿ'\-]*)?)"
)

# Labels for layout and proximity pairing
LABELS: Dict[FieldName, Pattern] = {
    FieldName.HT: re.compile(
        r'\b(?:total|montant|base|sous[\s-]?total)\s*h\.?\s?t\.?\b|\btotal\s+hors\s+tax(?:es?)?\b',
        FLAGS
    ),
    FieldName.TTC: re.compile(r'\b(?:total|montant)\s*t\.?\s?t\.?\s?c\.?\b', FLAGS),
    FieldName.TVA_AMOUNT: re.compile(
        r'\b(?:total|montant)\s+t\.?v\.?a\.?\b|' + TVA_LABEL + r'(?:\s*(?:à|a|de)?\s*' + PERCENT + r'\s*%)?',
        FLAGS
    ),
    FieldName.NET_TO_PAY: re.compile(r'\bnet\s*(?:à|a)\s*payer\b', FLAGS),
}

# Rate labels carry the percentage themselves ("TVA 20 %")
RATE_LABEL = re.compile(TVA_LABEL + r'\s*(?:à|a|de)?\s*(' + PERCENT + r')\s*%', FLAGS)

# Layout-only labels, paired with a percentage or date token
LAYOUT_LABELS: Dict[FieldName, Pattern] = {
    FieldName.TVA_PCT: re.compile(r'\b(?:taux(?:\s+de)?\s+)?t\.?v\.?a\.?(?!\s*intra)|\btaux\b', FLAGS),
    FieldName.DOCUMENT_DATE: re.compile(
        r"\bdate(?:\s+(?:de\s+)?(?:facture|facturation|d['’]émission|emission|émission))?\b"
        r"(?!\s*(?:limite|d['’]échéance|de\s+remise|d['’]echeance))",
        FLAGS
    ),
    FieldName.TENDER_DEADLINE: re.compile(r'\bdate\s*limite\b|\bdate\s*de\s*remise\b', FLAGS),
}


def find_all(pattern: Pattern, text: str) -> List[re.Match]:
    """All non-overlapping matches, in document order."""
    return list(pattern.finditer(text))


def iter_values(pattern: Pattern, text: str) -> Iterator[str]:
    """Group-1 values of all matches, in document order."""
    for match in pattern.finditer(text):
        yield match.group(1)
