"""
Post-Processing Module for the Field Extraction Engine.

This module provides functionality for:
    - Number, percentage and date normalization (French formats)
    - HT / VAT / TTC consistency checking
    - Arithmetic repair of the arbitrated field set

Author: ML Engineering Team
"""

from .normalizers import normalize_date, normalize_number, normalize_percentage
from .validators import ConsistencyResult, TotalsValidator, check_totals, evaluate_totals
from .processor import ArithmeticRepairer, RepairOutcome

__all__ = [
    'normalize_number',
    'normalize_percentage',
    'normalize_date',
    'check_totals',
    'evaluate_totals',
    'ConsistencyResult',
    'TotalsValidator',
    'ArithmeticRepairer',
    'RepairOutcome',
]
