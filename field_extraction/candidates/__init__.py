"""
Candidate Generation Module for the Field Extraction Engine.

This module provides the independent candidate generators:
    - Pattern: one pattern per field over the raw text
    - Layout: spatial label/value pairing on text-bearing PDFs
    - Proximity: recap-block pairing with token consumption
    - Tabular: HT/TTC inference from spreadsheet rows
    - Template: caller-supplied supplier anchors, chosen by SIRET or name

Every generator returns Candidate objects; arbitration chooses among them.

Author: ML Engineering Team
"""

from .layout_generator import LayoutGenerator
from .models import Candidate, CandidatePool, FieldName, Source, ValueKind
from .pattern_generator import PatternGenerator
from .proximity_generator import ProximityGenerator
from .tabular_inference import TabularInference
from .template_generator import SupplierTemplate, TemplateGenerator

__all__ = [
    'Candidate',
    'CandidatePool',
    'FieldName',
    'Source',
    'ValueKind',
    'PatternGenerator',
    'LayoutGenerator',
    'ProximityGenerator',
    'TabularInference',
    'TemplateGenerator',
    'SupplierTemplate',
]
