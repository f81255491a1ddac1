"""
Arbitration Module for the Field Extraction Engine.

    - Voting: one authoritative candidate per field
    - Confidence: additive, bounded score of the final field set

Author: ML Engineering Team
"""

from .confidence import ConfidenceScorer
from .voting import Arbitrator, select

__all__ = ['Arbitrator', 'ConfidenceScorer', 'select']
