"""
Utility Module for the Field Extraction Engine.

This module provides common utilities used across all other modules:
    - Logging configuration and per-document log context
    - Exception hierarchy
    - Common helpers
"""

from .logger import setup_logger, get_logger, document_context
from .helpers import ensure_directory, get_file_extension, format_file_size

__all__ = [
    'setup_logger',
    'get_logger',
    'document_context',
    'ensure_directory',
    'get_file_extension',
    'format_file_size'
]
