"""
Acquisition Module for the Field Extraction Engine.

This module turns raw payloads into text:
    - Modality classification (text PDF, image PDF, raster image, CSV, XLSX)
    - PDF text layer and word coordinates, page rendering
    - Image preparation for recognition
    - Spreadsheet and CSV reading

Author: ML Engineering Team
"""

from .image_processor import ImageProcessor
from .pdf_processor import PDFProcessor, TextLayer
from .router import AcquisitionRouter
from .tabular_reader import TabularReader

__all__ = ['AcquisitionRouter', 'ImageProcessor', 'PDFProcessor', 'TextLayer', 'TabularReader']
