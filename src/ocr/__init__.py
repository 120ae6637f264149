"""Optical-text extraction path.

This module wraps external OCR providers behind a single adapter protocol and
converts their failures into failed extraction results.

Core Components:
    - adapter: OCRExtractionAdapter protocol and OCRExtractionService boundary
    - textract_adapter: AWS Textract AnalyzeID provider
    - tesseract_adapter: Local Tesseract provider
    - factory: Adapter selection from configuration

Example:
    >>> from src.ocr import create_service
    >>> service = create_service()
    >>> result = service.scan(image)
"""

from .adapter import OCRExtractionAdapter, OCRExtractionService
from .config_loader import OCRModuleConfig, TesseractConfig, TextractConfig
from .factory import create_adapter, create_service
from .tesseract_adapter import TesseractAdapter, parse_ocr_text
from .textract_adapter import TextractAnalyzeIDAdapter, parse_analyze_id_response
from .types import OCRExtraction, OCRProvider

__all__ = [
    # Types
    "OCRExtraction",
    "OCRProvider",
    # Configuration
    "OCRModuleConfig",
    "TextractConfig",
    "TesseractConfig",
    # Components
    "OCRExtractionAdapter",
    "OCRExtractionService",
    "TextractAnalyzeIDAdapter",
    "parse_analyze_id_response",
    "TesseractAdapter",
    "parse_ocr_text",
    "create_adapter",
    "create_service",
]
