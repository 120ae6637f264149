"""Barcode extraction path.

This module reads the 2D barcode printed on the back of ID cards and
driver's licenses and turns its payload into typed fields.

Core Components:
    - preprocessor: Pixel transforms (upscale, contrast, sharpen, ...)
    - primitive: Pluggable decode primitive (zxing-cpp by default)
    - decoder: Multi-strategy decode loop with per-attempt deadlines
    - aamva_parser: AAMVA tag-line field parser with regex fallback
    - scanner: Decode + parse + self-confidence as an ExtractionResult

Example:
    >>> from src.barcode import BarcodeDecoder, BarcodeScanner, ZxingDecodePrimitive
    >>> scanner = BarcodeScanner(BarcodeDecoder(ZxingDecodePrimitive()))
    >>> result = scanner.scan(image)
"""

from .aamva_parser import (
    AAMVA_FIELD_CODES,
    AAMVAFieldParser,
    PayloadFormat,
    detect_format,
    parse_generic,
)
from .config_loader import (
    BarcodeModuleConfig,
    BudgetConfig,
    PreprocessingConfig,
    StrategyConfig,
)
from .decoder import NO_BARCODE_ERROR, BarcodeDecoder
from .preprocessor import ImagePreprocessor
from .primitive import (
    BarcodeDecodePrimitive,
    PyzbarDecodePrimitive,
    ZxingDecodePrimitive,
    create_primitive,
)
from .scanner import BarcodeScanner, calculate_barcode_confidence
from .types import (
    AttemptStatus,
    BarcodeDecodeReport,
    BarcodeFormat,
    BarcodeReader,
    DecodeOutcome,
    DecodeStatus,
    PreprocessKind,
    StrategyAttempt,
)

__all__ = [
    # Types
    "AttemptStatus",
    "BarcodeDecodeReport",
    "BarcodeFormat",
    "BarcodeReader",
    "DecodeOutcome",
    "DecodeStatus",
    "PreprocessKind",
    "StrategyAttempt",
    # Configuration
    "BarcodeModuleConfig",
    "BudgetConfig",
    "PreprocessingConfig",
    "StrategyConfig",
    # Components
    "ImagePreprocessor",
    "BarcodeDecodePrimitive",
    "PyzbarDecodePrimitive",
    "ZxingDecodePrimitive",
    "create_primitive",
    "BarcodeDecoder",
    "NO_BARCODE_ERROR",
    "AAMVAFieldParser",
    "AAMVA_FIELD_CODES",
    "PayloadFormat",
    "detect_format",
    "parse_generic",
    "BarcodeScanner",
    "calculate_barcode_confidence",
]
