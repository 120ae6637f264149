"""
Common types and utilities shared across all modules.

This module provides the data types, deadlines and exceptions used by the
barcode path, the OCR path and the reconciliation stage.
"""

from src.common.deadline import Clock, Deadline, MonotonicClock, VirtualClock
from src.common.exceptions import (
    ConfigurationError,
    DeadlineExceeded,
    InvalidImage,
    OCRProviderError,
    ScanError,
)
from src.common.types import (
    ExtractionMethod,
    ExtractionResult,
    FieldKey,
    FieldSet,
    ImageBuffer,
    Point,
)

__all__ = [
    "ImageBuffer",
    "Point",
    "ExtractionMethod",
    "ExtractionResult",
    "FieldKey",
    "FieldSet",
    "Clock",
    "Deadline",
    "MonotonicClock",
    "VirtualClock",
    "ScanError",
    "InvalidImage",
    "DeadlineExceeded",
    "OCRProviderError",
    "ConfigurationError",
]
