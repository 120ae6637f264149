"""Type definitions for the OCR extraction path."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from src.common.types import FieldSet


class OCRProvider(Enum):
    """Available optical-text extraction providers."""

    TEXTRACT = "textract"  # AWS Textract AnalyzeID
    TESSERACT = "tesseract"  # Local Tesseract, no network


@dataclass(frozen=True)
class OCRExtraction:
    """Raw output of one provider call, before it becomes an ExtractionResult.

    Attributes:
        fields: Extracted document fields
        confidence: Provider's own confidence (0-100)
        raw_response: Unmodified provider response kept for audit
    """

    fields: FieldSet = field(default_factory=FieldSet)
    confidence: float = 0.0
    raw_response: Any = None
