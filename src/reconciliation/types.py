"""Type definitions for the reconciliation stage.

This module defines the confidence metrics computed for each extraction
result, the comparison summary between the two paths and the final
``ReconciledResult`` returned to callers.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional

from src.common.types import ExtractionMethod, ExtractionResult, FieldSet


class ScanPolicy(Enum):
    """How the barcode and OCR paths are scheduled."""

    PARALLEL = "parallel"  # Both paths on worker threads
    SEQUENTIAL = "sequential"  # Barcode first, then OCR


@dataclass(frozen=True)
class ConfidenceMetrics:
    """Confidence breakdown for one extraction result.

    Attributes:
        field_count: Typed fields present (filled or not)
        filled_field_count: Typed fields with a non-empty value
        completeness_score: Share of important fields filled (0-100)
        data_quality_score: Format plausibility of the filled fields (0-100)
        overall_confidence: Weighted combination with the raw confidence (0-100)
    """

    field_count: int
    filled_field_count: int
    completeness_score: int
    data_quality_score: int
    overall_confidence: int

    def to_dict(self) -> Dict[str, int]:
        return {
            "fieldCount": self.field_count,
            "filledFieldCount": self.filled_field_count,
            "completenessScore": self.completeness_score,
            "dataQualityScore": self.data_quality_score,
            "overallConfidence": self.overall_confidence,
        }


@dataclass(frozen=True)
class ComparisonSummary:
    """Side-by-side scores of the two paths.

    Attributes:
        barcode_confidence: Overall confidence of the barcode path (0 if failed)
        ocr_confidence: Overall confidence of the OCR path (0 if failed)
        difference: Absolute score difference
        recommended_method: Method with the higher score (Barcode on ties)
        recommendation: Human-readable verdict
    """

    barcode_confidence: int
    ocr_confidence: int
    difference: int
    recommended_method: ExtractionMethod
    recommendation: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "barcodeConfidence": self.barcode_confidence,
            "ocrConfidence": self.ocr_confidence,
            "confidenceDifference": self.difference,
            "recommendedMethod": self.recommended_method.value,
            "recommendation": self.recommendation,
        }


def _utc_timestamp() -> str:
    return datetime.now(timezone.utc).isoformat()


@dataclass(frozen=True)
class ReconciledResult:
    """Unified outcome of one scan request.

    ``overall_confidence == 0`` with empty ``selected_fields`` means no usable
    data was extracted and the caller should prompt for a retry.

    Attributes:
        selected_method: Method whose result was selected
        selected_fields: Selected (or merged) fields
        overall_confidence: Score of the selection (0-100)
        barcode_result: Raw barcode path result
        ocr_result: Raw OCR path result
        comparison: Score comparison between the two paths
        total_processing_time_ms: Wall time of the whole scan
        timestamp: ISO-8601 UTC creation time
    """

    selected_method: ExtractionMethod
    selected_fields: FieldSet
    overall_confidence: int
    barcode_result: Optional[ExtractionResult]
    ocr_result: Optional[ExtractionResult]
    comparison: ComparisonSummary
    total_processing_time_ms: float = 0.0
    timestamp: str = field(default_factory=_utc_timestamp)

    @property
    def per_method_results(self) -> List[ExtractionResult]:
        """Results of the paths that ran, barcode first."""
        return [r for r in (self.barcode_result, self.ocr_result) if r is not None]

    @property
    def has_usable_data(self) -> bool:
        return self.overall_confidence > 0 and not self.selected_fields.is_empty()

    def to_dict(self) -> Dict[str, Any]:
        """JSON-ready camelCase representation."""
        return {
            "selectedMethod": self.selected_method.value,
            "selectedData": self.selected_fields.to_dict(),
            "overallConfidence": self.overall_confidence,
            "barcodeResult": self.barcode_result.to_dict() if self.barcode_result else None,
            "ocrResult": self.ocr_result.to_dict() if self.ocr_result else None,
            "comparisonDetails": self.comparison.to_dict(),
            "totalProcessingTimeMs": round(self.total_processing_time_ms, 1),
            "timestamp": self.timestamp,
        }
