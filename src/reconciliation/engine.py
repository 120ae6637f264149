"""Reconciliation of the barcode and OCR extraction results.

Decision matrix:
    1. Both failed -> OPTICAL_TEXT, empty fields, confidence 0
    2. One succeeded -> that method, its fields verbatim, its score
    3. Both succeeded -> higher score wins (ties go to BARCODE), fields merged,
       confidence is the higher of the two scores

Field merge (case 3), over the union of fields present in either result:
    - only one side has a value -> use it
    - critical field (idNumber, dateOfBirth, expirationDate) -> barcode value,
      OCR value kept as the ``<field>_ocr`` alternate, whoever won overall
    - any other field -> the longer value (OCR on equal length)

Example:
    >>> engine = ReconciliationEngine()
    >>> reconciled = engine.reconcile(barcode_result, ocr_result)
    >>> print(reconciled.comparison.recommendation)
    barcode is significantly more reliable (20% higher confidence)
"""

import logging
from typing import Dict, Optional

from src.common.types import ExtractionMethod, ExtractionResult, FieldKey, FieldSet

from .config_loader import ReconciliationConfig
from .scorer import ConfidenceScorer
from .types import ComparisonSummary, ReconciledResult

logger = logging.getLogger(__name__)


def _succeeded(result: Optional[ExtractionResult]) -> bool:
    return result is not None and result.success


class ReconciliationEngine:
    """Compares, selects and merges two extraction results.

    Args:
        scorer: Confidence scorer applied to both results
        config: Reconciliation configuration (critical fields, preference)
    """

    def __init__(
        self,
        scorer: Optional[ConfidenceScorer] = None,
        config: Optional[ReconciliationConfig] = None,
    ):
        self.scorer = scorer if scorer is not None else ConfidenceScorer()
        self.config = config if config is not None else ReconciliationConfig()

    def reconcile(
        self,
        barcode_result: Optional[ExtractionResult],
        ocr_result: Optional[ExtractionResult],
        preferred_method: Optional[ExtractionMethod] = None,
        total_processing_time_ms: float = 0.0,
    ) -> ReconciledResult:
        """Produce the unified result for one scan.

        Args:
            barcode_result: Barcode path result (None = path did not run)
            ocr_result: OCR path result (None = path did not run)
            preferred_method: Method to select when both succeed; defaults to
                the configured preference, then to the comparison winner
            total_processing_time_ms: Wall time of the whole scan

        Returns:
            ReconciledResult
        """
        if preferred_method is None:
            preferred_method = self.config.preferred_method

        barcode_ok = _succeeded(barcode_result)
        ocr_ok = _succeeded(ocr_result)

        if not barcode_ok and not ocr_ok:
            logger.warning("Both barcode and OCR extraction failed")
            return ReconciledResult(
                selected_method=ExtractionMethod.OPTICAL_TEXT,
                selected_fields=FieldSet(),
                overall_confidence=0,
                barcode_result=barcode_result,
                ocr_result=ocr_result,
                comparison=ComparisonSummary(
                    barcode_confidence=0,
                    ocr_confidence=0,
                    difference=0,
                    recommended_method=ExtractionMethod.OPTICAL_TEXT,
                    recommendation="Both methods failed",
                ),
                total_processing_time_ms=total_processing_time_ms,
            )

        if barcode_ok != ocr_ok:
            winner = barcode_result if barcode_ok else ocr_result
            score = self.scorer.calculate_metrics(winner).overall_confidence
            logger.info(f"Only {winner.method.value} succeeded (confidence {score})")
            return ReconciledResult(
                selected_method=winner.method,
                selected_fields=winner.fields,
                overall_confidence=score,
                barcode_result=barcode_result,
                ocr_result=ocr_result,
                comparison=ComparisonSummary(
                    barcode_confidence=score if barcode_ok else 0,
                    ocr_confidence=score if ocr_ok else 0,
                    difference=score,
                    recommended_method=winner.method,
                    recommendation=f"Only {winner.method.value} succeeded",
                ),
                total_processing_time_ms=total_processing_time_ms,
            )

        comparison = self.compare(barcode_result, ocr_result)
        selected_method = preferred_method or comparison.recommended_method
        merged = self.merge_fields(barcode_result.fields, ocr_result.fields)

        logger.info(
            f"Both methods succeeded: {comparison.recommendation}; "
            f"selected {selected_method.value}"
        )

        return ReconciledResult(
            selected_method=selected_method,
            selected_fields=merged,
            overall_confidence=max(
                comparison.barcode_confidence, comparison.ocr_confidence
            ),
            barcode_result=barcode_result,
            ocr_result=ocr_result,
            comparison=comparison,
            total_processing_time_ms=total_processing_time_ms,
        )

    def compare(
        self, barcode_result: ExtractionResult, ocr_result: ExtractionResult
    ) -> ComparisonSummary:
        """Score both results and pick the more reliable one.

        Ties go to the barcode result.
        """
        barcode_score = self.scorer.calculate_metrics(barcode_result).overall_confidence
        ocr_score = self.scorer.calculate_metrics(ocr_result).overall_confidence
        difference = abs(barcode_score - ocr_score)

        if barcode_score == ocr_score:
            return ComparisonSummary(
                barcode_confidence=barcode_score,
                ocr_confidence=ocr_score,
                difference=0,
                recommended_method=ExtractionMethod.BARCODE,
                recommendation="Both methods produced similar results",
            )

        winner = (
            ExtractionMethod.BARCODE
            if barcode_score > ocr_score
            else ExtractionMethod.OPTICAL_TEXT
        )
        if difference > self.scorer.config.significance_threshold:
            verdict = "is significantly more reliable"
        else:
            verdict = "is slightly better"

        return ComparisonSummary(
            barcode_confidence=barcode_score,
            ocr_confidence=ocr_score,
            difference=difference,
            recommended_method=winner,
            recommendation=(
                f"{winner.value} {verdict} ({difference}% higher confidence)"
            ),
        )

    def merge_fields(self, barcode_fields: FieldSet, ocr_fields: FieldSet) -> FieldSet:
        """Field-by-field merge of two successful results."""
        merged: Dict[FieldKey, str] = {}
        alternates: Dict[FieldKey, str] = {}
        critical = set(self.config.critical_fields)

        for key in list(ocr_fields) + [k for k in barcode_fields if k not in ocr_fields]:
            barcode_value = barcode_fields.value(key)
            ocr_value = ocr_fields.value(key)

            if barcode_value and not ocr_value:
                merged[key] = barcode_value
            elif ocr_value and not barcode_value:
                merged[key] = ocr_value
            elif barcode_value and ocr_value:
                if key in critical:
                    merged[key] = barcode_value
                    alternates[key] = ocr_value
                elif len(ocr_value) >= len(barcode_value):
                    merged[key] = ocr_value
                else:
                    merged[key] = barcode_value

        unrecognized = {**ocr_fields.unrecognized, **barcode_fields.unrecognized}
        return FieldSet(entries=merged, unrecognized=unrecognized, alternates=alternates)
