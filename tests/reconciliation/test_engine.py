"""Unit tests for the reconciliation engine."""

import pytest

from src.common.types import ExtractionMethod, ExtractionResult, FieldKey, FieldSet
from src.reconciliation.config_loader import ReconciliationConfig
from src.reconciliation.engine import ReconciliationEngine
from src.reconciliation.scorer import ConfidenceScorer
from src.reconciliation.types import ConfidenceMetrics

BARCODE = ExtractionMethod.BARCODE
OCR = ExtractionMethod.OPTICAL_TEXT


class RawConfidenceScorer(ConfidenceScorer):
    """Scorer whose overall confidence is the extractor's own confidence."""

    def calculate_metrics(self, result):
        return ConfidenceMetrics(
            field_count=len(result.fields),
            filled_field_count=len(result.fields.filled()),
            completeness_score=0,
            data_quality_score=0,
            overall_confidence=int(result.confidence),
        )


def _success(method, confidence, **fields):
    return ExtractionResult(
        method=method,
        success=True,
        confidence=confidence,
        fields=FieldSet.from_dict(fields),
    )


def _failure(method):
    return ExtractionResult.failure(method, "failed")


@pytest.fixture
def engine():
    """Provide engine scoring by raw confidence."""
    return ReconciliationEngine(scorer=RawConfidenceScorer())


class TestBothFailed:
    """Test case 1 of the decision matrix."""

    def test_no_usable_data(self, engine):
        """Test both failures give confidence 0 and no fields."""
        result = engine.reconcile(_failure(BARCODE), _failure(OCR))

        assert result.overall_confidence == 0
        assert result.selected_fields.to_dict() == {}
        assert result.selected_fields == {}
        assert result.selected_method == OCR
        assert not result.has_usable_data
        assert result.comparison.recommendation == "Both methods failed"

    def test_paths_not_run(self, engine):
        """Test missing results count as failures."""
        result = engine.reconcile(None, None)

        assert result.overall_confidence == 0
        assert result.per_method_results == []


class TestOneSucceeded:
    """Test case 2 of the decision matrix."""

    def test_ocr_only(self, engine):
        """Test the OCR fields are selected verbatim when the barcode failed."""
        ocr = _success(OCR, 72, idNumber="D123456Z", lastName="SMITH")
        result = engine.reconcile(_failure(BARCODE), ocr)

        assert result.selected_method == OCR
        assert result.selected_fields is ocr.fields
        assert result.overall_confidence == 72
        assert result.comparison.barcode_confidence == 0
        assert result.comparison.ocr_confidence == 72
        assert result.comparison.recommended_method == OCR

    def test_barcode_only(self, engine):
        """Test the barcode result is selected when OCR failed."""
        barcode = _success(BARCODE, 85, idNumber="D1234567")
        result = engine.reconcile(barcode, _failure(OCR))

        assert result.selected_method == BARCODE
        assert result.overall_confidence == 85
        assert result.selected_fields.to_dict() == {"idNumber": "D1234567"}
        assert result.comparison.recommendation == "Only barcode succeeded"

    def test_ocr_not_run(self, engine):
        """Test a path that did not run is treated as failed."""
        result = engine.reconcile(_success(BARCODE, 80, idNumber="D1"), None)

        assert result.selected_method == BARCODE
        assert len(result.per_method_results) == 1


class TestBothSucceeded:
    """Test case 3 of the decision matrix."""

    def test_significant_difference(self, engine):
        """Test barcode 90 vs OCR 70 selects barcode with a significant verdict."""
        result = engine.reconcile(
            _success(BARCODE, 90, idNumber="D1234567"),
            _success(OCR, 70, idNumber="D1234567"),
        )

        assert result.selected_method == BARCODE
        assert result.overall_confidence == 90
        assert result.comparison.difference == 20
        assert "significantly" in result.comparison.recommendation
        assert result.comparison.recommendation == (
            "barcode is significantly more reliable (20% higher confidence)"
        )

    def test_slight_difference(self, engine):
        """Test a difference at the threshold is only slightly better."""
        result = engine.reconcile(
            _success(BARCODE, 70, lastName="SMITH"),
            _success(OCR, 85, lastName="SMITH"),
        )

        assert result.selected_method == OCR
        assert result.overall_confidence == 85
        assert result.comparison.recommendation == (
            "optical_text is slightly better (15% higher confidence)"
        )

    def test_tie_goes_to_barcode(self, engine):
        """Test equal scores recommend the barcode."""
        result = engine.reconcile(
            _success(BARCODE, 80, lastName="SMITH"),
            _success(OCR, 80, lastName="SMITH"),
        )

        assert result.selected_method == BARCODE
        assert result.comparison.difference == 0
        assert result.comparison.recommendation == "Both methods produced similar results"

    def test_preferred_method_overrides_winner(self, engine):
        """Test an explicit preference is selected even when it scored lower."""
        result = engine.reconcile(
            _success(BARCODE, 90, lastName="SMITH"),
            _success(OCR, 60, lastName="SMITH"),
            preferred_method=OCR,
        )

        assert result.selected_method == OCR
        assert result.comparison.recommended_method == BARCODE
        assert result.overall_confidence == 90

    def test_configured_preference(self):
        """Test the configured preference applies when none is passed."""
        engine = ReconciliationEngine(
            scorer=RawConfidenceScorer(),
            config=ReconciliationConfig(preferred_method="optical_text"),
        )
        result = engine.reconcile(
            _success(BARCODE, 90, lastName="SMITH"), _success(OCR, 60, lastName="SMITH")
        )
        assert result.selected_method == OCR


class TestFieldMerge:
    """Test field-by-field merging."""

    def test_critical_field_prefers_barcode(self, engine):
        """Test the barcode idNumber wins and the OCR value is kept for audit."""
        result = engine.reconcile(
            _success(BARCODE, 80, idNumber="D1234567"),
            _success(OCR, 80, idNumber="D123456Z"),
        )
        data = result.selected_fields.to_dict()

        assert data["idNumber"] == "D1234567"
        assert data["idNumber_ocr"] == "D123456Z"

    def test_critical_preference_independent_of_winner(self, engine):
        """Test critical fields come from the barcode even when OCR won."""
        result = engine.reconcile(
            _success(BARCODE, 50, dateOfBirth="01151990", expirationDate="01152030"),
            _success(OCR, 95, dateOfBirth="01/15/1990", expirationDate="01/15/2030"),
        )
        fields = result.selected_fields

        assert result.comparison.recommended_method == OCR
        assert fields.value(FieldKey.DATE_OF_BIRTH) == "01151990"
        assert fields.value(FieldKey.EXPIRATION_DATE) == "01152030"
        assert fields["dateOfBirth_ocr"] == "01/15/1990"

    def test_non_critical_longer_wins(self, engine):
        """Test the longer value wins for non-critical fields."""
        merged = engine.merge_fields(
            FieldSet.from_dict({"address": "123 MAIN ST", "city": "SACRAMENTO"}),
            FieldSet.from_dict({"address": "123 MAIN STREET", "city": "SAC"}),
        )

        assert merged.value(FieldKey.ADDRESS) == "123 MAIN STREET"
        assert merged.value(FieldKey.CITY) == "SACRAMENTO"
        assert merged.alternates == {}

    def test_equal_length_prefers_ocr(self, engine):
        """Test equal-length non-critical values take the OCR value."""
        merged = engine.merge_fields(
            FieldSet.from_dict({"lastName": "SMITH"}),
            FieldSet.from_dict({"lastName": "SMYTH"}),
        )
        assert merged.value(FieldKey.LAST_NAME) == "SMYTH"

    def test_union_of_fields(self, engine):
        """Test fields present on only one side are carried over."""
        merged = engine.merge_fields(
            FieldSet.from_dict({"height": "070 IN", "idNumber": "D1", "sex": ""}),
            FieldSet.from_dict({"eyeColor": "BRO", "idNumber": ""}),
        )

        assert merged.to_dict() == {"height": "070 IN", "idNumber": "D1", "eyeColor": "BRO"}

    def test_unrecognized_merged(self, engine):
        """Test raw side-channels are combined, barcode first."""
        merged = engine.merge_fields(
            FieldSet(unrecognized={"DCF": "DOC123", "shared": "barcode"}),
            FieldSet(unrecognized={"VETERAN": "VETERAN", "shared": "ocr"}),
        )

        assert merged.unrecognized == {
            "VETERAN": "VETERAN",
            "shared": "barcode",
            "DCF": "DOC123",
        }


class TestSerialization:
    """Test the reconciled result JSON shape."""

    def test_to_dict(self, engine):
        """Test camelCase keys and nested per-method results."""
        result = engine.reconcile(
            _success(BARCODE, 90, idNumber="D1234567"),
            _success(OCR, 70, idNumber="D123456Z"),
            total_processing_time_ms=1234.567,
        )
        data = result.to_dict()

        assert data["selectedMethod"] == "barcode"
        assert data["selectedData"] == {"idNumber": "D1234567", "idNumber_ocr": "D123456Z"}
        assert data["overallConfidence"] == 90
        assert data["barcodeResult"]["confidence"] == 90
        assert data["ocrResult"]["data"] == {"idNumber": "D123456Z"}
        assert data["comparisonDetails"]["confidenceDifference"] == 20
        assert data["totalProcessingTimeMs"] == 1234.6
        assert data["timestamp"]
