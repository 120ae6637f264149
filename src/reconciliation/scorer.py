"""Confidence scoring for extraction results.

Every extraction result, whatever path produced it, is scored the same way:

    overall = round(completeness * 0.5 + data_quality * 0.3 + raw * 0.2)

- completeness: share of the important fields that are filled
- data_quality: starts at 100, loses points for implausible dates, names and
  ID numbers; a result with nothing to check gets a neutral 70 instead of an
  unearned 100
- raw: the extractor's own self-reported confidence

All scores are integers in [0, 100]. Rounding is half-up.

Example:
    >>> scorer = ConfidenceScorer()
    >>> metrics = scorer.calculate_metrics(result)
    >>> format_confidence(metrics.overall_confidence)
    '82% - Good'
"""

import logging
import math
import re
from datetime import datetime
from typing import Optional

from src.common.types import ExtractionResult, FieldKey, FieldSet

from .config_loader import ScoringConfig
from .types import ConfidenceMetrics

logger = logging.getLogger(__name__)

DATE_FIELDS = (FieldKey.DATE_OF_BIRTH, FieldKey.EXPIRATION_DATE, FieldKey.ISSUE_DATE)
NAME_FIELDS = (FieldKey.FIRST_NAME, FieldKey.LAST_NAME, FieldKey.FULL_NAME)

DATE_PATTERNS = (
    (re.compile(r"^\d{2}/\d{2}/\d{4}$"), ("%m/%d/%Y",)),  # MM/DD/YYYY
    (re.compile(r"^\d{4}-\d{2}-\d{2}$"), ("%Y-%m-%d",)),  # YYYY-MM-DD
    (re.compile(r"^\d{2}-\d{2}-\d{4}$"), ("%d-%m-%Y",)),  # DD-MM-YYYY
    (re.compile(r"^\d{8}$"), ("%m%d%Y", "%Y%m%d")),  # AAMVA MMDDYYYY or YYYYMMDD
)

DATE_PENALTY = 10
NAME_PENALTY = 10
ID_LENGTH_PENALTY = 5
ID_LENGTH_RANGE = (4, 20)


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def _clamp(value: int) -> int:
    return max(0, min(100, value))


def is_valid_date(value: str) -> bool:
    """Check a date string matches an accepted layout and is a real calendar date."""
    for pattern, formats in DATE_PATTERNS:
        if not pattern.match(value):
            continue
        for date_format in formats:
            try:
                datetime.strptime(value, date_format)
                return True
            except ValueError:
                continue
    return False


def format_confidence(confidence: float) -> str:
    """Display label for a confidence score, e.g. ``"92% - Excellent"``."""
    value = _round_half_up(confidence)
    if value >= 90:
        return f"{value}% - Excellent"
    if value >= 75:
        return f"{value}% - Good"
    if value >= 60:
        return f"{value}% - Fair"
    return f"{value}% - Poor"


class ConfidenceScorer:
    """Computes ConfidenceMetrics for any ExtractionResult.

    Args:
        config: Scoring configuration (important fields, weights)
    """

    def __init__(self, config: Optional[ScoringConfig] = None):
        self.config = config if config is not None else ScoringConfig()

    def calculate_metrics(self, result: ExtractionResult) -> ConfidenceMetrics:
        """Score one extraction result.

        Args:
            result: Result from either path

        Returns:
            ConfidenceMetrics with every score in [0, 100]
        """
        fields = result.fields
        completeness = self.completeness_score(fields)
        quality = self.data_quality_score(fields)

        overall = _clamp(
            _round_half_up(
                completeness * self.config.completeness_weight
                + quality * self.config.quality_weight
                + result.confidence * self.config.raw_confidence_weight
            )
        )

        logger.debug(
            f"Scored {result.method.value}: completeness={completeness}, "
            f"quality={quality}, raw={result.confidence:.1f}, overall={overall}"
        )

        return ConfidenceMetrics(
            field_count=len(fields),
            filled_field_count=len(fields.filled()),
            completeness_score=completeness,
            data_quality_score=quality,
            overall_confidence=overall,
        )

    def completeness_score(self, fields: FieldSet) -> int:
        """Percentage of important fields with a non-empty value."""
        important = self.config.important_fields
        filled = sum(1 for key in important if fields.has_value(key))
        return _clamp(_round_half_up(100 * filled / len(important)))

    def data_quality_score(self, fields: FieldSet) -> int:
        """Plausibility of the filled date, name and ID number fields.

        Returns the neutral score when none of those fields is filled.
        """
        score = 100
        checks = 0

        for key in DATE_FIELDS:
            value = fields.value(key)
            if value:
                checks += 1
                if not is_valid_date(value):
                    score -= DATE_PENALTY

        for key in NAME_FIELDS:
            value = fields.value(key)
            if value:
                checks += 1
                if len(value) < 2 or any(c.isdigit() for c in value):
                    score -= NAME_PENALTY

        id_number = fields.value(FieldKey.ID_NUMBER)
        if id_number:
            checks += 1
            low, high = ID_LENGTH_RANGE
            if not low <= len(id_number) <= high:
                score -= ID_LENGTH_PENALTY

        if checks == 0:
            return self.config.neutral_quality_score

        return _clamp(score)

    def format_confidence(self, confidence: float) -> str:
        return format_confidence(confidence)
