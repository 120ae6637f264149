"""Configuration loader with Pydantic validation for the hybrid scanner.

This module provides type-safe configuration loading from YAML files using
Pydantic models for validation and default values. The root ``Config``
aggregates the barcode, OCR, scoring and reconciliation sections.
"""

from pathlib import Path
from typing import List, Optional, Union

import yaml
from pydantic import BaseModel, Field, model_validator

from src.barcode.config_loader import BarcodeModuleConfig
from src.common.types import ExtractionMethod, FieldKey
from src.ocr.config_loader import OCRModuleConfig

from .types import ScanPolicy


class ScoringConfig(BaseModel):
    """Confidence scoring configuration.

    Attributes:
        important_fields: Fields counted by the completeness score
        completeness_weight: Weight of the completeness score
        quality_weight: Weight of the data quality score
        raw_confidence_weight: Weight of the extractor's own confidence
        neutral_quality_score: Quality score when no check applies
        significance_threshold: Score difference reported as "significant"
    """

    important_fields: List[FieldKey] = Field(
        default_factory=lambda: [
            FieldKey.FIRST_NAME,
            FieldKey.LAST_NAME,
            FieldKey.FULL_NAME,
            FieldKey.ID_NUMBER,
            FieldKey.DATE_OF_BIRTH,
            FieldKey.EXPIRATION_DATE,
            FieldKey.ADDRESS,
            FieldKey.STATE,
        ]
    )
    completeness_weight: float = Field(default=0.5, ge=0.0, le=1.0)
    quality_weight: float = Field(default=0.3, ge=0.0, le=1.0)
    raw_confidence_weight: float = Field(default=0.2, ge=0.0, le=1.0)
    neutral_quality_score: int = Field(default=70, ge=0, le=100)
    significance_threshold: int = Field(default=15, ge=0, le=100)

    @model_validator(mode="after")
    def _validate_weights(self) -> "ScoringConfig":
        if not self.important_fields:
            raise ValueError("At least one important field is required")
        total = self.completeness_weight + self.quality_weight + self.raw_confidence_weight
        if abs(total - 1.0) > 1e-6:
            raise ValueError(f"Scoring weights must sum to 1.0, got {total:.3f}")
        return self


class ReconciliationConfig(BaseModel):
    """Reconciliation configuration.

    Attributes:
        policy: Scheduling of the two paths
        preferred_method: Method selected whenever both paths succeed
        critical_fields: Fields where the barcode value always wins a merge
    """

    policy: ScanPolicy = ScanPolicy.PARALLEL
    preferred_method: Optional[ExtractionMethod] = None
    critical_fields: List[FieldKey] = Field(
        default_factory=lambda: [
            FieldKey.ID_NUMBER,
            FieldKey.DATE_OF_BIRTH,
            FieldKey.EXPIRATION_DATE,
        ]
    )


class Config(BaseModel):
    """Root configuration container.

    Attributes:
        barcode: Barcode module configuration
        ocr: OCR module configuration
        scoring: Confidence scoring configuration
        reconciliation: Reconciliation configuration
    """

    barcode: BarcodeModuleConfig = Field(default_factory=BarcodeModuleConfig)
    ocr: OCRModuleConfig = Field(default_factory=OCRModuleConfig)
    scoring: ScoringConfig = Field(default_factory=ScoringConfig)
    reconciliation: ReconciliationConfig = Field(default_factory=ReconciliationConfig)


def load_config(config_path: Union[str, Path]) -> Config:
    """Load and validate configuration from YAML file.

    Args:
        config_path: Path to YAML configuration file

    Returns:
        Validated Config object with all settings

    Raises:
        FileNotFoundError: If config file does not exist
        yaml.YAMLError: If YAML parsing fails
        pydantic.ValidationError: If configuration validation fails

    Example:
        >>> config = load_config(Path("src/reconciliation/config.yaml"))
        >>> print(config.barcode.budgets.decode_ms)
        3000.0
    """
    config_path = Path(config_path)
    if not config_path.exists():
        raise FileNotFoundError(f"Configuration file not found: {config_path}")

    with open(config_path, "r", encoding="utf-8") as f:
        config_dict = yaml.safe_load(f) or {}

    return Config(**config_dict)


def get_default_config() -> Config:
    """Get default configuration from bundled config.yaml file.

    Returns:
        Config object loaded from src/reconciliation/config.yaml
    """
    default_config_path = Path(__file__).parent / "config.yaml"
    if default_config_path.exists():
        return load_config(default_config_path)
    else:
        # Fallback to hardcoded defaults if config file is missing
        return Config()
