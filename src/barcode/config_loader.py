"""Configuration models for the barcode module.

Pydantic models with validation and defaults for the preprocessing strategy
list, the per-attempt time budgets and the allowed symbologies. The root
``Config`` that aggregates these sections lives in
``src.reconciliation.config_loader``.
"""

from typing import List, Optional

from pydantic import BaseModel, Field, model_validator

from .types import BarcodeFormat, BarcodeReader, PreprocessKind


class StrategyConfig(BaseModel):
    """One preprocessing strategy in the decode loop.

    Attributes:
        name: Strategy name used in logs and attempt records
        kind: Pixel transform to apply
        parameter: Transform parameter (upscale factor, contrast level,
            threshold level); None uses the module default
    """

    name: str
    kind: PreprocessKind
    parameter: Optional[float] = None


def _default_strategies() -> List[StrategyConfig]:
    return [
        StrategyConfig(name="original", kind=PreprocessKind.IDENTITY),
        StrategyConfig(name="larger_2x", kind=PreprocessKind.UPSCALE, parameter=2),
        StrategyConfig(name="larger_3x", kind=PreprocessKind.UPSCALE, parameter=3),
        StrategyConfig(name="high_contrast", kind=PreprocessKind.CONTRAST),
        StrategyConfig(name="grayscale", kind=PreprocessKind.GRAYSCALE),
        StrategyConfig(name="sharpen", kind=PreprocessKind.SHARPEN),
        StrategyConfig(name="threshold", kind=PreprocessKind.THRESHOLD),
    ]


class PreprocessingConfig(BaseModel):
    """Default parameters for the pixel transforms.

    Attributes:
        contrast_level: Contrast adjustment c in f=(259*(c+255))/(255*(259-c))
        threshold_level: Luminance cut-off for binarization
        max_upscale_factor: Largest accepted upscale factor
    """

    contrast_level: float = Field(default=80.0, gt=-255.0, lt=259.0)
    threshold_level: int = Field(default=128, ge=0, le=255)
    max_upscale_factor: int = Field(default=4, ge=1)


class BudgetConfig(BaseModel):
    """Time budgets for the decode loop (milliseconds).

    Attributes:
        preprocess_ms: Budget for one preprocessing transform
        decode_ms: Budget for one decode primitive call
        total_ms: Budget for the whole loop across all strategies
    """

    preprocess_ms: float = Field(default=2000.0, gt=0.0)
    decode_ms: float = Field(default=3000.0, gt=0.0)
    total_ms: float = Field(default=15000.0, gt=0.0)


class BarcodeModuleConfig(BaseModel):
    """Complete barcode module configuration.

    Attributes:
        strategies: Ordered strategy list; the first Found short-circuits
        preprocessing: Transform parameters
        budgets: Time budgets
        allowed_formats: Symbologies passed to the decode primitive
        reader: Decode library used when no primitive is injected
    """

    strategies: List[StrategyConfig] = Field(default_factory=_default_strategies)
    preprocessing: PreprocessingConfig = Field(default_factory=PreprocessingConfig)
    budgets: BudgetConfig = Field(default_factory=BudgetConfig)
    allowed_formats: List[BarcodeFormat] = Field(
        default_factory=lambda: [
            BarcodeFormat.PDF417,
            BarcodeFormat.QR_CODE,
            BarcodeFormat.DATA_MATRIX,
            BarcodeFormat.AZTEC,
            BarcodeFormat.CODE128,
            BarcodeFormat.CODE39,
        ]
    )
    reader: BarcodeReader = BarcodeReader.ZXING

    @model_validator(mode="after")
    def _validate_strategies(self) -> "BarcodeModuleConfig":
        if not self.strategies:
            raise ValueError("At least one decode strategy is required")
        if not self.allowed_formats:
            raise ValueError("At least one barcode format must be allowed")
        names = [s.name for s in self.strategies]
        if len(set(names)) != len(names):
            raise ValueError(f"Strategy names must be unique, got {names}")
        return self
