"""Type definitions for the barcode module.

This module defines the symbologies, preprocessing kinds, tri-state decode
outcome and the per-strategy attempt records produced by the decoder.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Tuple

from src.common.types import Point


class BarcodeFormat(Enum):
    """Symbologies the decoder may be asked to read."""

    PDF417 = "PDF417"
    QR_CODE = "QR_CODE"
    DATA_MATRIX = "DATA_MATRIX"
    AZTEC = "AZTEC"
    CODE128 = "CODE128"
    CODE39 = "CODE39"


class BarcodeReader(Enum):
    """Library used by the default decode primitive."""

    ZXING = "zxing"
    PYZBAR = "pyzbar"


class PreprocessKind(Enum):
    """Pixel transform applied before a decode attempt."""

    IDENTITY = "identity"
    UPSCALE = "upscale"
    GRAYSCALE = "grayscale"
    CONTRAST = "contrast"
    SHARPEN = "sharpen"
    THRESHOLD = "threshold"


class DecodeStatus(Enum):
    """Result of a single decode primitive call."""

    FOUND = "found"
    NOT_FOUND = "not_found"
    ERROR = "error"


@dataclass(frozen=True)
class DecodeOutcome:
    """Tri-state decode result: Found, NotFound or Error.

    Attributes:
        status: Outcome status
        text: Decoded symbol payload (FOUND only)
        format: Symbology of the decoded symbol (FOUND only)
        corner_points: Symbol corner points in the decoded image (FOUND only)
        error: Failure message (ERROR only)
    """

    status: DecodeStatus
    text: str = ""
    format: Optional[BarcodeFormat] = None
    corner_points: Tuple[Point, ...] = ()
    error: Optional[str] = None

    @classmethod
    def found(
        cls,
        text: str,
        format: Optional[BarcodeFormat],
        corner_points: Tuple[Point, ...] = (),
    ) -> "DecodeOutcome":
        return cls(
            status=DecodeStatus.FOUND,
            text=text,
            format=format,
            corner_points=tuple(corner_points),
        )

    @classmethod
    def not_found(cls) -> "DecodeOutcome":
        return cls(status=DecodeStatus.NOT_FOUND)

    @classmethod
    def failed(cls, error: str) -> "DecodeOutcome":
        return cls(status=DecodeStatus.ERROR, error=error)

    def is_found(self) -> bool:
        return self.status == DecodeStatus.FOUND


class AttemptStatus(Enum):
    """How a single preprocessing + decode strategy attempt ended."""

    FOUND = "found"
    NOT_FOUND = "not_found"
    TIMEOUT = "timeout"
    ERROR = "error"
    SKIPPED = "skipped"  # Total scan deadline already spent


@dataclass(frozen=True)
class StrategyAttempt:
    """Record of one strategy attempt.

    Attributes:
        strategy: Strategy name (e.g. "larger_2x")
        status: How the attempt ended
        elapsed_ms: Time spent on the attempt
        detail: Timeout or error message
    """

    strategy: str
    status: AttemptStatus
    elapsed_ms: float = 0.0
    detail: Optional[str] = None


@dataclass(frozen=True)
class BarcodeDecodeReport:
    """Outcome of the full multi-strategy decode loop.

    Attributes:
        outcome: Decode outcome of the winning attempt, or NOT_FOUND
        strategy: Name of the strategy that found the symbol
        attempts: Every attempt in the order it was made
        error: Overall failure message when nothing was found
        processing_time_ms: Total time spent in the loop
    """

    outcome: DecodeOutcome
    strategy: Optional[str] = None
    attempts: Tuple[StrategyAttempt, ...] = field(default_factory=tuple)
    error: Optional[str] = None
    processing_time_ms: float = 0.0

    @property
    def success(self) -> bool:
        return self.outcome.is_found()
