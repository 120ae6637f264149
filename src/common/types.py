"""
Common type definitions for the hybrid document scanner.

This module provides the data structures shared by the barcode path, the OCR
path and the reconciliation stage:

- ``ImageBuffer``: validated uint8 pixel buffer (RGB, RGBA or grayscale)
- ``Point``: integer pixel coordinate (barcode corner points)
- ``ExtractionMethod``: which pipeline produced a result
- ``FieldKey`` / ``FieldSet``: typed identity-document fields with separate
  side-channels for unrecognized payload elements and OCR audit values
- ``ExtractionResult``: immutable outcome of one extraction attempt
"""

from collections import abc
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any, Dict, Iterator, Mapping, Optional, Tuple, Union

import numpy as np
from pydantic import BaseModel, Field, ValidationError, field_validator

from .exceptions import InvalidImage


class ImageBuffer(BaseModel):
    """
    Type-safe wrapper for image arrays (numpy.ndarray).

    Color images use RGB channel order (RGBA when an alpha channel is
    present), matching the pixel layout the preprocessing strategies expect.

    Attributes:
        data: The underlying numpy array containing image data.
            Shape: (H, W, C) for color images, (H, W) for grayscale.
            Dtype: uint8 (0-255).

    Example:
        >>> img = ImageBuffer(data=np.zeros((480, 640, 3), dtype=np.uint8))
        >>> print(img.height, img.width)  # 480, 640
    """

    data: np.ndarray = Field(..., description="Image data as numpy array")

    model_config = {"arbitrary_types_allowed": True}

    @field_validator("data")
    @classmethod
    def _validate_image(cls, v: np.ndarray) -> np.ndarray:
        """
        Validate that the numpy array is a valid image.

        Raises:
            ValueError: If array is not a valid image format.
        """
        if not isinstance(v, np.ndarray):
            raise ValueError(f"Expected numpy.ndarray, got {type(v)}")

        if v.size == 0:
            raise ValueError(f"Image array is empty (shape {v.shape})")

        if len(v.shape) not in (2, 3):
            raise ValueError(
                f"Expected 2D (grayscale) or 3D (color) image, got shape {v.shape}"
            )

        if len(v.shape) == 3 and v.shape[2] not in (1, 3, 4):
            raise ValueError(
                f"Expected 1, 3, or 4 channels for color image, got {v.shape[2]}"
            )

        if v.dtype != np.uint8:
            raise ValueError(
                f"Expected uint8 dtype for image, got {v.dtype}. "
                "Images should be in range [0, 255]"
            )

        return v

    @classmethod
    def from_numpy(cls, data: Any) -> "ImageBuffer":
        """
        Wrap an array, converting validation failures into ``InvalidImage``.

        Args:
            data: ImageBuffer (returned as-is) or numpy array.

        Returns:
            Validated ImageBuffer.

        Raises:
            InvalidImage: If the array is empty, zero-sized or malformed.
        """
        if isinstance(data, ImageBuffer):
            return data
        if data is None:
            raise InvalidImage("No image supplied", component="image")
        try:
            return cls(data=data)
        except ValidationError as e:
            raise InvalidImage(
                f"Invalid image: {e.errors()[0]['msg']}",
                component="image",
                original_error=e,
            ) from e

    @property
    def shape(self) -> Tuple[int, ...]:
        """Get image shape (H, W) or (H, W, C)."""
        return self.data.shape

    @property
    def height(self) -> int:
        """Get image height in pixels."""
        return int(self.data.shape[0])

    @property
    def width(self) -> int:
        """Get image width in pixels."""
        return int(self.data.shape[1])

    @property
    def channels(self) -> int:
        """Get number of channels (1 for grayscale, 3 for RGB, 4 for RGBA)."""
        if len(self.data.shape) == 2:
            return 1
        return int(self.data.shape[2])

    @property
    def is_grayscale(self) -> bool:
        """Check if image is grayscale (single channel)."""
        return self.channels == 1

    def to_numpy(self) -> np.ndarray:
        """Get underlying numpy array."""
        return self.data

    def copy(self) -> "ImageBuffer":
        """Create a deep copy of the image buffer."""
        return ImageBuffer(data=self.data.copy())

    def __repr__(self) -> str:
        """String representation of ImageBuffer."""
        return f"ImageBuffer(shape={self.shape}, dtype={self.data.dtype})"


class Point(BaseModel):
    """
    Integer pixel coordinate (x, y).

    Attributes:
        x: X-coordinate (horizontal).
        y: Y-coordinate (vertical).
    """

    x: int = Field(..., description="X-coordinate (horizontal)")
    y: int = Field(..., description="Y-coordinate (vertical)")

    model_config = {"frozen": True}

    @field_validator("x", "y", mode="before")
    @classmethod
    def _convert_to_int(cls, v: Union[int, float]) -> int:
        """Convert coordinate to int, rounding if float."""
        if isinstance(v, (int, float)):
            return int(round(v))
        raise ValueError(f"Coordinate must be numeric, got {type(v)}")

    def to_tuple(self) -> Tuple[int, int]:
        """Convert Point to tuple (x, y)."""
        return (self.x, self.y)


class ExtractionMethod(Enum):
    """Pipeline that produced an extraction result."""

    BARCODE = "barcode"
    OPTICAL_TEXT = "optical_text"


class FieldKey(Enum):
    """Typed identity-document fields.

    Values are the camelCase names used in serialized output.
    """

    FIRST_NAME = "firstName"
    MIDDLE_NAME = "middleName"
    LAST_NAME = "lastName"
    SUFFIX = "suffix"
    FULL_NAME = "fullName"
    ID_NUMBER = "idNumber"
    ID_TYPE = "idType"
    DATE_OF_BIRTH = "dateOfBirth"
    ISSUE_DATE = "issueDate"
    EXPIRATION_DATE = "expirationDate"
    ADDRESS = "address"
    CITY = "city"
    STATE = "state"
    STATE_NAME = "stateName"
    ZIP_CODE = "zipCode"
    SEX = "sex"
    EYE_COLOR = "eyeColor"
    HEIGHT = "height"
    WEIGHT = "weight"
    VEHICLE_CLASS = "vehicleClass"
    RESTRICTIONS = "restrictions"
    ENDORSEMENTS = "endorsements"

    @classmethod
    def from_name(cls, name: Union[str, "FieldKey"]) -> "FieldKey":
        """Resolve a FieldKey from its camelCase value or enum name."""
        if isinstance(name, FieldKey):
            return name
        try:
            return cls(name)
        except ValueError:
            return cls[name]


# Suffix of the shadow keys holding OCR values kept for audit
OCR_ALTERNATE_SUFFIX = "_ocr"


def _freeze(mapping: Optional[Mapping]) -> Mapping:
    return MappingProxyType(dict(mapping or {}))


@dataclass(frozen=True, eq=False)
class FieldSet(abc.Mapping):
    """Immutable typed field map for one identity document.

    Behaves as a read-only mapping from ``FieldKey`` to optional string.
    Two side-channels are kept apart from the typed fields:

    - ``unrecognized``: raw payload elements the parser has no field for
      (e.g. AAMVA ``DCF`` document discriminator), keyed by their raw code
    - ``alternates``: OCR values retained for audit when the barcode value
      won a critical-field merge, exposed as ``<field>_ocr`` shadow keys

    Attributes:
        entries: Typed field values (may hold None or empty strings)
        unrecognized: Raw payload side-channel
        alternates: OCR audit values for critical fields
    """

    entries: Mapping[FieldKey, Optional[str]] = field(default_factory=dict)
    unrecognized: Mapping[str, str] = field(default_factory=dict)
    alternates: Mapping[FieldKey, str] = field(default_factory=dict)

    def __post_init__(self) -> None:
        typed = {FieldKey.from_name(k): v for k, v in dict(self.entries).items()}
        alternates = {
            FieldKey.from_name(k): v for k, v in dict(self.alternates).items()
        }
        object.__setattr__(self, "entries", _freeze(typed))
        object.__setattr__(self, "unrecognized", _freeze(self.unrecognized))
        object.__setattr__(self, "alternates", _freeze(alternates))

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "FieldSet":
        """Build a FieldSet from camelCase keys.

        Keys ending in ``_ocr`` become alternates; keys that are not typed
        fields go to the unrecognized side-channel.
        """
        values: Dict[FieldKey, Optional[str]] = {}
        unrecognized: Dict[str, str] = {}
        alternates: Dict[FieldKey, str] = {}

        for key, value in data.items():
            text = None if value is None else str(value)
            if key.endswith(OCR_ALTERNATE_SUFFIX):
                base = key[: -len(OCR_ALTERNATE_SUFFIX)]
                try:
                    alternates[FieldKey(base)] = text or ""
                    continue
                except ValueError:
                    pass
            try:
                values[FieldKey(key)] = text
            except ValueError:
                unrecognized[key] = text or ""

        return cls(entries=values, unrecognized=unrecognized, alternates=alternates)

    def __getitem__(self, key: Union[FieldKey, str]) -> Optional[str]:
        if isinstance(key, str) and key.endswith(OCR_ALTERNATE_SUFFIX):
            base = FieldKey.from_name(key[: -len(OCR_ALTERNATE_SUFFIX)])
            return self.alternates[base]
        return self.entries[FieldKey.from_name(key)]

    def __iter__(self) -> Iterator[FieldKey]:
        return iter(self.entries)

    def __len__(self) -> int:
        return len(self.entries)

    def __contains__(self, key: object) -> bool:
        try:
            self[key]  # type: ignore[index]
        except (KeyError, ValueError):
            return False
        return True

    def value(self, key: Union[FieldKey, str]) -> Optional[str]:
        """Return the field value, or None if the field is absent."""
        try:
            return self[key]
        except (KeyError, ValueError):
            return None

    def has_value(self, key: Union[FieldKey, str]) -> bool:
        """Check that a field is present and non-empty."""
        return bool(self.value(key))

    def filled(self) -> Dict[FieldKey, str]:
        """Typed fields with non-empty values."""
        return {k: v for k, v in self.entries.items() if v}

    def is_empty(self) -> bool:
        return not self.filled()

    def to_dict(self) -> Dict[str, str]:
        """Flatten to camelCase keys, including ``<field>_ocr`` shadow keys.

        Unrecognized raw elements are not included.
        """
        out: Dict[str, str] = {k.value: v for k, v in self.entries.items() if v}
        for key, alt in self.alternates.items():
            out[f"{key.value}{OCR_ALTERNATE_SUFFIX}"] = alt
        return out

    def __eq__(self, other: object) -> bool:
        if isinstance(other, FieldSet):
            return (
                dict(self.entries) == dict(other.entries)
                and dict(self.unrecognized) == dict(other.unrecognized)
                and dict(self.alternates) == dict(other.alternates)
            )
        if isinstance(other, abc.Mapping):
            # Plain mappings compare against the flattened camelCase view
            return self.to_dict() == {
                getattr(k, "value", k): v for k, v in other.items()
            }
        return NotImplemented

    __hash__ = None  # type: ignore[assignment]

    def __repr__(self) -> str:
        return f"FieldSet({self.to_dict()!r})"


@dataclass(frozen=True)
class ExtractionResult:
    """Immutable outcome of one extraction attempt.

    Attributes:
        method: Pipeline that produced this result
        success: Whether the pipeline produced usable data
        confidence: Extractor's self-reported confidence (0-100, clamped)
        fields: Extracted fields (empty on failure)
        processing_time_ms: Time spent in the pipeline
        error: Failure message when success is False
        raw_payload: Opaque provider/decoder output kept for audit
    """

    method: ExtractionMethod
    success: bool
    confidence: float
    fields: FieldSet = field(default_factory=FieldSet)
    processing_time_ms: float = 0.0
    error: Optional[str] = None
    raw_payload: Any = None

    def __post_init__(self) -> None:
        object.__setattr__(
            self, "confidence", float(min(100.0, max(0.0, self.confidence)))
        )

    @classmethod
    def failure(
        cls,
        method: ExtractionMethod,
        error: str,
        processing_time_ms: float = 0.0,
        raw_payload: Any = None,
    ) -> "ExtractionResult":
        """Create a failed result (``success=False``, confidence 0)."""
        return cls(
            method=method,
            success=False,
            confidence=0.0,
            fields=FieldSet(),
            processing_time_ms=processing_time_ms,
            error=error,
            raw_payload=raw_payload,
        )

    def to_dict(self) -> Dict[str, Any]:
        """JSON-ready summary (raw payload omitted)."""
        return {
            "method": self.method.value,
            "success": self.success,
            "confidence": self.confidence,
            "data": self.fields.to_dict(),
            "processingTimeMs": round(self.processing_time_ms, 1),
            "error": self.error,
        }
