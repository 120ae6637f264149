"""Pluggable barcode decode primitives.

A decode primitive reads one symbol from one image and reports a tri-state
``DecodeOutcome``. "No symbol in this image" is the common case and is
returned as ``NOT_FOUND``, never raised.

Two primitives are provided:
    - ZxingDecodePrimitive (default): zxing-cpp, reads PDF417, QR, Data
      Matrix, Aztec and the 1D codes
    - PyzbarDecodePrimitive: ZBar, for QR and 1D codes only

Any object with a matching ``decode`` method can be injected into
``BarcodeDecoder`` instead, e.g. a test double.

Example:
    >>> primitive = create_primitive(BarcodeReader.ZXING)
    >>> outcome = primitive.decode(image, [BarcodeFormat.PDF417])
    >>> if outcome.is_found():
    ...     print(outcome.format, outcome.text[:20])
"""

import functools
import logging
import operator
from typing import Dict, List, Optional, Protocol, Sequence

import cv2
import numpy as np

from src.common.deadline import Deadline
from src.common.types import ImageBuffer, Point

from .types import BarcodeFormat, BarcodeReader, DecodeOutcome

logger = logging.getLogger(__name__)


class BarcodeDecodePrimitive(Protocol):
    """Reads a single 2D/1D symbol from an image."""

    def decode(
        self,
        image: ImageBuffer,
        allowed_formats: Sequence[BarcodeFormat],
        deadline: Optional[Deadline] = None,
    ) -> DecodeOutcome:
        """Decode one symbol.

        Args:
            image: Image to search
            allowed_formats: Symbologies to look for
            deadline: Cooperative deadline; implementations may call
                ``deadline.check()`` during long work

        Returns:
            DecodeOutcome (FOUND, NOT_FOUND or ERROR)
        """
        ...


def to_gray(data: np.ndarray) -> np.ndarray:
    """Convert an RGB/RGBA/single-channel array to a 2D grayscale array."""
    if data.ndim == 2:
        return data
    if data.shape[2] == 1:
        return data[:, :, 0]
    if data.shape[2] == 4:
        return cv2.cvtColor(data, cv2.COLOR_RGBA2GRAY)
    return cv2.cvtColor(data, cv2.COLOR_RGB2GRAY)


# zxing-cpp BarcodeFormat member names
ZXING_FORMAT_NAMES: Dict[BarcodeFormat, str] = {
    BarcodeFormat.PDF417: "PDF417",
    BarcodeFormat.QR_CODE: "QRCode",
    BarcodeFormat.DATA_MATRIX: "DataMatrix",
    BarcodeFormat.AZTEC: "Aztec",
    BarcodeFormat.CODE128: "Code128",
    BarcodeFormat.CODE39: "Code39",
}


class ZxingDecodePrimitive:
    """Decode primitive backed by zxing-cpp.

    The zxingcpp module is loaded on first use, so constructing the
    primitive never fails.

    Args:
        try_rotate: Also search rotated symbols (default: True)
    """

    def __init__(self, try_rotate: bool = True):
        self.try_rotate = try_rotate
        self._zxing = None  # Lazy-loaded

    @property
    def zxing(self):
        """Lazy-load the zxingcpp module.

        Raises:
            ImportError: If zxing-cpp is not installed.
        """
        if self._zxing is None:
            try:
                import zxingcpp

                self._zxing = zxingcpp
                logger.info("zxing-cpp decoder loaded successfully")
            except ImportError as e:
                logger.error(
                    "Failed to import zxingcpp. Install with: pip install zxing-cpp"
                )
                raise ImportError(
                    "zxing-cpp not available. Run: pip install zxing-cpp"
                ) from e
        return self._zxing

    def decode(
        self,
        image: ImageBuffer,
        allowed_formats: Sequence[BarcodeFormat],
        deadline: Optional[Deadline] = None,
    ) -> DecodeOutcome:
        try:
            zxing = self.zxing
        except ImportError as e:
            return DecodeOutcome.failed(str(e))

        formats = self.format_mask(zxing, allowed_formats)
        if formats is None:
            return DecodeOutcome.failed(
                f"No zxing reader for formats: {[f.value for f in allowed_formats]}"
            )

        gray = to_gray(image.data)

        if deadline is not None:
            deadline.check()

        try:
            results = zxing.read_barcodes(
                gray, formats=formats, try_rotate=self.try_rotate
            )
        except Exception as e:
            logger.error(f"zxing decode failed: {e}", exc_info=True)
            return DecodeOutcome.failed(f"zxing decode failed: {e}")

        if not results:
            return DecodeOutcome.not_found()

        symbol = results[0]
        barcode_format = self.to_format(zxing, symbol.format)
        position = symbol.position
        points = tuple(
            Point(x=corner.x, y=corner.y)
            for corner in (
                position.top_left,
                position.top_right,
                position.bottom_right,
                position.bottom_left,
            )
        )

        logger.debug(
            f"zxing found {barcode_format.value if barcode_format else symbol.format}: "
            f"{len(symbol.text)} chars"
        )
        return DecodeOutcome.found(symbol.text, barcode_format, points)

    @staticmethod
    def format_mask(zxing, allowed_formats: Sequence[BarcodeFormat]):
        """OR the zxing formats for the allowed symbologies, or None if none map."""
        flags = []
        for barcode_format in allowed_formats:
            name = ZXING_FORMAT_NAMES.get(barcode_format)
            flag = getattr(zxing.BarcodeFormat, name, None) if name else None
            if flag is None:
                logger.debug(f"zxing cannot read {barcode_format.value}, skipping")
                continue
            flags.append(flag)
        if not flags:
            return None
        return functools.reduce(operator.or_, flags)

    @staticmethod
    def to_format(zxing, zxing_format) -> Optional[BarcodeFormat]:
        """Map a zxing result format back to a BarcodeFormat."""
        for barcode_format, name in ZXING_FORMAT_NAMES.items():
            if getattr(zxing.BarcodeFormat, name, None) == zxing_format:
                return barcode_format
        return None


# ZBar symbol names; ZBar has no Data Matrix or Aztec reader and its PDF417
# reader is disabled in most builds.
ZBAR_SYMBOL_NAMES: Dict[BarcodeFormat, str] = {
    BarcodeFormat.QR_CODE: "QRCODE",
    BarcodeFormat.CODE128: "CODE128",
    BarcodeFormat.CODE39: "CODE39",
}


class PyzbarDecodePrimitive:
    """Decode primitive backed by pyzbar.

    The pyzbar module (and the native zbar library behind it) is loaded on
    first use, so constructing the primitive never fails.

    Args:
        encoding: Text encoding of symbol payloads (default: utf-8)
    """

    def __init__(self, encoding: str = "utf-8"):
        self.encoding = encoding
        self._pyzbar = None  # Lazy-loaded

    @property
    def pyzbar(self):
        """Lazy-load the pyzbar decoder module.

        Raises:
            ImportError: If pyzbar or the zbar shared library is missing.
        """
        if self._pyzbar is None:
            try:
                from pyzbar import pyzbar

                self._pyzbar = pyzbar
                logger.info("pyzbar decoder loaded successfully")
            except ImportError as e:
                logger.error(
                    "Failed to import pyzbar. "
                    "Install with: pip install pyzbar (requires libzbar0)"
                )
                raise ImportError(
                    "pyzbar not available. Run: pip install pyzbar"
                ) from e
        return self._pyzbar

    def decode(
        self,
        image: ImageBuffer,
        allowed_formats: Sequence[BarcodeFormat],
        deadline: Optional[Deadline] = None,
    ) -> DecodeOutcome:
        try:
            pyzbar = self.pyzbar
        except ImportError as e:
            return DecodeOutcome.failed(str(e))

        symbols = self._zbar_symbols(pyzbar, allowed_formats)
        if not symbols:
            return DecodeOutcome.failed(
                f"No ZBar reader for formats: {[f.value for f in allowed_formats]}"
            )

        gray = to_gray(image.data)

        if deadline is not None:
            deadline.check()

        try:
            decoded = pyzbar.decode(gray, symbols=symbols)
        except Exception as e:
            logger.error(f"pyzbar decode failed: {e}", exc_info=True)
            return DecodeOutcome.failed(f"pyzbar decode failed: {e}")

        if not decoded:
            return DecodeOutcome.not_found()

        symbol = decoded[0]
        text = symbol.data.decode(self.encoding, errors="replace")
        barcode_format = self._to_format(symbol.type)
        points = tuple(Point(x=p.x, y=p.y) for p in (symbol.polygon or []))

        logger.debug(
            f"pyzbar found {symbol.type}: {len(text)} chars, {len(points)} points"
        )
        return DecodeOutcome.found(text, barcode_format, points)

    def _zbar_symbols(self, pyzbar, allowed_formats: Sequence[BarcodeFormat]) -> List:
        symbols = []
        for barcode_format in allowed_formats:
            name = ZBAR_SYMBOL_NAMES.get(barcode_format)
            symbol = getattr(pyzbar.ZBarSymbol, name, None) if name else None
            if symbol is None:
                logger.debug(f"ZBar cannot read {barcode_format.value}, skipping")
                continue
            symbols.append(symbol)
        return symbols

    def _to_format(self, zbar_type: str) -> Optional[BarcodeFormat]:
        for barcode_format, name in ZBAR_SYMBOL_NAMES.items():
            if name == zbar_type:
                return barcode_format
        return None


def create_primitive(
    reader: BarcodeReader = BarcodeReader.ZXING,
) -> BarcodeDecodePrimitive:
    """Create the decode primitive for a configured reader library."""
    if reader == BarcodeReader.PYZBAR:
        return PyzbarDecodePrimitive()
    return ZxingDecodePrimitive()
