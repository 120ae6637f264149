"""Local Tesseract OCR adapter.

Offline alternative to Textract. Tesseract only returns words, so fields are
recovered from the recognized text with loose label patterns: the same
date-of-birth / expiration / ID patterns used for generic barcode payloads,
plus the name, sex and address labels printed on the front of most US
licenses.

Example:
    >>> adapter = TesseractAdapter(TesseractConfig(lang="eng", psm=6))
    >>> extraction = adapter.extract(image)
    >>> print(extraction.fields.value("dateOfBirth"), extraction.confidence)
"""

import logging
import re
from typing import Dict, List, Optional, Tuple

import cv2
import numpy as np

from src.barcode.aamva_parser import parse_generic, synthesize_full_name
from src.common.exceptions import OCRProviderError
from src.common.types import FieldKey, FieldSet, ImageBuffer

from .config_loader import TesseractConfig
from .types import OCRExtraction

logger = logging.getLogger(__name__)

# Front-of-card labels (one field per recognized line)
LABEL_PATTERNS: Dict[FieldKey, re.Pattern] = {
    FieldKey.LAST_NAME: re.compile(
        r"^\s*(?:\d\s*)?(?:LN|LAST NAME)[\s:.]+([A-Z][A-Z' -]*[A-Z])\s*$",
        re.IGNORECASE | re.MULTILINE,
    ),
    FieldKey.FIRST_NAME: re.compile(
        r"^\s*(?:\d\s*)?(?:FN|FIRST NAME)[\s:.]+([A-Z][A-Z' -]*[A-Z])\s*$",
        re.IGNORECASE | re.MULTILINE,
    ),
    FieldKey.SEX: re.compile(r"\bSEX[\s:.]*([MFX])\b", re.IGNORECASE),
    FieldKey.ADDRESS: re.compile(
        r"^\s*(?:ADDRESS|ADDR)[\s:.]+(.+?)\s*$", re.IGNORECASE | re.MULTILINE
    ),
}


def parse_ocr_text(text: str) -> Dict[FieldKey, str]:
    """Extract fields from recognized text.

    Args:
        text: Recognized text, one line per printed line

    Returns:
        Mapping of matched fields to values
    """
    values = parse_generic(text)
    for key, pattern in LABEL_PATTERNS.items():
        match = pattern.search(text)
        if match and match.group(1).strip():
            values[key] = match.group(1).strip()

    full_name = synthesize_full_name(values)
    if full_name:
        values[FieldKey.FULL_NAME] = full_name
    return values


class TesseractAdapter:
    """OCR adapter backed by pytesseract.

    Args:
        config: Tesseract language and page segmentation settings
    """

    name = "tesseract"

    def __init__(self, config: Optional[TesseractConfig] = None):
        self.config = config if config is not None else TesseractConfig()
        self._pytesseract = None  # Lazy-loaded

    @property
    def pytesseract(self):
        """Lazy-load pytesseract.

        Raises:
            ImportError: If pytesseract is not installed.
        """
        if self._pytesseract is None:
            try:
                import pytesseract

                self._pytesseract = pytesseract
            except ImportError as e:
                raise ImportError(
                    "pytesseract not available. Run: pip install pytesseract "
                    "(requires the tesseract binary)"
                ) from e
        return self._pytesseract

    def extract(self, image: ImageBuffer) -> OCRExtraction:
        """Recognize text and extract labelled fields.

        Raises:
            OCRProviderError: If Tesseract is missing or fails
        """
        gray = self._to_gray(image.data)

        try:
            pytesseract = self.pytesseract
            data = pytesseract.image_to_data(
                gray,
                lang=self.config.lang,
                config=f"--psm {self.config.psm}",
                output_type=pytesseract.Output.DICT,
            )
        except Exception as e:
            raise OCRProviderError(
                "Tesseract recognition failed", component=self.name, original_error=e
            ) from e

        lines, confidences = self._collect_lines(data)
        text = "\n".join(lines)
        confidence = float(np.mean(confidences)) if confidences else 0.0

        values = parse_ocr_text(text)
        logger.debug(
            f"Tesseract recognized {len(lines)} lines, {len(values)} fields, "
            f"confidence={confidence:.1f}"
        )

        return OCRExtraction(
            fields=FieldSet(entries=values),
            confidence=confidence,
            raw_response={"text": text},
        )

    def _collect_lines(self, data: Dict[str, List]) -> Tuple[List[str], List[float]]:
        """Group words into lines in reading order, keeping word confidences."""
        lines: Dict[Tuple[int, int, int], List[str]] = {}
        confidences: List[float] = []

        for i in range(len(data["text"])):
            word = str(data["text"][i]).strip()
            conf = float(data["conf"][i])
            # conf < 0 marks non-word boxes (blocks, paragraphs, lines)
            if not word or conf < 0:
                continue
            line_id = (
                int(data["block_num"][i]),
                int(data["par_num"][i]),
                int(data["line_num"][i]),
            )
            lines.setdefault(line_id, []).append(word)
            confidences.append(conf)

        return [" ".join(words) for _, words in sorted(lines.items())], confidences

    def _to_gray(self, data: np.ndarray) -> np.ndarray:
        if data.ndim == 2:
            return data
        if data.shape[2] == 1:
            return data[:, :, 0]
        if data.shape[2] == 4:
            return cv2.cvtColor(data, cv2.COLOR_RGBA2GRAY)
        return cv2.cvtColor(data, cv2.COLOR_RGB2GRAY)
