"""Unit tests for the Tesseract adapter."""

from unittest.mock import MagicMock

import numpy as np
import pytest

from src.common.exceptions import OCRProviderError
from src.common.types import FieldKey, ImageBuffer
from src.ocr.config_loader import TesseractConfig
from src.ocr.tesseract_adapter import TesseractAdapter, parse_ocr_text


def _word(block, par, line, text, conf):
    return {"block_num": block, "par_num": par, "line_num": line, "text": text, "conf": conf}


def _to_data(words):
    keys = ["block_num", "par_num", "line_num", "text", "conf"]
    return {key: [w[key] for w in words] for key in keys}


@pytest.fixture
def tesseract_data():
    """Provide image_to_data output for the front of a license."""
    return _to_data(
        [
            _word(1, 0, 0, "", -1),
            _word(1, 1, 2, "LN", 96),
            _word(1, 1, 2, "SMITH", 90),
            _word(1, 1, 1, "DL", 95),
            _word(1, 1, 1, "X1234567", 91),
            _word(1, 1, 3, "FN", 88),
            _word(1, 1, 3, "JOHN", 92),
            _word(2, 1, 1, "DOB", 94),
            _word(2, 1, 1, "01/15/1990", 84),
            _word(2, 1, 1, " ", 95),
        ]
    )


@pytest.fixture
def adapter():
    """Provide adapter with a mocked pytesseract module."""
    adapter = TesseractAdapter(TesseractConfig(lang="eng", psm=6))
    adapter._pytesseract = MagicMock()
    return adapter


@pytest.fixture
def image():
    """Provide an RGB image buffer."""
    return ImageBuffer(data=np.full((30, 60, 3), 255, dtype=np.uint8))


class TestTextParsing:
    """Test field extraction from recognized text."""

    def test_labelled_lines(self):
        """Test name, sex and address labels."""
        text = "LN SMITH\nFN JOHN\nSEX: M\nADDRESS 123 MAIN ST"
        values = parse_ocr_text(text)

        assert values[FieldKey.LAST_NAME] == "SMITH"
        assert values[FieldKey.FIRST_NAME] == "JOHN"
        assert values[FieldKey.SEX] == "M"
        assert values[FieldKey.ADDRESS] == "123 MAIN ST"
        assert values[FieldKey.FULL_NAME] == "JOHN SMITH"

    def test_numbered_labels(self):
        """Test AAMVA front-of-card numbered labels."""
        values = parse_ocr_text("1 SMITH\n1LN: DOE\n2 FN: JANE")
        assert values[FieldKey.LAST_NAME] == "DOE"
        assert values[FieldKey.FIRST_NAME] == "JANE"

    def test_no_labels(self):
        """Test text without labels gives no fields."""
        assert parse_ocr_text("hello world") == {}


class TestExtract:
    """Test the pytesseract call."""

    def test_extract(self, adapter, image, tesseract_data):
        """Test words are grouped into lines and parsed."""
        adapter._pytesseract.image_to_data.return_value = tesseract_data

        extraction = adapter.extract(image)

        assert extraction.raw_response["text"] == (
            "DL X1234567\nLN SMITH\nFN JOHN\nDOB 01/15/1990"
        )
        assert extraction.fields.value(FieldKey.ID_NUMBER) == "X1234567"
        assert extraction.fields.value(FieldKey.DATE_OF_BIRTH) == "01/15/1990"
        assert extraction.fields.value(FieldKey.FULL_NAME) == "JOHN SMITH"
        assert extraction.confidence == pytest.approx(91.25)

    def test_image_passed_as_grayscale(self, adapter, image, tesseract_data):
        """Test the image is converted to grayscale with the configured psm."""
        adapter._pytesseract.image_to_data.return_value = tesseract_data

        adapter.extract(image)

        args, kwargs = adapter._pytesseract.image_to_data.call_args
        assert args[0].ndim == 2
        assert kwargs["lang"] == "eng"
        assert kwargs["config"] == "--psm 6"

    def test_no_words(self, adapter, image):
        """Test an empty recognition gives confidence 0."""
        adapter._pytesseract.image_to_data.return_value = _to_data([])

        extraction = adapter.extract(image)

        assert extraction.fields.is_empty()
        assert extraction.confidence == 0.0

    def test_failure_wrapped(self, adapter, image):
        """Test Tesseract errors become OCRProviderError."""
        adapter._pytesseract.image_to_data.side_effect = RuntimeError("tesseract not found")

        with pytest.raises(OCRProviderError):
            adapter.extract(image)

    def test_not_loaded_on_init(self):
        """Test pytesseract is not imported during construction."""
        assert TesseractAdapter()._pytesseract is None
