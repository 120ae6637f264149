"""Configuration models for the OCR module.

Pydantic models with validation and defaults for provider selection and the
per-provider settings. The root ``Config`` that aggregates every module's
section lives in ``src.reconciliation.config_loader``.
"""

from typing import Optional

from pydantic import BaseModel, Field

from .types import OCRProvider


class TextractConfig(BaseModel):
    """AWS Textract settings.

    Attributes:
        region: AWS region of the Textract endpoint
        jpeg_quality: JPEG quality of the uploaded image (1-100)
    """

    region: str = "us-east-1"
    jpeg_quality: int = Field(default=95, ge=1, le=100)


class TesseractConfig(BaseModel):
    """Tesseract settings.

    Attributes:
        lang: Tesseract language code
        psm: Page segmentation mode (6 = uniform block of text)
    """

    lang: str = "eng"
    psm: int = Field(default=6, ge=0, le=13)


class OCRModuleConfig(BaseModel):
    """Complete OCR module configuration.

    Attributes:
        provider: Provider used for the optical-text path
        timeout_s: Maximum seconds to wait for the provider (None = no limit)
        textract: Textract settings
        tesseract: Tesseract settings
    """

    provider: OCRProvider = OCRProvider.TEXTRACT
    timeout_s: Optional[float] = Field(default=30.0, gt=0.0)
    textract: TextractConfig = Field(default_factory=TextractConfig)
    tesseract: TesseractConfig = Field(default_factory=TesseractConfig)
