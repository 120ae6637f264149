"""Builds the configured OCR adapter and its service boundary."""

import logging
from typing import Optional

from src.common.exceptions import ConfigurationError

from .adapter import OCRExtractionAdapter, OCRExtractionService
from .config_loader import OCRModuleConfig
from .tesseract_adapter import TesseractAdapter
from .textract_adapter import TextractAnalyzeIDAdapter
from .types import OCRProvider

logger = logging.getLogger(__name__)


def create_adapter(config: Optional[OCRModuleConfig] = None) -> OCRExtractionAdapter:
    """Create the adapter selected by ``config.provider``.

    Raises:
        ConfigurationError: If the provider is not supported
    """
    config = config if config is not None else OCRModuleConfig()

    if config.provider == OCRProvider.TEXTRACT:
        adapter = TextractAnalyzeIDAdapter(
            region=config.textract.region,
            jpeg_quality=config.textract.jpeg_quality,
            timeout_s=config.timeout_s,
        )
    elif config.provider == OCRProvider.TESSERACT:
        adapter = TesseractAdapter(config.tesseract)
    else:
        raise ConfigurationError(
            f"Unsupported OCR provider: {config.provider}", component="ocr"
        )

    logger.info(f"OCR adapter selected: {adapter.name}")
    return adapter


def create_service(
    config: Optional[OCRModuleConfig] = None,
    adapter: Optional[OCRExtractionAdapter] = None,
) -> OCRExtractionService:
    """Wrap the configured (or injected) adapter in an OCRExtractionService."""
    config = config if config is not None else OCRModuleConfig()
    if adapter is None:
        adapter = create_adapter(config)
    return OCRExtractionService(adapter, timeout_s=config.timeout_s)
