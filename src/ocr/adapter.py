"""Optical-text extraction boundary.

Providers implement ``OCRExtractionAdapter`` and are free to raise on
network, auth or throttling problems. ``OCRExtractionService`` is the only
caller of an adapter: it enforces the call timeout and converts every
provider failure into a failed ``ExtractionResult``, so the reconciliation
stage can fall back to the barcode path instead of aborting the scan.

Example:
    >>> service = OCRExtractionService(TextractAnalyzeIDAdapter(), timeout_s=20)
    >>> result = service.scan(image)
    >>> if not result.success:
    ...     print(result.error)
"""

import logging
import time
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeoutError
from typing import Optional, Protocol, Union

import numpy as np

from src.common.exceptions import ScanError
from src.common.types import ExtractionMethod, ExtractionResult, ImageBuffer

from .types import OCRExtraction

logger = logging.getLogger(__name__)


class OCRExtractionAdapter(Protocol):
    """Black-box optical-text provider."""

    name: str

    def extract(self, image: ImageBuffer) -> OCRExtraction:
        """Extract document fields from an image.

        Raises:
            OCRProviderError: On any provider or transport failure
        """
        ...


class OCRExtractionService:
    """Calls an OCR adapter and packages the outcome as an ExtractionResult.

    On timeout the scan returns a failed result at once, but the provider
    call keeps running on its worker thread until it ends by itself, and
    interpreter exit waits for it. Adapters should bound their own calls
    (the Textract adapter sets its client timeouts to ``timeout_s``).

    Args:
        adapter: Provider adapter
        timeout_s: Maximum seconds to wait for the provider (None = no limit)
    """

    def __init__(self, adapter: OCRExtractionAdapter, timeout_s: Optional[float] = None):
        self.adapter = adapter
        self.timeout_s = timeout_s

    def scan(self, image: Union[ImageBuffer, np.ndarray]) -> ExtractionResult:
        """Run the provider once. Never raises.

        Args:
            image: Photo of the document

        Returns:
            ExtractionResult with method OPTICAL_TEXT; on failure
            ``success=False``, confidence 0 and ``error`` set
        """
        start_time = time.perf_counter()

        def elapsed_ms() -> float:
            return (time.perf_counter() - start_time) * 1000

        try:
            buffer = ImageBuffer.from_numpy(image)
            extraction = self._call_adapter(buffer)
        except FutureTimeoutError:
            message = f"{self.adapter.name} timed out after {self.timeout_s}s"
            logger.warning(f"OCR scan failed: {message}")
            return ExtractionResult.failure(
                ExtractionMethod.OPTICAL_TEXT, message, processing_time_ms=elapsed_ms()
            )
        except ScanError as e:
            logger.warning(f"OCR scan failed: {e}")
            return ExtractionResult.failure(
                ExtractionMethod.OPTICAL_TEXT, str(e), processing_time_ms=elapsed_ms()
            )
        except Exception as e:
            logger.error(f"OCR provider {self.adapter.name} raised: {e}", exc_info=True)
            return ExtractionResult.failure(
                ExtractionMethod.OPTICAL_TEXT,
                f"{self.adapter.name} extraction failed: {e}",
                processing_time_ms=elapsed_ms(),
            )

        processing_time_ms = elapsed_ms()
        logger.info(
            f"OCR scan complete: provider={self.adapter.name}, "
            f"fields={len(extraction.fields.filled())}, "
            f"confidence={extraction.confidence:.1f}, time={processing_time_ms:.1f}ms"
        )

        return ExtractionResult(
            method=ExtractionMethod.OPTICAL_TEXT,
            success=True,
            confidence=extraction.confidence,
            fields=extraction.fields,
            processing_time_ms=processing_time_ms,
            raw_payload=extraction.raw_response,
        )

    def _call_adapter(self, image: ImageBuffer) -> OCRExtraction:
        if self.timeout_s is None:
            return self.adapter.extract(image)

        # The worker is abandoned on timeout; a blocking provider call cannot
        # be interrupted from Python.
        executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="ocr")
        try:
            future = executor.submit(self.adapter.extract, image)
            return future.result(timeout=self.timeout_s)
        finally:
            executor.shutdown(wait=False)
