"""Hybrid document scan processor.

This module orchestrates the complete scan of one identity document photo:
    1. BARCODE PATH: multi-strategy decode + AAMVA parse
    2. OCR PATH: optical-text provider call
    3. RECONCILIATION: score both, select, merge

The two paths share no mutable state. Under the PARALLEL policy they run on
two worker threads and are joined before reconciliation; under SEQUENTIAL the
barcode path runs first. A path that blows up is recorded as a failed result
and never aborts the other one.

Example:
    >>> processor = HybridScanProcessor.from_config()
    >>> result = processor.scan(image)
    >>> if result.has_usable_data:
    ...     print(result.selected_method, result.selected_fields.to_dict())
"""

import logging
import time
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import Callable, Optional, Union

import numpy as np

from src.barcode.decoder import BarcodeDecoder
from src.barcode.primitive import BarcodeDecodePrimitive, create_primitive
from src.barcode.scanner import BarcodeScanner
from src.common.deadline import Clock
from src.common.types import ExtractionMethod, ExtractionResult, ImageBuffer
from src.ocr.adapter import OCRExtractionAdapter, OCRExtractionService
from src.ocr.factory import create_service

from .config_loader import Config, get_default_config, load_config
from .engine import ReconciliationEngine
from .scorer import ConfidenceScorer
from .types import ReconciledResult, ScanPolicy

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[ExtractionMethod, int], None]

PROGRESS_STARTED = 30
PROGRESS_DONE = 100


class HybridScanProcessor:
    """Runs both extraction paths on one image and reconciles them.

    Args:
        barcode_scanner: Barcode path
        ocr_service: OCR path
        engine: Reconciliation engine
        config: Full configuration (only the reconciliation section is read)

    Attributes:
        barcode_scanner: Barcode path
        ocr_service: OCR path
        engine: Reconciliation engine
        config: Full configuration
    """

    def __init__(
        self,
        barcode_scanner: BarcodeScanner,
        ocr_service: OCRExtractionService,
        engine: Optional[ReconciliationEngine] = None,
        config: Optional[Config] = None,
    ):
        self.config = config if config is not None else Config()
        self.barcode_scanner = barcode_scanner
        self.ocr_service = ocr_service
        self.engine = (
            engine
            if engine is not None
            else ReconciliationEngine(
                ConfidenceScorer(self.config.scoring), self.config.reconciliation
            )
        )

    @classmethod
    def from_config(
        cls,
        config_path: Optional[Union[str, Path]] = None,
        ocr_adapter: Optional[OCRExtractionAdapter] = None,
        primitive: Optional[BarcodeDecodePrimitive] = None,
        clock: Optional[Clock] = None,
    ) -> "HybridScanProcessor":
        """Build every component from a YAML configuration.

        Args:
            config_path: Optional path to config YAML. If None, uses defaults.
            ocr_adapter: OCR adapter to use instead of the configured provider
            primitive: Decode primitive (default: the configured reader)
            clock: Clock for the barcode deadlines
        """
        if config_path is None:
            config = get_default_config()
        else:
            config = load_config(Path(config_path))

        if primitive is None:
            primitive = create_primitive(config.barcode.reader)
        decoder = BarcodeDecoder(primitive, config=config.barcode, clock=clock)
        processor = cls(
            barcode_scanner=BarcodeScanner(decoder),
            ocr_service=create_service(config.ocr, adapter=ocr_adapter),
            config=config,
        )
        logger.info(
            f"HybridScanProcessor initialized: policy={config.reconciliation.policy.value}, "
            f"ocr={processor.ocr_service.adapter.name}"
        )
        return processor

    def scan(
        self,
        image: Union[ImageBuffer, np.ndarray],
        policy: Optional[ScanPolicy] = None,
        preferred_method: Optional[ExtractionMethod] = None,
        on_progress: Optional[ProgressCallback] = None,
    ) -> ReconciledResult:
        """Scan one document with both methods and reconcile the results.

        Args:
            image: Photo of the document (RGB/RGBA/grayscale uint8)
            policy: Scheduling policy (default: configured policy)
            preferred_method: Method to select when both paths succeed
            on_progress: Called with (method, percent) at 30 and 100 for each
                path; under PARALLEL it is called from worker threads

        Returns:
            ReconciledResult

        Raises:
            InvalidImage: If the image is empty or has zero dimensions
        """
        buffer = ImageBuffer.from_numpy(image)
        policy = policy if policy is not None else self.config.reconciliation.policy

        start_time = time.perf_counter()
        logger.info(f"Starting hybrid scan ({policy.value})")

        if policy == ScanPolicy.PARALLEL:
            with ThreadPoolExecutor(max_workers=2, thread_name_prefix="scan") as executor:
                barcode_future = executor.submit(
                    self._run_path, ExtractionMethod.BARCODE, buffer, on_progress
                )
                ocr_future = executor.submit(
                    self._run_path, ExtractionMethod.OPTICAL_TEXT, buffer, on_progress
                )
                barcode_result = barcode_future.result()
                ocr_result = ocr_future.result()
        else:
            barcode_result = self._run_path(ExtractionMethod.BARCODE, buffer, on_progress)
            ocr_result = self._run_path(ExtractionMethod.OPTICAL_TEXT, buffer, on_progress)

        total_ms = (time.perf_counter() - start_time) * 1000
        result = self.engine.reconcile(
            barcode_result,
            ocr_result,
            preferred_method=preferred_method,
            total_processing_time_ms=total_ms,
        )

        logger.info(
            f"Hybrid scan complete: method={result.selected_method.value}, "
            f"confidence={result.overall_confidence}, time={total_ms:.1f}ms"
        )
        return result

    def scan_single_method(
        self,
        image: Union[ImageBuffer, np.ndarray],
        method: ExtractionMethod,
    ) -> ExtractionResult:
        """Run one path only, bypassing reconciliation.

        Raises:
            InvalidImage: If the image is empty or has zero dimensions
        """
        buffer = ImageBuffer.from_numpy(image)
        return self._run_path(method, buffer, None)

    def _run_path(
        self,
        method: ExtractionMethod,
        image: ImageBuffer,
        on_progress: Optional[ProgressCallback],
    ) -> ExtractionResult:
        self._report(on_progress, method, PROGRESS_STARTED)
        start_time = time.perf_counter()

        try:
            if method == ExtractionMethod.BARCODE:
                result = self.barcode_scanner.scan(image)
            else:
                result = self.ocr_service.scan(image)
        except Exception as e:
            logger.error(f"{method.value} path raised: {e}", exc_info=True)
            result = ExtractionResult.failure(
                method,
                f"{method.value} scan failed: {e}",
                processing_time_ms=(time.perf_counter() - start_time) * 1000,
            )

        self._report(on_progress, method, PROGRESS_DONE)
        return result

    def _report(
        self,
        on_progress: Optional[ProgressCallback],
        method: ExtractionMethod,
        percent: int,
    ) -> None:
        if on_progress is None:
            return
        try:
            on_progress(method, percent)
        except Exception as e:
            logger.warning(f"Progress callback failed: {e}", exc_info=True)
