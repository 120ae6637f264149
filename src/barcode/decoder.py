"""Multi-strategy barcode decoder.

Photos of ID cards are often too small, blurry or low-contrast for a single
decode pass. The decoder runs a fixed list of preprocessing strategies and
tries the decode primitive after each one, stopping at the first symbol found.

Strategy order (default):
    original -> larger_2x -> larger_3x -> high_contrast -> grayscale
    -> sharpen -> threshold

Budgets:
    - Each preprocessing transform gets its own deadline (default 2000ms)
    - Each decode call gets its own deadline (default 3000ms)
    - Both are carved from a total scan deadline (default 15000ms); once it
      is spent the remaining strategies are skipped

An expired attempt deadline aborts only that attempt. Finding nothing after
every strategy is a normal outcome and is reported in the returned
``BarcodeDecodeReport``, not raised.

Example:
    >>> decoder = BarcodeDecoder(ZxingDecodePrimitive())
    >>> report = decoder.decode(image)
    >>> if report.success:
    ...     print(f"{report.strategy}: {report.outcome.text[:30]}")
"""

import logging
from typing import List, Optional, Union

import numpy as np

from src.common.deadline import Clock, Deadline, MonotonicClock
from src.common.exceptions import DeadlineExceeded
from src.common.types import ImageBuffer

from .config_loader import BarcodeModuleConfig, StrategyConfig
from .preprocessor import ImagePreprocessor
from .primitive import BarcodeDecodePrimitive
from .types import (
    AttemptStatus,
    BarcodeDecodeReport,
    DecodeOutcome,
    DecodeStatus,
    StrategyAttempt,
)

logger = logging.getLogger(__name__)

NO_BARCODE_ERROR = "No barcode detected after all strategies"


class BarcodeDecoder:
    """Runs preprocessing strategies until the decode primitive finds a symbol.

    Args:
        primitive: Decode primitive to call after each transform
        config: Barcode module configuration (strategies, budgets, formats)
        preprocessor: Pixel transform implementation
        clock: Clock for the deadlines (VirtualClock in tests)

    Attributes:
        primitive: Decode primitive
        config: Barcode module configuration
        preprocessor: Pixel transform implementation
        clock: Clock used for all deadlines
    """

    def __init__(
        self,
        primitive: BarcodeDecodePrimitive,
        config: Optional[BarcodeModuleConfig] = None,
        preprocessor: Optional[ImagePreprocessor] = None,
        clock: Optional[Clock] = None,
    ):
        self.primitive = primitive
        self.config = config if config is not None else BarcodeModuleConfig()
        self.preprocessor = (
            preprocessor
            if preprocessor is not None
            else ImagePreprocessor(self.config.preprocessing)
        )
        self.clock = clock if clock is not None else MonotonicClock()

        logger.info(
            f"BarcodeDecoder initialized: "
            f"strategies={[s.name for s in self.config.strategies]}, "
            f"budgets={self.config.budgets.preprocess_ms:.0f}/"
            f"{self.config.budgets.decode_ms:.0f}/"
            f"{self.config.budgets.total_ms:.0f}ms"
        )

    def decode(self, image: Union[ImageBuffer, np.ndarray]) -> BarcodeDecodeReport:
        """Try every strategy in order until one yields a symbol.

        Args:
            image: Photo of the document

        Returns:
            BarcodeDecodeReport; ``success`` is False when every strategy
            missed, timed out or was skipped

        Raises:
            InvalidImage: If the image is empty or zero-sized
        """
        buffer = ImageBuffer.from_numpy(image)
        budgets = self.config.budgets
        total = Deadline(budgets.total_ms, self.clock, label="barcode scan")
        attempts: List[StrategyAttempt] = []

        for index, strategy in enumerate(self.config.strategies):
            if total.expired():
                skipped = self.config.strategies[index:]
                logger.warning(
                    f"Total barcode budget of {budgets.total_ms:.0f}ms spent, "
                    f"skipping {[s.name for s in skipped]}"
                )
                attempts.extend(
                    StrategyAttempt(
                        strategy=s.name,
                        status=AttemptStatus.SKIPPED,
                        detail="total scan budget spent",
                    )
                    for s in skipped
                )
                break

            logger.info(f"Trying strategy: {strategy.name}")
            attempt, outcome = self._attempt(buffer, strategy, total)
            attempts.append(attempt)

            if outcome is not None and outcome.is_found():
                logger.info(
                    f"Barcode found with strategy '{strategy.name}': "
                    f"format={outcome.format.value if outcome.format else 'unknown'}, "
                    f"chars={len(outcome.text)}"
                )
                return BarcodeDecodeReport(
                    outcome=outcome,
                    strategy=strategy.name,
                    attempts=tuple(attempts),
                    processing_time_ms=total.elapsed_ms(),
                )

        logger.warning(f"{NO_BARCODE_ERROR} ({len(attempts)} attempts)")
        return BarcodeDecodeReport(
            outcome=DecodeOutcome.not_found(),
            strategy=None,
            attempts=tuple(attempts),
            error=NO_BARCODE_ERROR,
            processing_time_ms=total.elapsed_ms(),
        )

    def _attempt(
        self,
        image: ImageBuffer,
        strategy: StrategyConfig,
        total: Deadline,
    ):
        """Run one preprocess + decode attempt under its own deadlines.

        Returns:
            Tuple of (StrategyAttempt, DecodeOutcome or None)
        """
        budgets = self.config.budgets
        started_at = self.clock.now_ms()

        def elapsed() -> float:
            return self.clock.now_ms() - started_at

        prep_deadline = total.child(
            budgets.preprocess_ms, label=f"{strategy.name} processing"
        )
        try:
            processed = self.preprocessor.transform(
                image, strategy.kind, strategy.parameter, deadline=prep_deadline
            )
            prep_deadline.check()
        except DeadlineExceeded as e:
            logger.warning(f"Strategy '{strategy.name}' failed: {e.message}")
            return (
                StrategyAttempt(strategy.name, AttemptStatus.TIMEOUT, elapsed(), e.message),
                None,
            )
        except ValueError as e:
            logger.warning(f"Strategy '{strategy.name}' preprocessing failed: {e}")
            return (
                StrategyAttempt(strategy.name, AttemptStatus.ERROR, elapsed(), str(e)),
                None,
            )

        decode_deadline = total.child(
            budgets.decode_ms, label=f"{strategy.name} decode"
        )
        try:
            outcome = self.primitive.decode(
                processed, self.config.allowed_formats, deadline=decode_deadline
            )
            # A primitive that ignores the deadline still loses its result
            decode_deadline.check()
        except DeadlineExceeded as e:
            logger.warning(f"Strategy '{strategy.name}' failed: {e.message}")
            return (
                StrategyAttempt(strategy.name, AttemptStatus.TIMEOUT, elapsed(), e.message),
                None,
            )
        except Exception as e:
            logger.error(
                f"Decode primitive raised in strategy '{strategy.name}': {e}",
                exc_info=True,
            )
            return (
                StrategyAttempt(strategy.name, AttemptStatus.ERROR, elapsed(), str(e)),
                None,
            )

        if outcome.status == DecodeStatus.FOUND:
            status = AttemptStatus.FOUND
        elif outcome.status == DecodeStatus.ERROR:
            status = AttemptStatus.ERROR
            logger.warning(f"Strategy '{strategy.name}' decode error: {outcome.error}")
        else:
            status = AttemptStatus.NOT_FOUND
            logger.debug(f"Strategy '{strategy.name}': no symbol")

        return (
            StrategyAttempt(strategy.name, status, elapsed(), outcome.error),
            outcome,
        )
