"""Unit tests for the multi-strategy barcode decoder."""

from unittest.mock import Mock

import numpy as np
import pytest

from src.barcode.config_loader import BarcodeModuleConfig, BudgetConfig
from src.barcode.decoder import NO_BARCODE_ERROR, BarcodeDecoder
from src.barcode.types import AttemptStatus, BarcodeFormat, DecodeOutcome
from src.common.exceptions import InvalidImage

STRATEGY_NAMES = [
    "original",
    "larger_2x",
    "larger_3x",
    "high_contrast",
    "grayscale",
    "sharpen",
    "threshold",
]

FOUND = DecodeOutcome.found("@ANSI DAQD1", BarcodeFormat.PDF417)


class ScriptedPrimitive:
    """Decode primitive returning scripted outcomes in call order.

    A script entry may be a DecodeOutcome, an exception to raise, or a
    callable taking the deadline. Calls past the script return NOT_FOUND.
    """

    def __init__(self, script=()):
        self.script = list(script)
        self.calls = []

    def decode(self, image, allowed_formats, deadline=None):
        self.calls.append(image)
        index = len(self.calls) - 1
        if index >= len(self.script):
            return DecodeOutcome.not_found()
        entry = self.script[index]
        if isinstance(entry, Exception):
            raise entry
        if callable(entry):
            return entry(deadline)
        return entry


def _statuses(report):
    return [a.status for a in report.attempts]


class TestStrategyOrder:
    """Test strategies run in order and short-circuit."""

    def test_default_strategy_order(self):
        """Test the default configuration lists the seven strategies."""
        config = BarcodeModuleConfig()
        assert [s.name for s in config.strategies] == STRATEGY_NAMES

    @pytest.mark.parametrize("k", range(1, 8))
    def test_short_circuit_on_first_found(self, rgb_image, virtual_clock, k):
        """Test strategy k succeeding means exactly k primitive calls."""
        primitive = ScriptedPrimitive([DecodeOutcome.not_found()] * (k - 1) + [FOUND])
        decoder = BarcodeDecoder(primitive, clock=virtual_clock)

        report = decoder.decode(rgb_image)

        assert report.success
        assert len(primitive.calls) == k
        assert report.strategy == STRATEGY_NAMES[k - 1]
        assert _statuses(report) == [AttemptStatus.NOT_FOUND] * (k - 1) + [AttemptStatus.FOUND]
        assert report.outcome.text == "@ANSI DAQD1"

    def test_preprocessed_images_passed_to_primitive(self, rgb_image, virtual_clock):
        """Test each strategy hands its transformed image to the primitive."""
        primitive = ScriptedPrimitive()
        BarcodeDecoder(primitive, clock=virtual_clock).decode(rgb_image)

        shapes = [image.shape for image in primitive.calls]
        assert shapes[0] == (24, 32, 3)
        assert shapes[1] == (48, 64, 3)
        assert shapes[2] == (72, 96, 3)

    def test_all_strategies_miss(self, rgb_image, virtual_clock):
        """Test exhaustion is reported as a normal unsuccessful report."""
        primitive = ScriptedPrimitive()
        report = BarcodeDecoder(primitive, clock=virtual_clock).decode(rgb_image)

        assert not report.success
        assert report.error == NO_BARCODE_ERROR
        assert report.strategy is None
        assert len(primitive.calls) == 7
        assert _statuses(report) == [AttemptStatus.NOT_FOUND] * 7


class TestAttemptFailures:
    """Test per-attempt failures never abort the loop."""

    def test_error_outcome_and_exception_continue(self, rgb_image, virtual_clock):
        """Test ERROR outcomes and raising primitives move to the next strategy."""
        primitive = ScriptedPrimitive(
            [DecodeOutcome.failed("library failure"), RuntimeError("boom"), FOUND]
        )
        report = BarcodeDecoder(primitive, clock=virtual_clock).decode(rgb_image)

        assert report.success
        assert report.strategy == "larger_3x"
        assert _statuses(report) == [
            AttemptStatus.ERROR,
            AttemptStatus.ERROR,
            AttemptStatus.FOUND,
        ]
        assert report.attempts[1].detail == "boom"

    def test_decode_overrun_discards_result(self, rgb_image, virtual_clock):
        """Test a result returned after the decode budget is discarded."""

        def slow_found(deadline):
            virtual_clock.advance(3500)
            return FOUND

        primitive = ScriptedPrimitive([slow_found, FOUND])
        report = BarcodeDecoder(primitive, clock=virtual_clock).decode(rgb_image)

        assert report.success
        assert report.strategy == "larger_2x"
        assert report.attempts[0].status == AttemptStatus.TIMEOUT
        assert "exceeded budget of 3000ms" in report.attempts[0].detail

    def test_cooperative_primitive_timeout(self, rgb_image, virtual_clock):
        """Test a primitive raising DeadlineExceeded times out only its attempt."""

        def cooperative(deadline):
            virtual_clock.advance(3000)
            deadline.check()
            return FOUND

        primitive = ScriptedPrimitive([cooperative])
        report = BarcodeDecoder(primitive, clock=virtual_clock).decode(rgb_image)

        assert report.attempts[0].status == AttemptStatus.TIMEOUT
        assert len(primitive.calls) == 7
        assert not report.success

    def test_preprocess_overrun(self, rgb_image, virtual_clock):
        """Test a slow transform times out and skips that decode call."""
        preprocessor = Mock()

        def transform(image, kind, parameter=None, deadline=None):
            if preprocessor.transform.call_count == 1:
                virtual_clock.advance(2500)
            return image

        preprocessor.transform.side_effect = transform
        primitive = ScriptedPrimitive([FOUND])
        decoder = BarcodeDecoder(primitive, preprocessor=preprocessor, clock=virtual_clock)

        report = decoder.decode(rgb_image)

        assert report.attempts[0].status == AttemptStatus.TIMEOUT
        assert report.strategy == "larger_2x"
        assert len(primitive.calls) == 1

    def test_preprocess_value_error(self, rgb_image, virtual_clock):
        """Test a rejected transform parameter records an ERROR attempt."""
        config = BarcodeModuleConfig(
            strategies=[
                {"name": "huge", "kind": "upscale", "parameter": 50},
                {"name": "original", "kind": "identity"},
            ]
        )
        primitive = ScriptedPrimitive([FOUND])
        report = BarcodeDecoder(primitive, config=config, clock=virtual_clock).decode(rgb_image)

        assert _statuses(report) == [AttemptStatus.ERROR, AttemptStatus.FOUND]
        assert report.strategy == "original"


class TestTotalBudget:
    """Test the overall scan deadline."""

    def test_remaining_strategies_skipped(self, rgb_image, virtual_clock):
        """Test strategies after the total budget is spent are skipped."""

        def slow_miss(deadline):
            virtual_clock.advance(2500)
            return DecodeOutcome.not_found()

        config = BarcodeModuleConfig(budgets=BudgetConfig(total_ms=5000))
        primitive = ScriptedPrimitive([slow_miss] * 7)
        report = BarcodeDecoder(primitive, config=config, clock=virtual_clock).decode(rgb_image)

        assert not report.success
        assert len(primitive.calls) == 2
        assert _statuses(report) == (
            [AttemptStatus.NOT_FOUND, AttemptStatus.TIMEOUT] + [AttemptStatus.SKIPPED] * 5
        )
        assert [a.strategy for a in report.attempts] == STRATEGY_NAMES


class TestInputValidation:
    """Test invalid images."""

    def test_empty_image_raises(self, virtual_clock):
        """Test a zero-sized image raises InvalidImage before any attempt."""
        primitive = ScriptedPrimitive()
        decoder = BarcodeDecoder(primitive, clock=virtual_clock)

        with pytest.raises(InvalidImage):
            decoder.decode(np.zeros((0, 0, 3), dtype=np.uint8))
        assert primitive.calls == []


class TestConfigValidation:
    """Test barcode configuration validation."""

    def test_duplicate_strategy_names(self):
        """Test duplicate strategy names are rejected."""
        with pytest.raises(ValueError):
            BarcodeModuleConfig(
                strategies=[
                    {"name": "a", "kind": "identity"},
                    {"name": "a", "kind": "sharpen"},
                ]
            )

    def test_empty_strategies(self):
        """Test an empty strategy list is rejected."""
        with pytest.raises(ValueError):
            BarcodeModuleConfig(strategies=[])
