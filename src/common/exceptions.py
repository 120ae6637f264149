"""Exception hierarchy for the hybrid document scanner.

Only genuinely exceptional conditions are raised. Expected outcomes such as
"no barcode in the photo" or "the OCR provider is down" are reported through
result objects instead (see ``DecodeOutcome`` and ``ExtractionResult``).
"""

from typing import Optional


class ScanError(Exception):
    """Base exception for scanner errors.

    Attributes:
        message: Human-readable explanation
        component: Component that raised the error (e.g. "preprocessor")
        original_error: Underlying exception, if any
    """

    def __init__(
        self,
        message: str,
        component: Optional[str] = None,
        original_error: Optional[Exception] = None,
    ):
        self.message = message
        self.component = component
        self.original_error = original_error
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        msg = self.message
        if self.component:
            msg += f" (component: {self.component})"
        if self.original_error:
            msg += (
                f" [original: {type(self.original_error).__name__}: "
                f"{self.original_error}]"
            )
        return msg


class InvalidImage(ScanError):
    """Image is empty, has zero dimensions, or cannot be decoded."""


class DeadlineExceeded(ScanError):
    """A cooperative deadline expired before the work finished.

    Raised by ``Deadline.check()`` and caught at the boundary of the single
    attempt that owns the deadline.
    """

    def __init__(self, label: str, budget_ms: float, overrun_ms: float = 0.0):
        self.label = label
        self.budget_ms = budget_ms
        self.overrun_ms = overrun_ms
        super().__init__(
            f"{label} exceeded budget of {budget_ms:.0f}ms "
            f"(overrun {overrun_ms:.0f}ms)",
            component="deadline",
        )


class OCRProviderError(ScanError):
    """OCR provider call failed (network, auth, throttling, bad response)."""


class ConfigurationError(ScanError):
    """Scanner is misconfigured (unknown provider, missing credentials)."""
