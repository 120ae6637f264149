"""Cooperative deadlines for preprocessing and decode attempts.

A ``Deadline`` is created from a budget and a clock. Work that owns a deadline
calls ``check()`` at convenient points; an expired deadline raises
``DeadlineExceeded``, which the owner of the attempt catches. Deadlines nest:
``child()`` carves a sub-budget that can never outlive its parent, so the
per-strategy budgets compose with the overall scan budget.

Example:
    >>> clock = VirtualClock()
    >>> total = Deadline(15000, clock)
    >>> attempt = total.child(3000, label="decode")
    >>> clock.advance(3500)
    >>> attempt.expired()
    True
    >>> total.expired()
    False
"""

import time
from typing import Optional, Protocol

from .exceptions import DeadlineExceeded


class Clock(Protocol):
    """Source of monotonic time in milliseconds."""

    def now_ms(self) -> float:
        ...


class MonotonicClock:
    """Wall clock backed by ``time.monotonic``."""

    def now_ms(self) -> float:
        return time.monotonic() * 1000.0


class VirtualClock:
    """Manually advanced clock for deterministic tests."""

    def __init__(self, start_ms: float = 0.0):
        self._now_ms = float(start_ms)

    def now_ms(self) -> float:
        return self._now_ms

    def advance(self, ms: float) -> None:
        if ms < 0:
            raise ValueError(f"Cannot move clock backwards ({ms}ms)")
        self._now_ms += ms


class Deadline:
    """Cancellation token with an absolute expiry on a given clock.

    Args:
        budget_ms: Time allowed from now, in milliseconds
        clock: Clock to measure against (default: MonotonicClock)
        label: Name used in the ``DeadlineExceeded`` message
    """

    def __init__(
        self,
        budget_ms: float,
        clock: Optional[Clock] = None,
        label: str = "operation",
        _expires_at_ms: Optional[float] = None,
    ):
        if budget_ms < 0:
            raise ValueError(f"Deadline budget must be >= 0, got {budget_ms}")

        self.clock = clock if clock is not None else MonotonicClock()
        self.budget_ms = float(budget_ms)
        self.label = label
        self.started_at_ms = self.clock.now_ms()
        if _expires_at_ms is None:
            _expires_at_ms = self.started_at_ms + self.budget_ms
        self.expires_at_ms = _expires_at_ms

    def remaining_ms(self) -> float:
        """Milliseconds left before expiry (never negative)."""
        return max(0.0, self.expires_at_ms - self.clock.now_ms())

    def elapsed_ms(self) -> float:
        """Milliseconds since this deadline was created."""
        return self.clock.now_ms() - self.started_at_ms

    def expired(self) -> bool:
        return self.clock.now_ms() >= self.expires_at_ms

    def check(self) -> None:
        """Raise ``DeadlineExceeded`` if the deadline has passed."""
        now = self.clock.now_ms()
        if now >= self.expires_at_ms:
            raise DeadlineExceeded(
                label=self.label,
                budget_ms=self.budget_ms,
                overrun_ms=now - self.expires_at_ms,
            )

    def child(self, budget_ms: float, label: Optional[str] = None) -> "Deadline":
        """Create a nested deadline capped by this one.

        Args:
            budget_ms: Budget of the nested operation
            label: Name of the nested operation (default: parent label)

        Returns:
            Deadline expiring at ``min(now + budget_ms, parent expiry)``
        """
        now = self.clock.now_ms()
        expires_at = min(now + budget_ms, self.expires_at_ms)
        return Deadline(
            budget_ms=budget_ms,
            clock=self.clock,
            label=label or self.label,
            _expires_at_ms=expires_at,
        )

    def __repr__(self) -> str:
        return (
            f"Deadline(label={self.label!r}, budget_ms={self.budget_ms:.0f}, "
            f"remaining_ms={self.remaining_ms():.0f})"
        )
