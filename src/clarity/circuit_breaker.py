"""Circuit breaker shared by the third-party adapters.

Twilio, the fallback LLM and the maps client each hold one, so a provider
that keeps failing is skipped for a cooldown instead of stalling every
webhook response on its timeout.
"""

import logging
import time
from dataclasses import dataclass, field
from typing import Callable, Optional

logger = logging.getLogger(__name__)


@dataclass
class CircuitBreaker:
    """closed -> open (after N consecutive failures) -> half-open (after cooldown)."""

    label: str = "service"
    failure_threshold: int = 3
    cooldown_seconds: float = 60.0
    clock: Callable[[], float] = field(default=time.monotonic, repr=False)

    _failures: int = field(default=0, init=False, repr=False)
    _opened_at: Optional[float] = field(default=None, init=False, repr=False)

    @property
    def is_open(self) -> bool:
        return self._failures >= self.failure_threshold

    def should_try(self) -> bool:
        if not self.is_open:
            return True
        # half-open: let one trial call through once the cooldown has passed
        return self._opened_at is not None and (self.clock() - self._opened_at) >= self.cooldown_seconds

    def record_success(self) -> None:
        if self.is_open:
            logger.info("Circuit breaker CLOSED for %s", self.label)
        self._failures = 0
        self._opened_at = None

    def record_failure(self) -> None:
        self._failures += 1
        if not self.is_open:
            return
        if self._opened_at is None:
            logger.warning(
                "Circuit breaker OPENED for %s after %d consecutive failures, skipping for %.0fs",
                self.label,
                self._failures,
                self.cooldown_seconds,
            )
        # a failed half-open trial call restarts the cooldown
        self._opened_at = self.clock()
