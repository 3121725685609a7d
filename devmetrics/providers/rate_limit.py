"""Client-side request spacing for rate-limited provider APIs."""

from __future__ import annotations

import threading
import time
from typing import Callable, Optional

from devmetrics.common.logging import get_logger

logger = get_logger(__name__)


class RateLimiter:
    """Enforce a minimum interval between consecutive requests.

    The lock is held while sleeping, so concurrent callers queue up and are
    released one interval apart.

    Args:
        min_interval: Minimum seconds between two calls to ``wait``.
        clock: Monotonic clock, injectable for tests.
        sleep: Sleep function, injectable for tests.
        name: Label used in log lines.
    """

    def __init__(
        self,
        min_interval: float,
        *,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
        name: str = "default",
    ):
        if min_interval < 0:
            raise ValueError(f"min_interval must be >= 0, got {min_interval}")
        self.min_interval = min_interval
        self.name = name
        self._clock = clock
        self._sleep = sleep
        self._lock = threading.Lock()
        self._last_request_at: Optional[float] = None

    def wait(self) -> float:
        """Block until the next request may be sent.

        Returns:
            Seconds spent waiting.
        """
        with self._lock:
            delay = 0.0
            if self._last_request_at is not None:
                elapsed = self._clock() - self._last_request_at
                delay = self.min_interval - elapsed
            if delay > 0:
                logger.debug(
                    "rate_limit_wait",
                    extra={"event": "rate_limit_wait", "limiter": self.name, "delay_sec": round(delay, 3)},
                )
                self._sleep(delay)
            else:
                delay = 0.0
            self._last_request_at = self._clock()
            return delay

    def reset(self) -> None:
        with self._lock:
            self._last_request_at = None
