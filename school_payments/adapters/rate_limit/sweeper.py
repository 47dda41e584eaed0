"""Background thread that periodically drops expired rate limit state."""

from __future__ import annotations

import logging
import threading

from school_payments.adapters.rate_limit.base import AbstractRateLimiter

logger = logging.getLogger(__name__)


class WindowSweeper:
    """Run ``limiter.sweep()`` every ``interval_seconds`` on a daemon thread.

    Usage:
        sweeper = WindowSweeper(limiter, interval_seconds=60)
        sweeper.start()
        ...
        sweeper.stop()
    """

    def __init__(self, limiter: AbstractRateLimiter, *, interval_seconds: float) -> None:
        if interval_seconds <= 0:
            raise ValueError("interval_seconds must be > 0")
        self._limiter = limiter
        self._interval = interval_seconds
        self._stop_event = threading.Event()
        self._thread: threading.Thread | None = None

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        if self.running:
            return
        self._stop_event.clear()
        self._thread = threading.Thread(
            target=self._run,
            name="rate-limit-sweeper",
            daemon=True,
        )
        self._thread.start()
        logger.info("rate_limit.sweeper_started", extra={"interval_s": self._interval})

    def stop(self, timeout: float | None = 5.0) -> None:
        self._stop_event.set()
        if self._thread is not None:
            self._thread.join(timeout)
            self._thread = None
        logger.info("rate_limit.sweeper_stopped")

    def run_once(self) -> int:
        removed = self._limiter.sweep()
        if removed:
            logger.debug("rate_limit.sweep", extra={"removed": removed})
        return removed

    def _run(self) -> None:
        while not self._stop_event.wait(self._interval):
            try:
                self.run_once()
            except Exception:
                # Keep the thread alive; the next tick retries.
                logger.exception("rate_limit.sweep_failed")
