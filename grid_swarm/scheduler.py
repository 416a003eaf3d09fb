"""Recurring-timer lifecycle and single-flight execution of pipeline cycles."""

from __future__ import annotations

import logging
import threading
from typing import Callable, Optional, Protocol

logger = logging.getLogger(__name__)


class TimerHandle(Protocol):
    def cancel(self) -> None:
        ...


class TimerFactory(Protocol):
    def call_later(self, delay: float, callback: Callable[[], None]) -> TimerHandle:
        ...

    def call_every(self, period: float, callback: Callable[[], None]) -> TimerHandle:
        ...


class _RepeatingTimer(threading.Thread):
    """Fires `callback` every `period` seconds until cancelled.

    The wait is an Event wait, so cancel() takes effect before the next tick.
    """

    def __init__(self, period: float, callback: Callable[[], None]) -> None:
        super().__init__(name="grid-swarm-ticker", daemon=True)
        self.period = period
        self.callback = callback
        self._cancelled = threading.Event()

    def run(self) -> None:
        while not self._cancelled.wait(self.period):
            try:
                self.callback()
            except Exception:  # pylint: disable=broad-except
                logger.exception("tick callback crashed")

    def cancel(self) -> None:
        self._cancelled.set()


class ThreadingTimers:
    """Default TimerFactory backed by daemon threads."""

    def call_later(self, delay: float, callback: Callable[[], None]) -> TimerHandle:
        timer = threading.Timer(delay, callback)
        timer.daemon = True
        timer.start()
        return timer

    def call_every(self, period: float, callback: Callable[[], None]) -> TimerHandle:
        timer = _RepeatingTimer(period, callback)
        timer.start()
        return timer


class OrchestratorScheduler:
    """Drives `cycle` once immediately and then once per period.

    A tick that fires while a cycle is still executing is skipped, never
    queued: at most one cycle is in flight at any time.
    """

    def __init__(self, cycle: Callable[[], None], timers: TimerFactory) -> None:
        self._cycle = cycle
        self._timers = timers
        self._busy = threading.Lock()
        self._state_lock = threading.Lock()
        self._ticker: Optional[TimerHandle] = None
        self._kickoff: Optional[TimerHandle] = None
        self.period: Optional[float] = None
        self.skipped_ticks = 0

    @property
    def is_running(self) -> bool:
        with self._state_lock:
            return self._ticker is not None

    def start(self, period: float) -> bool:
        """Arm the recurring timer; returns False if already running."""
        with self._state_lock:
            if self._ticker is not None:
                return False
            self.period = period
            self._ticker = self._timers.call_every(period, self._tick)
            self._kickoff = self._timers.call_later(0, self._tick)
        logger.info("Scheduler started (period=%.2fs)", period)
        return True

    def stop(self) -> bool:
        """Cancel the timers; returns False if not running."""
        with self._state_lock:
            if self._ticker is None:
                return False
            self._ticker.cancel()
            if self._kickoff is not None:
                self._kickoff.cancel()
            self._ticker = None
            self._kickoff = None
        logger.info("Scheduler halted")
        return True

    def run_once(self, *, require_running: bool = False) -> bool:
        """Run one guarded cycle; returns False if skipped."""
        if require_running and not self.is_running:
            return False
        if not self._busy.acquire(blocking=False):
            self.skipped_ticks += 1
            logger.debug("cycle still in flight, tick skipped")
            return False
        try:
            # stop() may have landed between the check above and the acquire
            if require_running and not self.is_running:
                return False
            self._cycle()
        finally:
            self._busy.release()
        return True

    def _tick(self) -> None:
        self.run_once(require_running=True)
