"""Scheduler helper that re-runs update cycles at a fixed interval.

Timers are created through injectable ``schedule``/``cancel`` callables
(``threading.Timer`` by default) so tests can drive time by hand. The next
timer is armed only after the running cycle returns, so cycles never overlap.
"""

from __future__ import annotations

import logging
import threading
from typing import Any, Callable, Optional

log = logging.getLogger(__name__)

ScheduleFn = Callable[[float, Callable[[], None]], Any]
CancelFn = Callable[[Any], None]


def _timer_schedule(delay_s: float, callback: Callable[[], None]) -> threading.Timer:
    timer = threading.Timer(delay_s, callback)
    timer.daemon = True
    timer.start()
    return timer


def _timer_cancel(token: Any) -> None:
    token.cancel()


class CycleScheduler:
    """Invoke ``run_cycle`` every ``interval_s`` seconds until stopped."""

    def __init__(
        self,
        run_cycle: Callable[[], Any],
        interval_s: float,
        *,
        schedule: Optional[ScheduleFn] = None,
        cancel: Optional[CancelFn] = None,
    ) -> None:
        """
        Args:
            run_cycle: One blocking update cycle.
            interval_s: Delay between the end of one cycle and the next start.
            schedule: Function compatible with ``schedule(delay_s, callback)``.
            cancel: Function cancelling a token returned by ``schedule``.

        Raises:
            ValueError: If ``interval_s`` is not positive.
        """
        if interval_s <= 0:
            raise ValueError("interval_s must be positive")
        self.run_cycle = run_cycle
        self.interval_s = float(interval_s)
        self._schedule = schedule or _timer_schedule
        self._cancel = cancel or _timer_cancel
        self._lock = threading.Lock()
        self._token: Any = None
        self._active = False
        self._busy = False

    @property
    def active(self) -> bool:
        return self._active

    def start(self, *, run_now: bool = True) -> None:
        """Begin periodic checks; the first cycle runs immediately by default."""
        with self._lock:
            if self._active:
                return
            self._active = True
        if run_now:
            self.trigger_now()
        else:
            self._arm()

    def stop(self) -> None:
        """Cancel the pending timer; a running cycle is left to finish."""
        with self._lock:
            self._active = False
            token, self._token = self._token, None
        if token is not None:
            try:
                self._cancel(token)
            except Exception:
                log.debug("Timer cancel failed", exc_info=True)

    def trigger_now(self) -> bool:
        """Run a cycle right away unless one is already in flight.

        Returns:
            bool: ``True`` if a cycle ran.
        """
        with self._lock:
            if self._busy:
                log.info("Update cycle already running, trigger ignored")
                return False
            self._busy = True
            token, self._token = self._token, None
        if token is not None:
            try:
                self._cancel(token)
            except Exception:
                log.debug("Timer cancel failed", exc_info=True)
        try:
            self.run_cycle()
        except Exception:
            log.exception("Update cycle raised")
        finally:
            with self._lock:
                self._busy = False
        self._arm()
        return True

    def _arm(self) -> None:
        with self._lock:
            if not self._active or self._token is not None:
                return
            self._token = self._schedule(self.interval_s, self._on_timer)

    def _on_timer(self) -> None:
        with self._lock:
            self._token = None
        if self._active:
            self.trigger_now()


__all__ = ["CycleScheduler"]
