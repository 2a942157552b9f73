"""Debounce scheduler — collapse a burst of change events into one trigger.

A single worker thread owns a cancellable wait on a condition variable.
``on_event`` pushes the deadline out, the worker fires the trigger once the
deadline passes, then disarms until the next event. While the trigger runs,
new events are remembered and the next window is armed only after the
trigger returns, so two triggers never overlap.
"""

from __future__ import annotations

import logging
import threading
import time
from typing import Callable, Optional

logger = logging.getLogger(__name__)


class DebounceScheduler:
    """Fire *trigger* once per quiet period of *quiet_seconds*."""

    def __init__(
        self,
        trigger: Callable[[], None],
        quiet_seconds: float,
        *,
        name: str = "vibesnap-debounce",
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if quiet_seconds < 0:
            raise ValueError("quiet_seconds must be >= 0")
        self._trigger = trigger
        self._quiet = quiet_seconds
        self._clock = clock
        self._cond = threading.Condition()
        self._deadline: Optional[float] = None
        self._firing = False
        self._pending = False  # event arrived while the trigger was running
        self._closed = False
        self._thread = threading.Thread(target=self._run, name=name, daemon=True)
        self._thread.start()

    @property
    def quiet_seconds(self) -> float:
        return self._quiet

    @property
    def armed(self) -> bool:
        with self._cond:
            return self._deadline is not None or self._pending

    @property
    def firing(self) -> bool:
        with self._cond:
            return self._firing

    def on_event(self) -> None:
        """Record an event: (re)arm the deadline at now + quiet period."""
        with self._cond:
            if self._closed:
                return
            if self._firing:
                self._pending = True
                return
            self._deadline = self._clock() + self._quiet
            self._cond.notify_all()

    def reconfigure(self, quiet_seconds: float) -> None:
        """Use *quiet_seconds* for windows armed from now on."""
        if quiet_seconds < 0:
            raise ValueError("quiet_seconds must be >= 0")
        with self._cond:
            self._quiet = quiet_seconds

    def cancel(self) -> None:
        """Disarm without firing. No trigger that has not started will fire after this returns."""
        with self._cond:
            self._deadline = None
            self._pending = False
            self._cond.notify_all()

    def close(self) -> None:
        """Cancel and end the worker thread. A trigger already running is not interrupted."""
        with self._cond:
            self._closed = True
            self._deadline = None
            self._pending = False
            busy = self._firing
            self._cond.notify_all()
        if threading.current_thread() is not self._thread and not busy:
            self._thread.join(timeout=1.0)

    def wait_idle(self, timeout: Optional[float] = None) -> bool:
        """Block until nothing is armed or firing. Returns False on timeout."""
        end = None if timeout is None else self._clock() + timeout
        with self._cond:
            while self._deadline is not None or self._pending or self._firing:
                remaining = None if end is None else end - self._clock()
                if remaining is not None and remaining <= 0:
                    return False
                self._cond.wait(remaining)
            return True

    # ── worker ───────────────────────────────────────────────────────────────

    def _run(self) -> None:
        while True:
            with self._cond:
                while not self._closed and self._deadline is None:
                    self._cond.wait()
                if self._closed:
                    return
                remaining = self._deadline - self._clock()
                if remaining > 0:
                    self._cond.wait(remaining)
                    continue
                self._deadline = None
                self._firing = True

            try:
                self._trigger()
            except Exception:
                logger.exception("Debounced trigger raised")
            finally:
                with self._cond:
                    self._firing = False
                    if self._pending and not self._closed:
                        self._pending = False
                        self._deadline = self._clock() + self._quiet
                    self._cond.notify_all()
