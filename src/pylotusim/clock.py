"""Render frame clock.

Transports compare backend simulation time against the renderer's own
clock. :class:`FrameClock` is that clock: the render loop calls
:meth:`FrameClock.tick` once per frame and transports read
:attr:`FrameClock.time` and :attr:`FrameClock.delta_time`.
"""

from __future__ import annotations

import threading
import time
from collections.abc import Callable


class FrameClock:
    """Scaled frame time, in seconds since the clock started.

    ``time_scale`` scales how much of each real frame interval is added to
    render time (``0`` freezes it), the same way the consumer throttles the
    renderer when the backend falls behind.
    """

    def __init__(self, *, now: Callable[[], float] = time.monotonic) -> None:
        self._now = now
        self._lock = threading.Lock()
        self._last_real = now()
        self._time = 0.0
        self._delta_time = 0.0
        self._real_delta_time = 0.0
        self._time_scale = 1.0

    @property
    def time(self) -> float:
        with self._lock:
            return self._time

    @property
    def delta_time(self) -> float:
        with self._lock:
            return self._delta_time

    @property
    def real_delta_time(self) -> float:
        """Unscaled duration of the current frame."""
        with self._lock:
            return self._real_delta_time

    @property
    def time_scale(self) -> float:
        with self._lock:
            return self._time_scale

    @time_scale.setter
    def time_scale(self, value: float) -> None:
        with self._lock:
            self._time_scale = max(0.0, float(value))

    def tick(self) -> float:
        """Start a new frame; returns the new frame's delta time."""
        with self._lock:
            real = self._now()
            elapsed = max(0.0, real - self._last_real)
            self._last_real = real
            self._real_delta_time = elapsed
            self._delta_time = elapsed * self._time_scale
            self._time += self._delta_time
            return self._delta_time

    def advance(self, delta_time: float) -> None:
        """Start a new frame of exactly *delta_time* seconds (ignores the time scale)."""
        with self._lock:
            self._last_real = self._now()
            self._real_delta_time = max(0.0, float(delta_time))
            self._delta_time = self._real_delta_time
            self._time += self._delta_time
