from __future__ import annotations

import time
from typing import Protocol


class Clock(Protocol):
    """Monotonic clock abstraction.

    The session controller reads time only through this interface so that
    tests can drive it with a fake clock.
    """

    def now(self) -> float:
        """Return monotonic seconds."""


class RealClock:
    """Production clock backed by time.monotonic()."""

    def now(self) -> float:
        return time.monotonic()


class FrameDelta:
    """Turns successive clock reads into millisecond deltas.

    Gaps longer than ``max_delta_s`` (a stalled window, a debugger pause) are
    capped so one late frame cannot fast-forward the game.
    """

    def __init__(self, clock: Clock, *, max_delta_s: float) -> None:
        if max_delta_s <= 0.0:
            raise ValueError("max_delta_s must be > 0")
        self._clock = clock
        self._max_delta_s = float(max_delta_s)
        self._last_s = clock.now()

    def rebase(self) -> None:
        """Forget time that passed before now."""

        self._last_s = self._clock.now()

    def take_ms(self) -> float:
        now = self._clock.now()
        dt = now - self._last_s
        self._last_s = now
        if dt <= 0.0:
            return 0.0
        return min(float(dt), self._max_delta_s) * 1000.0
