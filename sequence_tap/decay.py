from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass


@dataclass(slots=True)
class _Countdown:
    remaining_ms: float
    since_step_ms: float = 0.0


class DecayTimerManager:
    """Per-target countdowns started at activation.

    Each countdown drops by ``step_ms`` once per ``interval_ms`` of its own
    accumulated time, so two targets activated at different moments step on
    different boundaries. A countdown that reaches zero is clamped to 0,
    leaves the running registry and fires ``on_expired`` once. The value stays
    readable as a terminal 0 until ``reset()``.
    """

    def __init__(
        self,
        *,
        duration_ms: float = 3000.0,
        step_ms: float = 100.0,
        interval_ms: float = 50.0,
        on_expired: Callable[[int], None] | None = None,
    ) -> None:
        if duration_ms <= 0.0:
            raise ValueError("duration_ms must be > 0")
        if step_ms <= 0.0:
            raise ValueError("step_ms must be > 0")
        if interval_ms <= 0.0:
            raise ValueError("interval_ms must be > 0")

        self._duration_ms = float(duration_ms)
        self._step_ms = float(step_ms)
        self._interval_ms = float(interval_ms)
        self._on_expired = on_expired

        self._running: dict[int, _Countdown] = {}
        self._remaining: dict[int, float] = {}
        self._frozen = False

    @property
    def duration_ms(self) -> float:
        return self._duration_ms

    @property
    def visible_duration_ms(self) -> float:
        """Wall time a countdown needs to reach zero."""

        steps = -(-self._duration_ms // self._step_ms)
        return steps * self._interval_ms

    @property
    def frozen(self) -> bool:
        return self._frozen

    def on_activate(self, target_id: int) -> bool:
        """Start a countdown for ``target_id``; returns False if it already has one."""

        if target_id in self._remaining:
            return False
        self._remaining[target_id] = self._duration_ms
        if not self._frozen:
            self._running[target_id] = _Countdown(remaining_ms=self._duration_ms)
        return True

    def tick(self) -> None:
        """Apply one step boundary to every running countdown."""

        if self._frozen:
            return
        for target_id in list(self._running):
            self._step(target_id)

    def advance(self, delta_ms: float) -> None:
        if self._frozen or delta_ms <= 0.0:
            return
        for target_id in list(self._running):
            countdown = self._running.get(target_id)
            if countdown is None:
                continue
            countdown.since_step_ms += float(delta_ms)
            while countdown.since_step_ms >= self._interval_ms and target_id in self._running:
                countdown.since_step_ms -= self._interval_ms
                self._step(target_id)

    def freeze(self) -> None:
        """Stop every driver; remaining values stay as they are."""

        self._frozen = True
        self._running.clear()

    def reset(self) -> None:
        self._running.clear()
        self._remaining.clear()
        self._frozen = False

    def remaining(self, target_id: int) -> float | None:
        return self._remaining.get(target_id)

    def remaining_map(self) -> dict[int, float]:
        return dict(self._remaining)

    def is_running(self, target_id: int) -> bool:
        return target_id in self._running

    def is_expired(self, target_id: int) -> bool:
        return self._remaining.get(target_id) == 0.0

    def running_ids(self) -> tuple[int, ...]:
        return tuple(self._running)

    def _step(self, target_id: int) -> None:
        countdown = self._running[target_id]
        countdown.remaining_ms -= self._step_ms
        if countdown.remaining_ms <= 0.0:
            del self._running[target_id]
            self._remaining[target_id] = 0.0
            if self._on_expired is not None:
                self._on_expired(target_id)
            return
        self._remaining[target_id] = countdown.remaining_ms
