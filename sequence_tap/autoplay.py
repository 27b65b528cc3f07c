from __future__ import annotations

from collections.abc import Callable


class AutoplayDriver:
    """Single-shot delay that activates the expected target on the player's behalf.

    The delay is armed when autoplay is enabled and re-armed after every
    activation. Firing goes through the controller's ``activate`` so ordering
    and idempotency rules still apply.
    """

    def __init__(
        self,
        *,
        delay_ms: float,
        activate: Callable[..., bool],
        expected_next: Callable[[], int | None],
    ) -> None:
        if delay_ms <= 0.0:
            raise ValueError("delay_ms must be > 0")
        self._delay_ms = float(delay_ms)
        self._activate = activate
        self._expected_next = expected_next
        self._enabled = False
        self._due_in_ms: float | None = None

    @property
    def enabled(self) -> bool:
        return self._enabled

    @property
    def pending(self) -> bool:
        return self._due_in_ms is not None

    @property
    def due_in_ms(self) -> float | None:
        return self._due_in_ms

    def enable(self) -> None:
        self._enabled = True
        self._due_in_ms = self._delay_ms

    def disable(self) -> None:
        self._enabled = False
        self._due_in_ms = None

    def cancel(self) -> None:
        """Drop any pending fire without changing the enabled flag."""

        self._due_in_ms = None

    def note_activation(self) -> None:
        if self._enabled:
            self._due_in_ms = self._delay_ms

    def advance(self, delta_ms: float) -> None:
        if not self._enabled or self._due_in_ms is None:
            return
        self._due_in_ms -= float(delta_ms)
        if self._due_in_ms > 0.0:
            return
        self._due_in_ms = None
        target_id = self._expected_next()
        if target_id is None:
            return
        # A successful activation re-arms through note_activation().
        self._activate(target_id, automatic=True)
