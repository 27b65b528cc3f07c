from __future__ import annotations

import logging
import operator
from collections.abc import Callable
from dataclasses import dataclass

from .autoplay import AutoplayDriver
from .clock import Clock, FrameDelta
from .decay import DecayTimerManager
from .game_core import ActivationEvent, Outcome, Phase, SessionSnapshot, Target, Verdict
from .layout import LayoutConfig, TargetLayoutGenerator
from .validator import SequenceValidator

logger = logging.getLogger(__name__)

SnapshotListener = Callable[[SessionSnapshot], None]


@dataclass(frozen=True, slots=True)
class SequenceTapConfig:
    target_count: int = 5
    max_target_count: int = 10000

    min_distance_pct: float = 8.0
    max_placement_attempts: int = 10
    margin_pct: float = 5.0
    spacing_window: int = 5

    # Each decay step removes decay_step_ms of remaining time and happens once
    # every decay_interval_ms of wall time.
    decay_duration_ms: float = 3000.0
    decay_step_ms: float = 100.0
    decay_interval_ms: float = 50.0

    elapsed_step_ms: float = 100.0
    grace_delay_ms: float | None = None  # None: derived from the decay constants
    autoplay_delay_ms: float = 1000.0

    def resolved_grace_delay_ms(self) -> float:
        if self.grace_delay_ms is not None:
            return float(self.grace_delay_ms)
        steps = self.decay_duration_ms / self.decay_step_ms
        return float(self.decay_interval_ms * (steps + 6))

    def layout_config(self) -> LayoutConfig:
        return LayoutConfig(
            min_distance_pct=float(self.min_distance_pct),
            max_attempts=int(self.max_placement_attempts),
            margin_pct=float(self.margin_pct),
            recent_window=int(self.spacing_window),
        )


def _validate_config(cfg: SequenceTapConfig) -> None:
    if cfg.max_target_count < 1:
        raise ValueError("max_target_count must be >= 1")
    if not (1 <= cfg.target_count <= cfg.max_target_count):
        raise ValueError("target_count must be in [1, max_target_count]")
    if cfg.decay_duration_ms <= 0.0 or cfg.decay_step_ms <= 0.0 or cfg.decay_interval_ms <= 0.0:
        raise ValueError("decay constants must be > 0")
    if cfg.elapsed_step_ms <= 0.0:
        raise ValueError("elapsed_step_ms must be > 0")
    if cfg.autoplay_delay_ms <= 0.0:
        raise ValueError("autoplay_delay_ms must be > 0")
    if cfg.resolved_grace_delay_ms() < 0.0:
        raise ValueError("grace_delay_ms must be >= 0")


class SessionController:
    """Owns one game at a time: idle -> playing -> ended(cleared|failed).

    Every driver (elapsed clock, per-target decay, grace delay, autoplay) is
    advanced from ``tick``; nothing runs on its own. Leaving the playing phase
    freezes them inside the same call, and ``start`` discards them.

    Commands never raise for gameplay misuse. They return False and leave the
    state unchanged.
    """

    _MAX_UPDATE_DT_S = 0.50

    def __init__(self, *, clock: Clock, seed: int, config: SequenceTapConfig | None = None) -> None:
        cfg = config or SequenceTapConfig()
        _validate_config(cfg)

        self._clock = clock
        self._seed = int(seed)
        self._cfg = cfg
        self._grace_delay_ms = cfg.resolved_grace_delay_ms()

        self._layout = TargetLayoutGenerator(seed=self._seed, config=cfg.layout_config())
        self._validator = SequenceValidator()
        self._decay = DecayTimerManager(
            duration_ms=cfg.decay_duration_ms,
            step_ms=cfg.decay_step_ms,
            interval_ms=cfg.decay_interval_ms,
            on_expired=self._on_target_expired,
        )
        self._autoplay = AutoplayDriver(
            delay_ms=cfg.autoplay_delay_ms,
            activate=self.activate,
            expected_next=self._autoplay_target,
        )
        self._listeners: list[SnapshotListener] = []

        self._phase = Phase.IDLE
        self._outcome: Outcome | None = None
        self._target_count = int(cfg.target_count)
        self._session_number = 0

        self._targets: tuple[Target, ...] = ()
        self._expected_next = 1
        self._activated: list[int] = []
        self._activated_set: set[int] = set()
        self._events: list[ActivationEvent] = []

        self._session_ms = 0.0
        self._elapsed_steps = 0
        self._elapsed_accum_ms = 0.0
        self._grace_due_in_ms: float | None = None
        self._frame = FrameDelta(self._clock, max_delta_s=self._MAX_UPDATE_DT_S)

    @property
    def seed(self) -> int:
        return self._seed

    @property
    def config(self) -> SequenceTapConfig:
        return self._cfg

    @property
    def phase(self) -> Phase:
        return self._phase

    @property
    def outcome(self) -> Outcome | None:
        return self._outcome

    @property
    def target_count(self) -> int:
        return self._target_count

    @property
    def expected_next(self) -> int:
        return self._expected_next

    @property
    def autoplay(self) -> bool:
        return self._autoplay.enabled

    @property
    def elapsed_s(self) -> float:
        return round(self._elapsed_steps * self._cfg.elapsed_step_ms / 1000.0, 3)

    @property
    def grace_pending(self) -> bool:
        return self._grace_due_in_ms is not None

    def events(self) -> list[ActivationEvent]:
        return list(self._events)

    def subscribe(self, listener: SnapshotListener) -> Callable[[], None]:
        """Register a snapshot-changed callback; returns the unsubscribe function."""

        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def configure(self, target_count: int) -> bool:
        if self._phase is Phase.PLAYING:
            logger.debug("configure(%r) ignored while playing", target_count)
            return False
        try:
            n = operator.index(target_count)
        except TypeError:
            logger.debug("configure(%r) ignored: not an integer", target_count)
            return False
        if n <= 0 or n > self._cfg.max_target_count:
            logger.debug("configure(%d) ignored: outside [1, %d]", n, self._cfg.max_target_count)
            return False
        self._target_count = int(n)
        self._notify()
        return True

    def start(self) -> None:
        self._decay.reset()
        self._autoplay.disable()
        self._grace_due_in_ms = None

        self._targets = self._layout.next_layout(self._target_count)
        self._expected_next = 1
        self._activated = []
        self._activated_set = set()
        self._events = []

        self._session_ms = 0.0
        self._elapsed_steps = 0
        self._elapsed_accum_ms = 0.0
        self._frame.rebase()

        self._phase = Phase.PLAYING
        self._outcome = None
        self._session_number += 1
        logger.info("session %d started with %d targets", self._session_number, len(self._targets))
        self._notify()

    def activate(self, target_id: int, *, automatic: bool = False) -> bool:
        """Register a tap on ``target_id``. Returns True if it was accepted."""

        if self._phase is not Phase.PLAYING:
            return False
        try:
            tid = operator.index(target_id)
        except TypeError:
            return False
        count = len(self._targets)
        if not (1 <= tid <= count) or tid in self._activated_set:
            return False

        self._activated.append(tid)
        self._activated_set.add(tid)
        self._decay.on_activate(tid)

        verdict = self._validator.validate(tid, expected_next=self._expected_next, target_count=count)
        self._events.append(
            ActivationEvent(
                index=len(self._events),
                target_id=tid,
                verdict=verdict,
                at_elapsed_ms=self._session_ms,
                automatic=bool(automatic),
            )
        )
        logger.debug("activate(%d) -> %s (expected %d)", tid, verdict.value, self._expected_next)

        if verdict is Verdict.ADVANCE:
            self._expected_next += 1
            self._autoplay.note_activation()
        elif verdict is Verdict.COMPLETE:
            self._expected_next = count + 1
            self._grace_due_in_ms = self._grace_delay_ms
            self._autoplay.cancel()
        else:
            self._end(Outcome.FAILED)

        self._notify()
        return True

    def toggle_autoplay(self) -> bool:
        if self._phase is not Phase.PLAYING:
            return False
        if self._autoplay.enabled:
            self._autoplay.disable()
        else:
            self._autoplay.enable()
        self._notify()
        return True

    def tick(self, delta_ms: float) -> None:
        if self._phase is not Phase.PLAYING or delta_ms <= 0.0:
            return
        dt = float(delta_ms)
        before = self._visible_state()
        self._session_ms += dt

        steps, self._elapsed_accum_ms = divmod(self._elapsed_accum_ms + dt, self._cfg.elapsed_step_ms)
        self._elapsed_steps += int(steps)

        self._decay.advance(dt)

        if self._grace_due_in_ms is not None:
            self._grace_due_in_ms -= dt
            if self._grace_due_in_ms <= 0.0:
                self._end(Outcome.CLEARED)
                self._notify()
                return

        self._autoplay.advance(dt)
        if self._visible_state() != before:
            self._notify()

    def update(self) -> None:
        """Advance by the wall time seen on the injected clock since the last call."""

        self.tick(self._frame.take_ms())

    def snapshot(self) -> SessionSnapshot:
        return SessionSnapshot(
            phase=self._phase,
            outcome=self._outcome,
            target_count=self._target_count,
            targets=self._targets,
            elapsed_s=self.elapsed_s,
            expected_next=self._expected_next,
            activated=tuple(self._activated),
            remaining_ms=self._decay.remaining_map(),
            autoplay=self._autoplay.enabled,
            decay_duration_ms=self._decay.duration_ms,
            session_number=self._session_number,
        )

    def _end(self, outcome: Outcome) -> None:
        self._phase = Phase.ENDED
        self._outcome = outcome
        self._decay.freeze()
        self._autoplay.disable()
        self._grace_due_in_ms = None
        logger.info(
            "session %d ended: %s after %.1fs (%d/%d activated)",
            self._session_number,
            outcome.value,
            self.elapsed_s,
            len(self._activated),
            len(self._targets),
        )

    def _visible_state(self) -> tuple[object, ...]:
        return (
            self._phase,
            self._elapsed_steps,
            self._autoplay.enabled,
            len(self._activated),
            self._decay.remaining_map(),
        )

    def _autoplay_target(self) -> int | None:
        if self._phase is not Phase.PLAYING or self._expected_next > len(self._targets):
            return None
        return self._expected_next

    def _on_target_expired(self, target_id: int) -> None:
        logger.debug("target %d decayed", target_id)

    def _notify(self) -> None:
        if not self._listeners:
            return
        snap = self.snapshot()
        for listener in list(self._listeners):
            listener(snap)


def build_sequence_tap_session(
    *,
    clock: Clock,
    seed: int,
    config: SequenceTapConfig | None = None,
) -> SessionController:
    return SessionController(clock=clock, seed=seed, config=config)
