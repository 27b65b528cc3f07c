from __future__ import annotations

import random
from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import StrEnum


class Phase(StrEnum):
    IDLE = "idle"
    PLAYING = "playing"
    ENDED = "ended"


class Outcome(StrEnum):
    CLEARED = "cleared"
    FAILED = "failed"


class Verdict(StrEnum):
    ADVANCE = "advance"
    COMPLETE = "complete"
    MISMATCH = "mismatch"


class HeaderStyle(StrEnum):
    DEFAULT = "default"
    END = "end"
    MISSED = "missed"


HEADER_TEXT: dict[HeaderStyle, str] = {
    HeaderStyle.DEFAULT: "LET'S PLAY",
    HeaderStyle.END: "ALL CLEARED",
    HeaderStyle.MISSED: "GAME OVER",
}


@dataclass(frozen=True, slots=True)
class Target:
    target_id: int
    x: float  # percent of play-area width
    y: float  # percent of play-area height


@dataclass(frozen=True, slots=True)
class ActivationEvent:
    index: int
    target_id: int
    verdict: Verdict
    at_elapsed_ms: float
    automatic: bool = False


@dataclass(frozen=True, slots=True)
class SessionSnapshot:
    """View model for the presentation layer (pure data)."""

    phase: Phase
    outcome: Outcome | None
    target_count: int
    targets: tuple[Target, ...]
    elapsed_s: float
    expected_next: int
    activated: tuple[int, ...]
    remaining_ms: Mapping[int, float] = field(default_factory=dict)
    autoplay: bool = False
    decay_duration_ms: float = 3000.0
    session_number: int = 0

    @property
    def header_style(self) -> HeaderStyle:
        if self.outcome is Outcome.CLEARED:
            return HeaderStyle.END
        if self.outcome is Outcome.FAILED:
            return HeaderStyle.MISSED
        return HeaderStyle.DEFAULT

    @property
    def header(self) -> str:
        return HEADER_TEXT[self.header_style]

    @property
    def is_playing(self) -> bool:
        return self.phase is Phase.PLAYING

    @property
    def elapsed_label(self) -> str:
        return f"{self.elapsed_s:.1f}s"

    @property
    def start_label(self) -> str:
        return "Play" if self.session_number == 0 else "Restart"

    @property
    def next_label(self) -> str | None:
        if not self.is_playing:
            return None
        # expected_next runs one past the board while the grace delay is pending.
        return f"Next: {min(self.expected_next, len(self.targets))}"

    @property
    def autoplay_label(self) -> str:
        return f"Auto Play {'ON' if self.autoplay else 'OFF'}"

    def is_activated(self, target_id: int) -> bool:
        return target_id in self.activated

    def is_visible(self, target_id: int) -> bool:
        remaining = self.remaining_ms.get(target_id)
        return remaining is None or remaining > 0.0

    def fade(self, target_id: int) -> float:
        """Opacity in [0, 1]: full until activated, then proportional to decay left."""

        remaining = self.remaining_ms.get(target_id)
        if remaining is None or self.decay_duration_ms <= 0.0:
            return 1.0
        return clamp01(remaining / self.decay_duration_ms)

    def remaining_label(self, target_id: int) -> str | None:
        remaining = self.remaining_ms.get(target_id)
        if remaining is None:
            return None
        return f"{remaining / 1000.0:.1f}s"


class SeededRng:
    """Simple seeded RNG wrapper to keep deterministic streams explicit."""

    def __init__(self, seed: int) -> None:
        self._rng = random.Random(int(seed))

    def random(self) -> float:
        return self._rng.random()


def clamp01(x: float) -> float:
    return 0.0 if x <= 0.0 else 1.0 if x >= 1.0 else float(x)
