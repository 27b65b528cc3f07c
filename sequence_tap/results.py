from __future__ import annotations

from dataclasses import dataclass

from .game_core import ActivationEvent, Outcome, Verdict
from .session import SessionController


@dataclass(frozen=True, slots=True)
class SessionResult:
    """Summary of a finished session, kept in memory for the results line."""

    outcome: Outcome
    seed: int
    target_count: int
    cleared: int
    elapsed_s: float
    automatic_activations: int
    mean_interval_ms: float | None
    median_interval_ms: float | None

    events: tuple[ActivationEvent, ...]

    def describe(self) -> str:
        mean = "n/a" if self.mean_interval_ms is None else f"{self.mean_interval_ms / 1000.0:.2f}s"
        return (
            f"{self.outcome.value.upper()}  {self.cleared}/{self.target_count} in "
            f"{self.elapsed_s:.1f}s  mean gap {mean}"
        )


def session_result_from_controller(session: SessionController) -> SessionResult | None:
    """Build a SessionResult from an ended session; None while it is still open."""

    outcome = session.outcome
    if outcome is None:
        return None

    events = tuple(session.events())
    in_order = [e for e in events if e.verdict is not Verdict.MISMATCH]
    times = [e.at_elapsed_ms for e in in_order]
    gaps = sorted(b - a for a, b in zip(times, times[1:]))

    mean_ms: float | None
    median_ms: float | None
    if not gaps:
        mean_ms = None
        median_ms = None
    else:
        mean_ms = float(sum(gaps)) / float(len(gaps))
        mid = len(gaps) // 2
        if len(gaps) % 2 == 1:
            median_ms = float(gaps[mid])
        else:
            median_ms = float(gaps[mid - 1] + gaps[mid]) / 2.0

    return SessionResult(
        outcome=outcome,
        seed=int(session.seed),
        target_count=len(session.snapshot().targets),
        cleared=len(in_order),
        elapsed_s=float(session.elapsed_s),
        automatic_activations=sum(1 for e in events if e.automatic),
        mean_interval_ms=mean_ms,
        median_interval_ms=median_ms,
        events=events,
    )
