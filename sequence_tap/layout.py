from __future__ import annotations

import math
from collections.abc import Callable, Sequence
from dataclasses import dataclass

from .game_core import SeededRng, Target


@dataclass(frozen=True, slots=True)
class LayoutConfig:
    min_distance_pct: float = 8.0
    max_attempts: int = 10
    margin_pct: float = 5.0
    # Spacing is only checked against the most recently placed targets.
    recent_window: int = 5


def _validate(cfg: LayoutConfig) -> None:
    if cfg.min_distance_pct < 0.0:
        raise ValueError("min_distance_pct must be >= 0")
    if cfg.max_attempts < 1:
        raise ValueError("max_attempts must be >= 1")
    if not (0.0 <= cfg.margin_pct < 50.0):
        raise ValueError("margin_pct must be in [0, 50)")
    if cfg.recent_window < 0:
        raise ValueError("recent_window must be >= 0")


def is_far_enough(x: float, y: float, placed: Sequence[Target], *, min_distance: float, window: int) -> bool:
    recent = placed[-window:] if window > 0 else ()
    return all(math.hypot(x - t.x, y - t.y) >= min_distance for t in recent)


def generate_targets(
    count: int,
    *,
    rng: SeededRng,
    min_distance_pct: float = 8.0,
    max_attempts: int = 10,
    margin_pct: float = 5.0,
    recent_window: int = 5,
) -> tuple[Target, ...]:
    """Place ``count`` targets with best-effort spacing.

    Ids run from ``count`` down to 1 in generation order. Each point is drawn
    uniformly from the margin-inset square and re-drawn while it sits closer
    than ``min_distance_pct`` to one of the last ``recent_window`` targets, up
    to ``max_attempts`` draws. The last draw is kept when attempts run out, so
    the result always has exactly ``count`` targets.
    """

    cfg = LayoutConfig(
        min_distance_pct=float(min_distance_pct),
        max_attempts=int(max_attempts),
        margin_pct=float(margin_pct),
        recent_window=int(recent_window),
    )
    _validate(cfg)

    span = 100.0 - 2.0 * cfg.margin_pct
    placed: list[Target] = []
    for target_id in range(int(count), 0, -1):
        attempts = 0
        while True:
            x = cfg.margin_pct + rng.random() * span
            y = cfg.margin_pct + rng.random() * span
            attempts += 1
            if attempts >= cfg.max_attempts:
                break
            if is_far_enough(x, y, placed, min_distance=cfg.min_distance_pct, window=cfg.recent_window):
                break
        placed.append(Target(target_id=target_id, x=x, y=y))
    return tuple(placed)


class TargetLayoutGenerator:
    """Deterministic layout source; one RNG stream across sessions."""

    def __init__(self, *, seed: int, config: LayoutConfig | None = None) -> None:
        self._cfg = config or LayoutConfig()
        _validate(self._cfg)
        self._rng = SeededRng(seed)

    @property
    def config(self) -> LayoutConfig:
        return self._cfg

    def next_layout(self, count: int) -> tuple[Target, ...]:
        return generate_targets(
            count,
            rng=self._rng,
            min_distance_pct=self._cfg.min_distance_pct,
            max_attempts=self._cfg.max_attempts,
            margin_pct=self._cfg.margin_pct,
            recent_window=self._cfg.recent_window,
        )


def target_at(
    targets: Sequence[Target],
    x: float,
    y: float,
    *,
    radius_pct: float,
    hittable: Callable[[int], bool] | None = None,
) -> int | None:
    """Return the id of the topmost target covering (x, y), if any.

    Targets are drawn in sequence order, so later entries sit on top.
    """

    for target in reversed(targets):
        if hittable is not None and not hittable(target.target_id):
            continue
        if math.hypot(x - target.x, y - target.y) <= radius_pct:
            return target.target_id
    return None
