from __future__ import annotations

import logging
from dataclasses import dataclass

import pytest

from sequence_tap.game_core import HeaderStyle, Outcome, Phase, SessionSnapshot, Verdict
from sequence_tap.session import SequenceTapConfig, SessionController, build_sequence_tap_session


@dataclass
class FakeClock:
    t: float = 0.0

    def now(self) -> float:
        return self.t

    def advance(self, dt: float) -> None:
        self.t += float(dt)


def _session(config: SequenceTapConfig | None = None, *, seed: int = 7) -> SessionController:
    return build_sequence_tap_session(clock=FakeClock(), seed=seed, config=config)


def test_new_session_is_idle_with_default_count() -> None:
    s = _session()
    snap = s.snapshot()

    assert snap.phase is Phase.IDLE
    assert snap.outcome is None
    assert snap.target_count == 5
    assert snap.targets == ()
    assert snap.expected_next == 1
    assert snap.header == "LET'S PLAY"
    assert snap.start_label == "Play"


def test_configure_bounds_and_phase_rules() -> None:
    s = _session()

    assert s.configure(3) is True
    assert s.target_count == 3
    assert s.configure(0) is False
    assert s.configure(-2) is False
    assert s.configure(10_001) is False
    assert s.configure("4") is False  # type: ignore[arg-type]
    assert s.target_count == 3
    assert s.configure(10_000) is True

    s.configure(3)
    s.start()
    assert s.configure(4) is False
    assert s.target_count == 3

    s.activate(2)  # out of order
    assert s.phase is Phase.ENDED
    assert s.configure(4) is True
    s.start()
    assert len(s.snapshot().targets) == 4


def test_start_builds_fresh_layout_and_enters_playing() -> None:
    s = _session()
    s.configure(8)
    s.start()
    snap = s.snapshot()

    assert snap.phase is Phase.PLAYING
    assert sorted(t.target_id for t in snap.targets) == list(range(1, 9))
    assert snap.activated == ()
    assert snap.remaining_ms == {}
    assert snap.autoplay is False
    assert snap.elapsed_s == 0.0
    assert snap.start_label == "Restart"


def test_out_of_order_scenario_fails_immediately() -> None:
    s = _session()
    s.configure(3)
    s.start()

    assert s.activate(1) is True
    assert s.expected_next == 2
    assert s.phase is Phase.PLAYING

    assert s.activate(3) is True
    snap = s.snapshot()
    assert snap.phase is Phase.ENDED
    assert snap.outcome is Outcome.FAILED
    assert snap.activated == (1, 3)
    assert snap.header == "GAME OVER"
    assert snap.header_style is HeaderStyle.MISSED
    # The offending target still gets its countdown entry.
    assert snap.remaining_ms[3] == 3000.0

    assert s.activate(2) is False
    s.tick(5000.0)
    after = s.snapshot()
    assert after.phase is Phase.ENDED
    assert after.outcome is Outcome.FAILED
    assert after.activated == (1, 3)
    assert after.remaining_ms == snap.remaining_ms
    assert after.elapsed_s == snap.elapsed_s


def test_in_order_scenario_clears_only_after_grace_delay() -> None:
    s = _session()
    s.configure(2)
    s.start()
    s.activate(1)
    s.activate(2)

    assert s.phase is Phase.PLAYING
    assert s.expected_next == 3
    assert s.grace_pending

    s.tick(1799.0)
    assert s.phase is Phase.PLAYING
    snap = s.snapshot()
    assert snap.remaining_ms[2] == 0.0
    assert not snap.is_visible(2)

    s.tick(1.0)
    assert s.phase is Phase.ENDED
    assert s.outcome is Outcome.CLEARED
    assert s.snapshot().header == "ALL CLEARED"


def test_grace_delay_defaults_to_decay_time_plus_six_intervals() -> None:
    assert SequenceTapConfig().resolved_grace_delay_ms() == 1800.0
    assert SequenceTapConfig(decay_interval_ms=100.0).resolved_grace_delay_ms() == 3600.0
    assert SequenceTapConfig(grace_delay_ms=250.0).resolved_grace_delay_ms() == 250.0


def test_single_target_with_zero_grace_clears_on_next_tick() -> None:
    s = _session(SequenceTapConfig(target_count=1, grace_delay_ms=0.0))
    s.start()
    s.activate(1)
    assert s.phase is Phase.PLAYING

    s.tick(1.0)
    assert s.outcome is Outcome.CLEARED


def test_repeat_activation_is_a_no_op() -> None:
    s = _session()
    s.start()
    s.activate(1)
    once = s.snapshot()

    assert s.activate(1) is False
    assert s.snapshot() == once
    assert len(s.events()) == 1


@pytest.mark.parametrize("target_id", [0, -1, 6, 999])
def test_unknown_ids_are_ignored(target_id: int) -> None:
    s = _session()
    s.start()

    assert s.activate(target_id) is False
    assert s.phase is Phase.PLAYING
    assert s.snapshot().activated == ()


def test_commands_before_start_are_ignored() -> None:
    s = _session()

    assert s.activate(1) is False
    assert s.toggle_autoplay() is False
    s.tick(1000.0)
    assert s.snapshot().elapsed_s == 0.0
    assert s.phase is Phase.IDLE


def test_elapsed_advances_in_fixed_steps() -> None:
    s = _session()
    s.start()

    s.tick(50.0)
    assert s.elapsed_s == 0.0
    s.tick(50.0)
    assert s.elapsed_s == 0.1
    s.tick(1000.0)
    assert s.elapsed_s == 1.1
    assert s.snapshot().elapsed_label == "1.1s"


def test_elapsed_handles_huge_ticks_and_keeps_the_remainder() -> None:
    s = _session()
    s.start()

    s.tick(1e9 + 60.0)
    assert s.elapsed_s == 1e6
    s.tick(40.0)
    assert s.elapsed_s == pytest.approx(1e6 + 0.1)


def test_update_reads_injected_clock_and_caps_large_gaps() -> None:
    clock = FakeClock()
    s = SessionController(clock=clock, seed=1)
    clock.advance(30.0)  # idle time before start is not counted
    s.start()

    clock.advance(0.25)
    s.update()
    assert s.elapsed_s == 0.2

    clock.advance(2.0)
    s.update()
    assert s.elapsed_s == 0.7


def test_restart_discards_previous_timers() -> None:
    s = _session()
    s.start()
    s.activate(1)
    s.activate(2)
    s.tick(500.0)
    assert s.snapshot().remaining_ms == {1: 2000.0, 2: 2000.0}

    s.start()
    s.tick(5000.0)
    snap = s.snapshot()
    assert snap.activated == ()
    assert snap.remaining_ms == {}
    assert snap.expected_next == 1
    assert snap.session_number == 2


def test_restart_after_complete_cancels_pending_grace() -> None:
    s = _session(SequenceTapConfig(target_count=1))
    s.start()
    s.activate(1)
    s.start()
    s.tick(5000.0)

    assert s.phase is Phase.PLAYING
    assert s.outcome is None


def test_timer_independence_across_session_ticks() -> None:
    s = _session(SequenceTapConfig(decay_interval_ms=100.0))
    s.start()
    s.activate(1)
    s.tick(200.0)
    s.activate(2)

    snap = s.snapshot()
    while snap.remaining_ms[1] > 0.0:
        assert snap.remaining_ms[2] - snap.remaining_ms[1] == pytest.approx(200.0)
        s.tick(100.0)
        snap = s.snapshot()

    assert snap.remaining_ms[2] == 200.0


def test_toggle_autoplay_only_while_playing() -> None:
    s = _session()
    s.start()

    assert s.toggle_autoplay() is True
    assert s.autoplay is True
    assert s.snapshot().autoplay_label == "Auto Play ON"
    assert s.toggle_autoplay() is True
    assert s.autoplay is False

    s.toggle_autoplay()
    s.activate(3)
    assert s.phase is Phase.ENDED
    assert s.autoplay is False
    assert s.toggle_autoplay() is False


def test_events_record_each_accepted_activation() -> None:
    s = _session()
    s.start()
    s.tick(300.0)
    s.activate(1)
    s.activate(1)
    s.tick(200.0)
    s.activate(3)

    events = s.events()
    assert [(e.target_id, e.verdict) for e in events] == [(1, Verdict.ADVANCE), (3, Verdict.MISMATCH)]
    assert [e.at_elapsed_ms for e in events] == [300.0, 500.0]
    assert [e.index for e in events] == [0, 1]


def test_subscribers_see_every_change_until_unsubscribed() -> None:
    s = _session()
    seen: list[SessionSnapshot] = []
    unsubscribe = s.subscribe(seen.append)

    s.configure(3)
    s.start()
    s.activate(1)
    assert [snap.phase for snap in seen] == [Phase.IDLE, Phase.PLAYING, Phase.PLAYING]
    assert seen[-1].activated == (1,)

    unsubscribe()
    s.activate(2)
    assert len(seen) == 3


def test_session_end_is_logged(caplog: pytest.LogCaptureFixture) -> None:
    caplog.set_level(logging.INFO, logger="sequence_tap.session")
    s = _session()
    s.start()
    s.activate(2)

    assert any("ended: failed" in r.getMessage() for r in caplog.records)


@pytest.mark.parametrize(
    "config",
    [
        SequenceTapConfig(target_count=0),
        SequenceTapConfig(target_count=20, max_target_count=10),
        SequenceTapConfig(elapsed_step_ms=0.0),
        SequenceTapConfig(autoplay_delay_ms=0.0),
        SequenceTapConfig(decay_step_ms=0.0),
        SequenceTapConfig(grace_delay_ms=-1.0),
        SequenceTapConfig(max_placement_attempts=0),
    ],
)
def test_invalid_config_raises(config: SequenceTapConfig) -> None:
    with pytest.raises(ValueError):
        _session(config)


def test_tick_notifies_only_when_something_visible_changed() -> None:
    s = _session(SequenceTapConfig(target_count=2))
    s.start()
    seen: list[SessionSnapshot] = []
    s.subscribe(seen.append)

    s.tick(1.0)
    assert seen == []

    s.tick(99.0)
    assert len(seen) == 1
    assert seen[-1].elapsed_s == 0.1

    s.activate(1)
    assert len(seen) == 2
    s.tick(10.0)
    assert len(seen) == 2
    s.tick(40.0)  # first decay step of target 1
    assert len(seen) == 3
    assert seen[-1].remaining_ms[1] == 2900.0


def test_next_label_stays_on_the_board_during_grace_delay() -> None:
    s = _session(SequenceTapConfig(target_count=2))
    assert s.snapshot().next_label is None

    s.start()
    assert s.snapshot().next_label == "Next: 1"
    s.activate(1)
    s.activate(2)
    assert s.expected_next == 3
    assert s.snapshot().next_label == "Next: 2"

    s.tick(1800.0)
    assert s.phase is Phase.ENDED
    assert s.snapshot().next_label is None
