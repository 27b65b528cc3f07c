from __future__ import annotations

from .game_core import Verdict


class SequenceValidator:
    """Checks that targets are activated in ascending id order.

    Repeat activations are filtered out by the caller; any id reaching this
    point that is not the expected one is a mismatch, including ids that were
    already passed.
    """

    def validate(self, target_id: int, *, expected_next: int, target_count: int) -> Verdict:
        if int(target_id) != int(expected_next):
            return Verdict.MISMATCH
        if int(expected_next) == int(target_count):
            return Verdict.COMPLETE
        return Verdict.ADVANCE
