from __future__ import annotations

import pytest

from pyboredom.decay import compute_decay
from pyboredom.models.state import BoredomState

MINUTE_MS = 60 * 1000
INTERVAL_MS = 30 * MINUTE_MS
T0 = 1_760_000_000_000


def _state(level: int, last_update_time: int = T0, spikes: int = 3) -> BoredomState:
    return BoredomState(level=level, last_update_time=last_update_time, boredom_spikes=spikes)


def test_three_units_after_ninety_five_minutes() -> None:
    result = compute_decay(_state(50), T0 + 95 * MINUTE_MS, INTERVAL_MS)

    assert result.units == 3
    assert result.level == 47
    assert result.dirty is True


def test_anchor_keeps_partial_interval() -> None:
    result = compute_decay(_state(50), T0 + 95 * MINUTE_MS, INTERVAL_MS)

    assert result.anchor == T0 + 90 * MINUTE_MS
    # The remaining five minutes still count toward the next unit.
    follow_up = compute_decay(_state(result.level, result.anchor), T0 + 120 * MINUTE_MS, INTERVAL_MS)
    assert follow_up.units == 1
    assert follow_up.level == 46


def test_no_decay_within_first_interval() -> None:
    result = compute_decay(_state(50), T0 + INTERVAL_MS - 1, INTERVAL_MS)

    assert result.units == 0
    assert result.level == 50
    assert result.anchor == T0
    assert result.dirty is False


def test_level_clamped_at_zero() -> None:
    result = compute_decay(_state(2), T0 + 10 * INTERVAL_MS, INTERVAL_MS)

    assert result.level == 0
    assert result.units == 10


def test_dirty_at_floor_so_anchor_advances() -> None:
    result = compute_decay(_state(0), T0 + 2 * INTERVAL_MS, INTERVAL_MS)

    assert result.level == 0
    assert result.dirty is True
    assert result.anchor == T0 + 2 * INTERVAL_MS


def test_clock_behind_record_is_a_no_op() -> None:
    result = compute_decay(_state(40), T0 - 5 * INTERVAL_MS, INTERVAL_MS)

    assert result.level == 40
    assert result.units == 0
    assert result.dirty is False


@pytest.mark.parametrize("level", [0, 1, 37, 99, 100])
@pytest.mark.parametrize("elapsed", [0, INTERVAL_MS // 2, INTERVAL_MS, 7 * INTERVAL_MS + 3, 500 * INTERVAL_MS])
def test_decay_never_increases_level(level: int, elapsed: int) -> None:
    result = compute_decay(_state(level), T0 + elapsed, INTERVAL_MS)

    assert 0 <= result.level <= level
    assert result.anchor <= T0 + elapsed


def test_non_positive_interval_rejected() -> None:
    with pytest.raises(ValueError):
        compute_decay(_state(10), T0, 0)
