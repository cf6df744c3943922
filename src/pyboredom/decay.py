"""Time-based boredom decay."""

from __future__ import annotations

from dataclasses import dataclass

from pyboredom._constants import DEFAULT_DECAY_INTERVAL_MS, LEVEL_MIN
from pyboredom.models.state import BoredomState


@dataclass(frozen=True, slots=True)
class DecayResult:
    """Outcome of applying decay to a state at a given instant.

    ``dirty`` is set whenever at least one whole interval elapsed, even
    when the level was already at the floor: the anchor still has to move
    forward so later reads do not keep measuring from an ever older
    timestamp.
    """

    level: int
    units: int
    anchor: int
    dirty: bool


def compute_decay(
    state: BoredomState,
    now_ms: int,
    interval_ms: int = DEFAULT_DECAY_INTERVAL_MS,
) -> DecayResult:
    """Compute the decayed level of *state* at *now_ms*.

    One level point is removed per whole *interval_ms* elapsed since
    ``state.last_update_time``.  A clock behind the record (negative
    elapsed time) is treated as no elapsed time.

    ``anchor`` is the ``last_update_time`` to persist alongside the new
    level: the old timestamp advanced by the consumed intervals, so the
    partial interval carries over to the next decay.
    """
    if interval_ms <= 0:
        raise ValueError(f"decay interval must be positive, got {interval_ms}")

    elapsed = max(0, now_ms - state.last_update_time)
    units = elapsed // interval_ms
    if units == 0:
        return DecayResult(level=state.level, units=0, anchor=state.last_update_time, dirty=False)

    return DecayResult(
        level=max(LEVEL_MIN, state.level - units),
        units=units,
        anchor=state.last_update_time + units * interval_ms,
        dirty=True,
    )
