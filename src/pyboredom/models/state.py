"""Boredom state record and derived read snapshot."""

from __future__ import annotations

from pydantic import Field

from pyboredom._constants import LEVEL_MAX, LEVEL_MIN
from pyboredom.models._base import BoredomBaseModel


class BoredomState(BoredomBaseModel):
    """The singleton persisted record.

    Parameters
    ----------
    level : int
        Current boredom level, 0-100.
    last_update_time : int
        Epoch milliseconds of the last write (set, reset or persisted decay).
    boredom_spikes : int
        Number of explicit ``set`` operations since the last reset.
    """

    level: int = Field(default=0, ge=LEVEL_MIN, le=LEVEL_MAX)
    last_update_time: int = Field(default=0, ge=0)
    boredom_spikes: int = Field(default=0, ge=0)


class BoredomSnapshot(BoredomBaseModel):
    """What a read returns: the decayed state plus derived timing fields."""

    level: int = Field(ge=LEVEL_MIN, le=LEVEL_MAX)
    last_update_time: int
    boredom_spikes: int
    time_alone: int
    server_time: int
