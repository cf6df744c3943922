"""Per-replica caches for the singleton boredom state.

Both caches share one mutation entry point, :meth:`put`, used for store
reads, write results and change-feed events alike.  Neither is ever the
sole copy of the state: a ``None`` from :meth:`get` means "ask the store".
"""

from __future__ import annotations

import logging
from typing import Protocol

from pyboredom._constants import DEFAULT_CACHE_TTL_MS
from pyboredom.models.state import BoredomState

_logger = logging.getLogger(__name__)


def should_accept_state(cached: BoredomState | None, incoming: BoredomState) -> bool:
    """Decide whether *incoming* may replace *cached*.

    Every write moves ``last_update_time`` forward or keeps it, so an
    incoming state with an older timestamp was overtaken.  Equal
    timestamps are accepted; re-applying the same state is a no-op.
    """
    if cached is None:
        return True
    return incoming.last_update_time >= cached.last_update_time


class StateCache(Protocol):
    """Structural cache interface used by :class:`~pyboredom.service.BoredomService`."""

    mode: str

    def get(self, now_ms: int) -> BoredomState | None:
        ...

    def put(self, state: BoredomState, now_ms: int) -> None:
        ...

    def invalidate(self) -> None:
        ...


class TtlStateCache:
    """Pull cache: the last state read or written, valid for ``ttl_ms``."""

    mode = "ttl"

    def __init__(self, ttl_ms: int = DEFAULT_CACHE_TTL_MS) -> None:
        self._ttl_ms = ttl_ms
        self._state: BoredomState | None = None
        self._expires_at = 0

    @property
    def expires_at(self) -> int:
        return self._expires_at

    def get(self, now_ms: int) -> BoredomState | None:
        if self._state is not None and now_ms < self._expires_at:
            return self._state
        return None

    def put(self, state: BoredomState, now_ms: int) -> None:
        # A read that was in flight during a write must not rewind the cache.
        if not should_accept_state(self._state, state):
            _logger.debug(
                "Ignoring overtaken state lastUpdateTime=%s (cached %s)",
                state.last_update_time,
                self._state.last_update_time if self._state is not None else None,
            )
            return
        self._state = state
        self._expires_at = now_ms + self._ttl_ms

    def invalidate(self) -> None:
        self._state = None
        self._expires_at = 0


class PushStateCache:
    """Change-feed driven cache with no expiry.

    The held state is only served while the feed is live.  When the feed
    drops, the cache goes stale and reads fall through to the store until
    the feed is re-established.
    """

    mode = "push"

    def __init__(self) -> None:
        self._state: BoredomState | None = None
        self._live = False

    @property
    def is_live(self) -> bool:
        return self._live

    def mark_live(self) -> None:
        self._live = True

    def mark_stale(self) -> None:
        self._live = False

    def get(self, now_ms: int) -> BoredomState | None:
        if not self._live:
            return None
        return self._state

    def put(self, state: BoredomState, now_ms: int) -> None:
        if not should_accept_state(self._state, state):
            _logger.debug(
                "Ignoring out-of-order state lastUpdateTime=%s (cached %s)",
                state.last_update_time,
                self._state.last_update_time if self._state is not None else None,
            )
            return
        self._state = state

    def invalidate(self) -> None:
        self._state = None
