"""High-level boredom state service."""

from __future__ import annotations

import logging
import math
import time
from collections.abc import Callable, Mapping
from typing import Any

from pyboredom._cache import PushStateCache, StateCache, TtlStateCache
from pyboredom._changefeed import ChangeFeedRuntime
from pyboredom._constants import CACHE_MODE_PUSH, LEVEL_MAX, LEVEL_MIN
from pyboredom.config import BoredomConfig
from pyboredom.decay import DecayResult, compute_decay
from pyboredom.exceptions import InvalidArgumentError, StateNotFoundError
from pyboredom.models.state import BoredomSnapshot, BoredomState
from pyboredom.store import FIELD_LAST_UPDATE_TIME, FIELD_LEVEL, FIELD_SPIKES, StateStore, create_store

_logger = logging.getLogger(__name__)


def _now_ms() -> int:
    """Current epoch timestamp in milliseconds."""
    return int(time.time() * 1000)


def validate_level(value: Any) -> int:
    """Normalize a requested level to an int in ``[0, 100]``.

    Accepts ints and finite floats (not bools).  Fractions round half up,
    so ``49.5`` becomes ``50``.

    Raises
    ------
    InvalidArgumentError
        If *value* is not a number or lies outside the range.
    """
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise InvalidArgumentError(f"Level must be a number between {LEVEL_MIN} and {LEVEL_MAX}")
    if not math.isfinite(value) or not LEVEL_MIN <= value <= LEVEL_MAX:
        raise InvalidArgumentError(f"Level must be between {LEVEL_MIN} and {LEVEL_MAX}, got {value}")
    return math.floor(value + 0.5)


class BoredomService:
    """Owns the cache and store of one replica and applies decay.

    Usage::

        async with BoredomService.from_config(config) as service:
            snapshot = await service.get_current_level()
            await service.set_level(42)
    """

    def __init__(
        self,
        config: BoredomConfig,
        store: StateStore,
        cache: StateCache,
        *,
        clock: Callable[[], int] = _now_ms,
    ) -> None:
        self._config = config
        self._store = store
        self._cache = cache
        self._clock = clock
        self._feed: ChangeFeedRuntime | None = None
        self._alone_since_ms = int(config.alone_since.timestamp() * 1000)

    @classmethod
    def from_config(cls, config: BoredomConfig, **kwargs: Any) -> BoredomService:
        """Build a service with the store and cache selected by *config*."""
        cache: StateCache
        if config.cache_mode == CACHE_MODE_PUSH:
            cache = PushStateCache()
        else:
            cache = TtlStateCache(config.cache_ttl_ms)
        return cls(config, create_store(config), cache, **kwargs)

    @property
    def cache(self) -> StateCache:
        return self._cache

    @property
    def store(self) -> StateStore:
        return self._store

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def __aenter__(self) -> BoredomService:
        await self.start()
        return self

    async def __aexit__(self, *exc: Any) -> None:
        await self.close()

    async def start(self) -> None:
        """Connect the store, ensure the record exists and prime the cache."""
        await self._store.connect()
        now = self._clock()
        state = await self._load_or_create(now)
        self._cache.put(state, now)
        _logger.info(
            "State loaded level=%d spikes=%d lastUpdateTime=%d",
            state.level,
            state.boredom_spikes,
            state.last_update_time,
        )
        if isinstance(self._cache, PushStateCache):
            push_cache = self._cache
            self._feed = ChangeFeedRuntime(
                store=self._store,
                on_state=self._remember,
                on_live=push_cache.mark_live,
                on_stale=push_cache.mark_stale,
                reconnect_delay=self._config.feed_reconnect_delay,
            )
            self._feed.start()

    async def close(self) -> None:
        feed = self._feed
        self._feed = None
        if feed is not None:
            await feed.stop()
        await self._store.close()

    # ------------------------------------------------------------------
    # Public operations
    # ------------------------------------------------------------------

    def time_alone(self, now_ms: int) -> int:
        """Whole seconds since the fixed ``alone_since`` instant."""
        return (now_ms - self._alone_since_ms) // 1000

    async def get_current_level(self) -> BoredomSnapshot:
        """Return the decayed state.

        Decay is only written back when at least one interval elapsed and
        the stored record is older than ``persist_min_interval_ms``, so
        replicas polling the same record do not all race to write it.
        """
        now = self._clock()
        state = await self._read(now)
        decay = compute_decay(state, now, self._config.decay_interval_ms)

        if decay.dirty and now - state.last_update_time > self._config.persist_min_interval_ms:
            state, decay = await self._persist_decay(state, decay, now)

        return BoredomSnapshot(
            level=decay.level,
            last_update_time=state.last_update_time,
            boredom_spikes=state.boredom_spikes,
            time_alone=self.time_alone(now),
            server_time=now,
        )

    async def set_level(self, requested: Any) -> int:
        """Set the level and count a spike; returns the persisted level."""
        level = validate_level(requested)
        now = self._clock()
        updated = await self._write(
            now,
            set_fields={FIELD_LEVEL: level},
            inc_fields={FIELD_SPIKES: 1},
            max_fields={FIELD_LAST_UPDATE_TIME: now},
        )
        assert updated is not None  # noqa: S101
        _logger.info("Boredom level set to %d (spikes=%d)", updated.level, updated.boredom_spikes)
        return updated.level

    async def reset(self) -> int:
        """Zero the level and the spike counter."""
        now = self._clock()
        updated = await self._write(
            now,
            set_fields={FIELD_LEVEL: 0, FIELD_SPIKES: 0},
            max_fields={FIELD_LAST_UPDATE_TIME: now},
        )
        assert updated is not None  # noqa: S101
        _logger.info("Boredom state reset")
        return updated.level

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _default_state(self, now_ms: int) -> BoredomState:
        return BoredomState(level=0, last_update_time=now_ms, boredom_spikes=0)

    def _remember(self, state: BoredomState) -> None:
        """Single entry point for cache mutation (reads, writes, change feed)."""
        self._cache.put(state, self._clock())

    async def _load_or_create(self, now_ms: int) -> BoredomState:
        try:
            return await self._store.load()
        except StateNotFoundError:
            _logger.info("No state record found; creating default")
            return await self._store.create(self._default_state(now_ms))

    async def _read(self, now_ms: int, *, force: bool = False) -> BoredomState:
        if not force:
            cached = self._cache.get(now_ms)
            if cached is not None:
                _logger.debug("State cache hit")
                return cached
        _logger.debug("State cache miss; reading store")
        state = await self._load_or_create(now_ms)
        self._remember(state)
        return state

    async def _persist_decay(
        self,
        state: BoredomState,
        decay: DecayResult,
        now_ms: int,
    ) -> tuple[BoredomState, DecayResult]:
        updated = await self._write(
            now_ms,
            set_fields={FIELD_LEVEL: decay.level, FIELD_LAST_UPDATE_TIME: decay.anchor},
            expect={
                FIELD_LEVEL: state.level,
                FIELD_LAST_UPDATE_TIME: state.last_update_time,
                FIELD_SPIKES: state.boredom_spikes,
            },
        )
        if updated is None:
            # Another writer moved the record since it was read.
            _logger.warning("Decay write skipped: state changed since read; re-reading")
            self._cache.invalidate()
            fresh = await self._read(now_ms, force=True)
            return fresh, compute_decay(fresh, now_ms, self._config.decay_interval_ms)

        _logger.debug("Persisted decay of %d unit(s) -> level %d", decay.units, updated.level)
        return updated, compute_decay(updated, now_ms, self._config.decay_interval_ms)

    async def _write(
        self,
        now_ms: int,
        *,
        set_fields: Mapping[str, Any] | None = None,
        inc_fields: Mapping[str, int] | None = None,
        max_fields: Mapping[str, Any] | None = None,
        expect: Mapping[str, Any] | None = None,
    ) -> BoredomState | None:
        """Apply one atomic update and write its result through to the cache.

        On any failure, including cancellation, the outcome is unknown and
        the cache is invalidated before the error propagates.
        """
        try:
            updated = await self._store.atomic_update(
                set_fields,
                inc_fields,
                max_fields=max_fields,
                expect=expect,
            )
        except BaseException:
            self._cache.invalidate()
            raise

        if updated is None:
            if expect is not None:
                return None
            self._cache.invalidate()
            await self._store.create(self._default_state(now_ms))
            raise StateNotFoundError("State record was missing and has been recreated", operation="atomic_update")

        self._remember(updated)
        return updated
