from __future__ import annotations

from pyboredom._cache import PushStateCache, TtlStateCache, should_accept_state
from pyboredom.models.state import BoredomState


def _state(level: int = 10, last_update_time: int = 1_000, spikes: int = 0) -> BoredomState:
    return BoredomState(level=level, last_update_time=last_update_time, boredom_spikes=spikes)


class TestTtlStateCache:
    def test_empty_cache_misses(self) -> None:
        assert TtlStateCache(ttl_ms=5000).get(0) is None

    def test_hit_before_expiry_miss_after(self) -> None:
        cache = TtlStateCache(ttl_ms=5000)
        state = _state()
        cache.put(state, now_ms=10_000)

        assert cache.get(10_000) == state
        assert cache.get(14_999) == state
        assert cache.get(15_000) is None

    def test_put_resets_expiry(self) -> None:
        cache = TtlStateCache(ttl_ms=5000)
        cache.put(_state(level=1), now_ms=0)
        cache.put(_state(level=2), now_ms=4_000)

        cached = cache.get(8_000)
        assert cached is not None
        assert cached.level == 2

    def test_invalidate_forces_miss(self) -> None:
        cache = TtlStateCache(ttl_ms=5000)
        cache.put(_state(), now_ms=0)
        cache.invalidate()

        assert cache.get(1) is None
        assert cache.expires_at == 0

    def test_same_state_twice_is_idempotent(self) -> None:
        cache = TtlStateCache(ttl_ms=5000)
        state = _state(level=33, spikes=4)
        cache.put(state, now_ms=100)
        cache.put(state, now_ms=100)

        assert cache.get(200) == state

    def test_older_state_does_not_replace_newer(self) -> None:
        cache = TtlStateCache(ttl_ms=5000)
        newer = _state(level=80, last_update_time=2_000)
        cache.put(newer, now_ms=3_000)
        cache.put(_state(level=10, last_update_time=1_000), now_ms=3_500)

        assert cache.get(3_600) == newer
        assert cache.expires_at == 8_000

    def test_equal_timestamp_refreshes_expiry(self) -> None:
        cache = TtlStateCache(ttl_ms=5000)
        cache.put(_state(level=5, last_update_time=1_000), now_ms=1_000)
        cache.put(_state(level=6, last_update_time=1_000), now_ms=4_000)

        cached = cache.get(8_500)
        assert cached is not None
        assert cached.level == 6

    def test_invalidate_accepts_any_next_state(self) -> None:
        cache = TtlStateCache(ttl_ms=5000)
        cache.put(_state(last_update_time=9_000), now_ms=0)
        cache.invalidate()
        older = _state(level=3, last_update_time=1_000)
        cache.put(older, now_ms=10)

        assert cache.get(20) == older


class TestPushStateCache:
    def test_not_served_until_live(self) -> None:
        cache = PushStateCache()
        cache.put(_state(), now_ms=0)

        assert cache.get(0) is None
        cache.mark_live()
        assert cache.get(10**12) == _state()

    def test_stale_feed_falls_through(self) -> None:
        cache = PushStateCache()
        cache.mark_live()
        cache.put(_state(), now_ms=0)
        cache.mark_stale()

        assert cache.get(0) is None

    def test_older_state_ignored(self) -> None:
        cache = PushStateCache()
        cache.mark_live()
        cache.put(_state(level=80, last_update_time=2_000), now_ms=0)
        cache.put(_state(level=10, last_update_time=1_000), now_ms=0)

        cached = cache.get(0)
        assert cached is not None
        assert cached.level == 80

    def test_same_state_twice_is_idempotent(self) -> None:
        cache = PushStateCache()
        cache.mark_live()
        state = _state(level=55, spikes=7)
        cache.put(state, now_ms=0)
        cache.put(state, now_ms=0)

        assert cache.get(0) == state

    def test_invalidate_drops_state(self) -> None:
        cache = PushStateCache()
        cache.mark_live()
        cache.put(_state(last_update_time=5_000), now_ms=0)
        cache.invalidate()

        assert cache.get(0) is None
        # After invalidation any state is accepted again.
        cache.put(_state(last_update_time=1), now_ms=0)
        assert cache.get(0) is not None


def test_should_accept_equal_timestamps() -> None:
    assert should_accept_state(_state(level=1, last_update_time=5), _state(level=0, last_update_time=5))
    assert should_accept_state(None, _state())
    assert not should_accept_state(_state(last_update_time=6), _state(last_update_time=5))
