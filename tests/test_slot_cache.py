"""Tests for SlotListingCache."""

from utils.slot_cache import SlotListingCache


class FakeClock:
    def __init__(self):
        self.now = 0.0

    def __call__(self):
        return self.now


class TestSlotListingCache:

    def test_entries_expire(self):
        clock = FakeClock()
        cache = SlotListingCache(ttl_seconds=30, clock=clock)
        cache.set("2030-01-01", ["a"])

        clock.now = 29
        assert cache.get("2030-01-01") == ["a"]
        clock.now = 30
        assert cache.get("2030-01-01") is None
        assert len(cache) == 0

    def test_get_or_populate_loads_once(self):
        cache = SlotListingCache(ttl_seconds=30, clock=FakeClock())
        calls = []

        def loader():
            calls.append(1)
            return ["slot"]

        assert cache.get_or_populate("d", loader) == ["slot"]
        assert cache.get_or_populate("d", loader) == ["slot"]
        assert len(calls) == 1

    def test_invalidate(self):
        cache = SlotListingCache(ttl_seconds=30, clock=FakeClock())
        cache.set("d1", [1])
        cache.set("d2", [2])

        cache.invalidate("d1")

        assert cache.get("d1") is None
        assert cache.get("d2") == [2]

    def test_zero_ttl_disables_caching(self):
        cache = SlotListingCache(ttl_seconds=0, clock=FakeClock())
        cache.get_or_populate("d", lambda: ["x"])
        assert len(cache) == 0
