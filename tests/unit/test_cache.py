"""Unit tests for the prediction listing cache."""

from predictearn.predictions.cache import PredictionListCache


class FakeClock:
    def __init__(self) -> None:
        self.now = 1000.0

    def __call__(self) -> float:
        return self.now


class TestPredictionListCache:

    def test_miss_then_hit(self):
        cache = PredictionListCache(ttl_seconds=60, clock=FakeClock())
        assert cache.get() == (None, False)
        cache.set(["a"])
        assert cache.get() == (["a"], True)

    def test_expires_after_ttl(self):
        clock = FakeClock()
        cache = PredictionListCache(ttl_seconds=60, clock=clock)
        cache.set(["a"])
        clock.now += 59
        assert cache.get()[1] is True
        clock.now += 1
        assert cache.get() == (None, False)

    def test_invalidate_drops_entry(self):
        cache = PredictionListCache(ttl_seconds=60, clock=FakeClock())
        cache.set(["a"])
        cache.invalidate()
        assert cache.get() == (None, False)

    def test_set_if_generation_rejects_stale_write(self):
        cache = PredictionListCache(ttl_seconds=60, clock=FakeClock())
        generation = cache.generation
        cache.invalidate()
        assert cache.set_if_generation(["stale"], generation) is False
        assert cache.get() == (None, False)
        assert cache.set_if_generation(["fresh"], cache.generation) is True
        assert cache.get() == (["fresh"], True)

    def test_stats(self):
        cache = PredictionListCache(ttl_seconds=60, clock=FakeClock())
        cache.get()
        cache.set([])
        cache.get()
        cache.invalidate()
        assert cache.stats == {"hits": 1, "misses": 1, "generation": 1}
