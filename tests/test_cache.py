import threading

from core.cache import CacheEntry, TTLChartCache, get_fresh


class FakeClock:
    def __init__(self, initial: float = 0.0):
        self._value = initial

    def now(self) -> float:
        return self._value

    def advance(self, seconds: float) -> None:
        self._value += seconds


DAY = 24 * 3600


def test_entry_becomes_stale_after_retention_window():
    clock = FakeClock()
    cache = TTLChartCache(retention_seconds=30 * DAY, sweep_interval_seconds=10**9, time_func=clock.now)

    cache.set("k", "chart")
    entry = cache.get("k")
    assert isinstance(entry, CacheEntry)
    assert entry.value == "chart"
    assert entry.saved_at == 0.0
    assert not cache.is_stale(entry)

    clock.advance(30 * DAY)
    assert not cache.is_stale(entry)

    clock.advance(1)
    assert cache.is_stale(entry)
    assert get_fresh(cache, "k") is None


def test_get_fresh_returns_none_for_unknown_key():
    cache = TTLChartCache()
    assert get_fresh(cache, "missing") is None


def test_set_overwrites_and_resets_saved_at():
    clock = FakeClock()
    cache = TTLChartCache(retention_seconds=10, sweep_interval_seconds=10**9, time_func=clock.now)

    cache.set("k", "first")
    clock.advance(8)
    cache.set("k", "second")
    clock.advance(8)

    entry = get_fresh(cache, "k")
    assert entry is not None
    assert entry.value == "second"
    assert entry.saved_at == 8


def test_sweep_removes_stale_entries():
    clock = FakeClock()
    cache = TTLChartCache(retention_seconds=5, sweep_interval_seconds=2, time_func=clock.now)

    cache.set("stale", "x")
    clock.advance(4)
    cache.set("alive", "y")

    clock.advance(3)
    cache.set("new", "z")

    assert cache.get("stale") is None
    assert cache.get("alive").value == "y"
    assert cache.get("new").value == "z"
    assert len(cache) == 2


def test_forced_sweep_reports_removed_count():
    clock = FakeClock()
    cache = TTLChartCache(retention_seconds=1, sweep_interval_seconds=10**9, time_func=clock.now)
    cache.set("a", 1)
    cache.set("b", 2)
    clock.advance(2)

    assert cache.sweep() == 2
    assert len(cache) == 0


def test_bounded_cache_discards_oldest_on_overflow():
    clock = FakeClock()
    cache = TTLChartCache(maxsize=2, sweep_interval_seconds=10**9, time_func=clock.now)

    cache.set("a", 1)
    cache.set("b", 2)
    cache.set("a", 10)
    cache.set("c", 3)

    assert cache.get("b") is None
    assert cache.get("a").value == 10
    assert cache.get("c").value == 3


def test_cache_concurrent_get_set_is_thread_safe():
    cache = TTLChartCache()
    start = threading.Barrier(9)

    def writer(prefix: str):
        start.wait()
        for i in range(500):
            cache.set(f"{prefix}-{i}", i)

    def reader(prefix: str):
        start.wait()
        for i in range(500):
            entry = cache.get(f"{prefix}-{i}")
            if entry is not None:
                assert isinstance(entry.value, int)

    threads = [threading.Thread(target=writer, args=(p,)) for p in "abcd"]
    threads += [threading.Thread(target=reader, args=(p,)) for p in "abcd"]

    for thread in threads:
        thread.start()

    start.wait()

    for thread in threads:
        thread.join()

    assert cache.get("a-499").value == 499
    assert cache.get("d-499").value == 499
