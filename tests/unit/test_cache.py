from __future__ import annotations

from fillforms.cache import TTLCache


class _Clock:
    def __init__(self) -> None:
        self.now = 0.0

    def __call__(self) -> float:
        return self.now


def test_entries_expire_after_ttl() -> None:
    clock = _Clock()
    cache: TTLCache[str, int] = TTLCache(ttl_seconds=10, clock=clock)
    cache.put("a", 1)

    clock.now = 9.9
    assert cache.get("a") == 1
    clock.now = 10.0
    assert cache.get("a") is None
    assert len(cache) == 0


def test_oldest_entry_is_evicted_when_full() -> None:
    clock = _Clock()
    cache: TTLCache[str, int] = TTLCache(ttl_seconds=100, max_entries=2, clock=clock)
    cache.put("a", 1)
    clock.now = 1
    cache.put("b", 2)
    clock.now = 2
    cache.put("c", 3)

    assert cache.get("a") is None
    assert cache.get("b") == 2
    assert cache.get("c") == 3


def test_invalidate_and_evict_expired() -> None:
    clock = _Clock()
    cache: TTLCache[str, int] = TTLCache(ttl_seconds=5, clock=clock)
    cache.put("a", 1)
    cache.put("b", 2)
    cache.invalidate("a")

    clock.now = 6
    assert cache.evict_expired() == 1
    assert len(cache) == 0
