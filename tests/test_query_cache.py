import pytest

from app.crm.query_cache import QueryCache


class Clock:
    def __init__(self) -> None:
        self.now = 0.0

    def __call__(self) -> float:
        return self.now


@pytest.fixture()
def clock():
    return Clock()


@pytest.fixture()
def cache(clock):
    return QueryCache(stale_seconds=30, clock=clock)


def test_fetch_reuses_fresh_value(cache, clock):
    calls = []

    def loader():
        calls.append(1)
        return ["a"]

    assert cache.fetch(("customers", {"limit": 100}), loader) == ["a"]
    clock.now = 29
    assert cache.fetch(("customers", {"limit": 100}), loader) == ["a"]
    assert len(calls) == 1

    clock.now = 30
    cache.fetch(("customers", {"limit": 100}), loader)
    assert len(calls) == 2


def test_per_call_stale_time(cache, clock):
    cache.set(("customer-notes", "c1"), ["n"])
    clock.now = 45
    assert cache.get(("customer-notes", "c1"), stale_seconds=60) == ["n"]
    assert cache.get(("customer-notes", "c1")) is None


def test_dict_key_order_does_not_matter(cache):
    cache.set(("transactions", {"limit": 100, "status": "failed"}), [1])
    assert cache.get(("transactions", {"status": "failed", "limit": 100})) == [1]


def test_empty_list_is_cached_but_none_is_not(cache):
    calls = []

    def empty():
        calls.append(1)
        return []

    cache.fetch(("customer-notes", "c2"), empty)
    cache.fetch(("customer-notes", "c2"), empty)
    assert len(calls) == 1

    cache.fetch(("customer", "c9"), lambda: None)
    assert len(cache) == 1


def test_loader_errors_propagate_and_are_not_cached(cache):
    def boom():
        raise RuntimeError("down")

    with pytest.raises(RuntimeError):
        cache.fetch(("customers",), boom)
    assert cache.fetch(("customers",), lambda: ["ok"]) == ["ok"]


def test_invalidate_by_prefix(cache):
    cache.set(("customer-transactions", "c1"), 1)
    cache.set(("customer-transactions", "c2"), 2)
    cache.set(("customer-notes", "c1"), 3)

    assert cache.invalidate(("customer-transactions",)) == 2
    assert cache.get(("customer-transactions", "c1")) is None
    assert cache.get(("customer-notes", "c1")) == 3

    assert cache.invalidate(("customer-notes", "c2")) == 0
    assert cache.invalidate(("customer-notes", "c1")) == 1
    assert len(cache) == 0


def test_least_recently_used_entry_is_evicted(clock):
    cache = QueryCache(stale_seconds=30, max_entries=2, clock=clock)
    cache.set(("a",), 1)
    cache.set(("b",), 2)
    cache.get(("a",))
    cache.set(("c",), 3)
    assert cache.get(("b",)) is None
    assert cache.get(("a",)) == 1
    assert cache.get(("c",)) == 3


def test_clear(cache):
    cache.set(("a",), 1)
    cache.clear()
    assert len(cache) == 0
