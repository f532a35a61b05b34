import json

import pytest

from tripz.response_cache import (
    CACHE_PREFIX,
    CACHE_TTL,
    JsonFileStore,
    MemoryStore,
    ResponseCache,
    StoreFullError,
    StoreUnreadableError,
    make_key,
)

TTL_MS = int(CACHE_TTL.total_seconds() * 1000)


class BrokenStore(MemoryStore):
    def set_item(self, key, value):
        raise StoreFullError("quota exceeded")


def test_get_returns_value_within_ttl(cache, clock):
    cache.set("suggestions_mid", [{"name": "Japan"}])
    clock.advance(TTL_MS)
    assert cache.get("suggestions_mid") == [{"name": "Japan"}]


def test_get_expires_one_millisecond_after_ttl(cache, clock, memory_store):
    cache.set("suggestions_mid", {"a": 1})
    clock.advance(TTL_MS + 1)
    assert cache.get("suggestions_mid") is None
    assert CACHE_PREFIX + "suggestions_mid" not in memory_store.items


def test_get_missing_key_is_a_miss(cache):
    assert cache.get("nothing") is None


@pytest.mark.parametrize(
    "raw",
    ["not json", "[1, 2]", json.dumps({"data": 1}), json.dumps({"timestamp": 5})],
)
def test_corrupt_entry_is_removed_on_get(cache, memory_store, raw):
    memory_store.items[CACHE_PREFIX + "bad"] = raw
    assert cache.get("bad") is None
    assert CACHE_PREFIX + "bad" not in memory_store.items


def test_set_overwrites_previous_value(cache):
    cache.set("k", "first")
    cache.set("k", "second")
    assert cache.get("k") == "second"


def test_set_writes_namespaced_entry(cache, memory_store, clock):
    cache.set("k", {"x": [1, 2]})
    stored = json.loads(memory_store.items[CACHE_PREFIX + "k"])
    assert stored == {"data": {"x": [1, 2]}, "timestamp": clock.now}


def test_set_swallows_store_failures(clock):
    cache = ResponseCache(BrokenStore(), clock=clock)
    cache.set("k", "value")
    assert cache.get("k") is None


def test_falsy_values_are_hits(cache):
    cache.set("empty", [])
    assert cache.get("empty") == []


def test_sweep_removes_stale_and_corrupt_entries_only(cache, memory_store, clock):
    cache.set("old", 1)
    clock.advance(TTL_MS + 1)
    cache.set("fresh", 2)
    memory_store.items[CACHE_PREFIX + "garbage"] = "{oops"

    assert cache.sweep() == 2
    assert set(memory_store.items) == {CACHE_PREFIX + "fresh"}


def test_sweep_never_touches_foreign_keys(cache, memory_store, clock):
    foreign = json.dumps({"data": "theirs", "timestamp": 0})
    memory_store.items["other_app_entry"] = foreign
    memory_store.items["unrelated"] = "not json at all"
    clock.advance(TTL_MS * 10)

    cache.sweep()

    assert memory_store.items["other_app_entry"] == foreign
    assert memory_store.items["unrelated"] == "not json at all"


def test_sweep_continues_past_key_errors(clock):
    class FlakyStore(MemoryStore):
        def get_item(self, key):
            if key.endswith("boom"):
                raise OSError("disk error")
            return super().get_item(key)

    store = FlakyStore()
    cache = ResponseCache(store, clock=clock)
    store.items[CACHE_PREFIX + "boom"] = "x"
    store.items[CACHE_PREFIX + "stale"] = json.dumps({"data": 1, "timestamp": 0})

    assert cache.sweep() == 1
    assert CACHE_PREFIX + "stale" not in store.items
    assert CACHE_PREFIX + "boom" in store.items


def test_json_file_store_survives_reopen(tmp_path, clock):
    path = tmp_path / "cache.json"
    ResponseCache(JsonFileStore(path), clock=clock).set("k", {"v": 1})
    reopened = ResponseCache(JsonFileStore(path), clock=clock)
    assert reopened.get("k") == {"v": 1}


def test_json_file_store_capacity_is_best_effort(tmp_path, clock):
    store = JsonFileStore(tmp_path / "cache.json", max_bytes=200)
    cache = ResponseCache(store, clock=clock)
    cache.set("small", 1)
    cache.set("big", "x" * 500)
    assert cache.get("small") == 1
    assert cache.get("big") is None


def test_json_file_store_raises_when_full(tmp_path):
    store = JsonFileStore(tmp_path / "cache.json", max_bytes=10)
    with pytest.raises(StoreFullError):
        store.set_item("key", "value that is too long")


def test_unreadable_file_store_reads_as_empty(tmp_path):
    path = tmp_path / "cache.json"
    path.write_text("{broken")
    assert JsonFileStore(path).keys() == []


@pytest.mark.parametrize("contents", ["{broken", "[1, 2]"])
def test_unreadable_file_store_is_never_overwritten(tmp_path, clock, contents):
    path = tmp_path / "cache.json"
    path.write_text(contents)
    store = JsonFileStore(path)
    with pytest.raises(StoreUnreadableError):
        store.set_item("key", "value")

    cache = ResponseCache(store, clock=clock)
    cache.set("suggestions", [1])
    cache.sweep()

    assert cache.get("suggestions") is None
    assert path.read_text() == contents


def test_make_key_normalizes_parameters():
    assert make_key("plan", "  Japan ", 7, "Mixed") == make_key("PLAN", "japan", "7", "mixed")
    assert make_key("plan", "New   Zealand") == make_key("plan", "new zealand")
    assert make_key("plan", "Japan").startswith("plan_")


@pytest.mark.parametrize(
    "first, second",
    [
        (("plan", "a_b", "c"), ("plan", "a", "b_c")),
        (("plan", "a", ""), ("plan", "a")),
        (("suggestions", "x", "y"), ("suggestions", "x y")),
    ],
)
def test_make_key_keeps_distinct_parameters_apart(first, second):
    assert make_key(*first) != make_key(*second)
