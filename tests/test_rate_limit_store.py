"""Unit tests for the in-memory rate limit store adapter."""

from throttlegate.adapters.rate_limit import InMemoryRateLimitStore, RateLimitEntry


def test_set_and_get_round_trip() -> None:
    store = InMemoryRateLimitStore()
    entry = RateLimitEntry(count=1, reset_time=5_000)

    store.set("/register:127.0.0.1", entry)

    assert store.get("/register:127.0.0.1") is entry
    assert store.get("/register:10.0.0.1") is None
    assert len(store) == 1


def test_sweep_removes_only_expired_entries() -> None:
    store = InMemoryRateLimitStore()
    store.set("old", RateLimitEntry(count=3, reset_time=1_000))
    store.set("boundary", RateLimitEntry(count=1, reset_time=2_000))
    store.set("fresh", RateLimitEntry(count=1, reset_time=9_000))

    removed = store.sweep(now_ms=2_000)

    assert removed == 1
    assert set(store.snapshot()) == {"boundary", "fresh"}


def test_entry_expires_strictly_after_reset_time() -> None:
    entry = RateLimitEntry(count=1, reset_time=2_000)

    assert entry.is_expired(1_999) is False
    assert entry.is_expired(2_000) is False
    assert entry.is_expired(2_001) is True


def test_clear_empties_store() -> None:
    store = InMemoryRateLimitStore()
    store.set("a", RateLimitEntry(count=1, reset_time=1_000))
    store.set("b", RateLimitEntry(count=2, reset_time=1_000))

    store.clear()

    assert len(store) == 0
    assert store.snapshot() == {}


def test_snapshot_is_a_copy() -> None:
    store = InMemoryRateLimitStore()
    store.set("k", RateLimitEntry(count=1, reset_time=1_000))

    snapshot = store.snapshot()
    snapshot["k"].count = 99
    snapshot["other"] = RateLimitEntry(count=1, reset_time=1_000)

    assert store.get("k").count == 1
    assert store.get("other") is None


def test_lock_is_reentrant() -> None:
    store = InMemoryRateLimitStore()

    with store.lock():
        store.set("k", RateLimitEntry(count=1, reset_time=1_000))
        assert store.get("k") is not None
