from __future__ import annotations

from skillmap_core.store import MemoryStore, TTLCache
from tests.conftest import FakeClock

DAY = 24 * 3600


def test_entry_readable_until_ttl():
    clock = FakeClock(0.0)
    cache = TTLCache(MemoryStore(), ttl_seconds=DAY, clock=clock)
    cache.put("sess-1", "1. Practice SQL joins")

    clock.advance(DAY - 60)
    hit = cache.get("sess-1")
    assert hit is not None
    assert hit.value == "1. Practice SQL joins"
    assert hit.captured_at == 0.0

    clock.advance(120)
    assert cache.get("sess-1") is None


def test_expiry_boundary_is_inclusive():
    clock = FakeClock(0.0)
    cache = TTLCache(MemoryStore(), ttl_seconds=10, clock=clock)
    cache.put("s", "text")
    clock.advance(10)
    assert cache.get("s") is None


def test_put_refreshes_timestamp_and_keys_are_prefixed():
    clock = FakeClock(100.0)
    store = MemoryStore()
    cache = TTLCache(store, ttl_seconds=DAY, clock=clock)
    cache.put("s", "old")
    clock.advance(DAY - 1)
    cache.put("s", "new")
    clock.advance(DAY - 1)
    assert cache.get("s").value == "new"
    assert store.get("ai_suggestions_s")["value"] == "new"


def test_sessions_do_not_share_entries():
    cache = TTLCache(MemoryStore(), clock=FakeClock())
    cache.put("a", "for a")
    assert cache.get("b") is None


def test_malformed_entry_reads_as_absent():
    store = MemoryStore()
    store.set("ai_suggestions_x", {"value": "v"})
    assert TTLCache(store, clock=FakeClock()).get("x") is None
