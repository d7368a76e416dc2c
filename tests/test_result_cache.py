"""
Tests for the in-process result cache
"""
from datetime import date

from services.binfinder.models import CollectionEntry
from services.binfinder.result_cache import ResultCache, make_cache_key

DAY = 24 * 60 * 60
ENTRIES = [CollectionEntry("Household Waste", date(2025, 6, 12))]


def test_cache_key_is_council_and_lowercased_text():
    assert make_cache_key("WiltshireCouncil", "10 SN8 1RA") == "WiltshireCouncil|10 sn8 1ra"


def test_put_then_get_returns_payload(fake_clock):
    cache = ResultCache(ttl_seconds=DAY, clock=fake_clock)
    cache.put("k", ENTRIES)
    assert cache.get("k") == ENTRIES


def test_missing_key_is_miss(fake_clock):
    cache = ResultCache(ttl_seconds=DAY, clock=fake_clock)
    assert cache.get("nothing") is None


def test_entry_served_until_ttl(fake_clock):
    cache = ResultCache(ttl_seconds=DAY, clock=fake_clock)
    cache.put("k", ENTRIES)
    fake_clock.advance(DAY)
    assert cache.get("k") == ENTRIES


def test_expired_entry_is_miss_and_evicted(fake_clock):
    cache = ResultCache(ttl_seconds=DAY, clock=fake_clock)
    cache.put("k", ENTRIES)
    fake_clock.advance(DAY + 1)

    assert "k" in cache.keys()
    assert cache.get("k") is None
    assert "k" not in cache.keys()
    assert len(cache) == 0


def test_put_overwrites_and_restarts_ttl(fake_clock):
    cache = ResultCache(ttl_seconds=DAY, clock=fake_clock)
    cache.put("k", [])
    fake_clock.advance(DAY - 10)
    cache.put("k", ENTRIES)
    fake_clock.advance(20)
    assert cache.get("k") == ENTRIES


def test_purge_expired(fake_clock):
    cache = ResultCache(ttl_seconds=DAY, clock=fake_clock)
    cache.put("old", ENTRIES)
    fake_clock.advance(DAY + 1)
    cache.put("new", ENTRIES)

    assert cache.purge_expired() == 1
    assert cache.keys() == ["new"]


def test_returned_payload_is_a_copy(fake_clock):
    cache = ResultCache(ttl_seconds=DAY, clock=fake_clock)
    cache.put("k", ENTRIES)
    cache.get("k").clear()
    assert cache.get("k") == ENTRIES
