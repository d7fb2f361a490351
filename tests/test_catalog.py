# tests/test_catalog.py
import pytest
import requests

from recite_tutor import catalog
from recite_tutor.catalog import CacheEntry, get_catalog, load_cache, normalize_chapters
from recite_tutor.db import init_db

CHAPTERS_SHAPE = {
    "chapters": [
        {"id": 1, "name_simple": "Al-Fatihah", "name_arabic": "الفاتحة", "verses_count": 7},
        {"id": 2, "name_simple": "Al-Baqarah", "name_arabic": "البقرة", "verses_count": 286},
    ]
}

DATA_SHAPE = {
    "data": [
        {"number": 1, "englishName": "Al-Faatiha", "name": "سُورَةُ ٱلْفَاتِحَةِ", "numberOfAyahs": 7},
    ]
}


@pytest.fixture
def catalog_db(tmp_db):
    init_db(tmp_db)
    return tmp_db


def test_normalize_both_shapes():
    first = normalize_chapters(CHAPTERS_SHAPE)
    assert [(c.id, c.name, c.units) for c in first] == [(1, "Al-Fatihah", 7), (2, "Al-Baqarah", 286)]
    second = normalize_chapters(DATA_SHAPE)
    assert second[0].name == "Al-Faatiha"
    assert normalize_chapters({"unexpected": []}) == []


def test_cache_entry_staleness():
    entry = CacheEntry(fetched_at=1000.0, payload=[])
    assert not entry.is_stale(1000.0 + 60, ttl=3600)
    assert entry.is_stale(1000.0 + 3601, ttl=3600)


def test_fetches_and_caches(catalog_db):
    calls = []

    def fetch(url):
        calls.append(url)
        return CHAPTERS_SHAPE

    chapters = get_catalog(catalog_db, urls=("a",), fetch=fetch, now=1000.0, ttl=3600)
    assert len(chapters) == 2
    again = get_catalog(catalog_db, urls=("a",), fetch=fetch, now=2000.0, ttl=3600)
    assert again == chapters
    assert calls == ["a"]
    assert load_cache(catalog_db).fetched_at == 1000.0


def test_stale_cache_refetches(catalog_db):
    get_catalog(catalog_db, urls=("a",), fetch=lambda url: CHAPTERS_SHAPE, now=1000.0, ttl=60)
    chapters = get_catalog(catalog_db, urls=("a",), fetch=lambda url: DATA_SHAPE, now=2000.0, ttl=60)
    assert [c.name for c in chapters] == ["Al-Faatiha"]
    assert load_cache(catalog_db).fetched_at == 2000.0


def test_falls_through_to_second_source(catalog_db):
    def fetch(url):
        if url == "primary":
            raise requests.ConnectionError("down")
        return DATA_SHAPE

    chapters = get_catalog(catalog_db, urls=("primary", "secondary"), fetch=fetch, now=0.0)
    assert chapters[0].id == 1


def test_all_sources_fail_gives_numbered_list(catalog_db):
    def fetch(url):
        raise requests.Timeout("slow")

    chapters = get_catalog(catalog_db, urls=("a", "b"), fetch=fetch, now=0.0)
    assert len(chapters) == 114
    assert chapters[0].name == "Chapter 1"
    assert load_cache(catalog_db) is None


def test_fetch_json_uses_requests(monkeypatch):
    class FakeResponse:
        def raise_for_status(self):
            pass

        def json(self):
            return CHAPTERS_SHAPE

    seen = {}

    def fake_get(url, timeout):
        seen["url"], seen["timeout"] = url, timeout
        return FakeResponse()

    monkeypatch.setattr(catalog.requests, "get", fake_get)
    assert catalog.fetch_json("https://example.test/chapters") == CHAPTERS_SHAPE
    assert seen["url"] == "https://example.test/chapters"


def test_malformed_payloads_fall_through(catalog_db):
    payloads = {"null": None, "list": [1, 2], "bad_item": {"chapters": [None]}, "good": DATA_SHAPE}

    chapters = get_catalog(
        catalog_db, urls=("null", "list", "bad_item", "good"), fetch=payloads.__getitem__, now=0.0,
    )
    assert [c.id for c in chapters] == [1]
    assert normalize_chapters(None) == []
