import json

from imgpreview.blob_store import MemoryBlobStore
from imgpreview.rating_cache import CacheEntry, RatingCacheStore


def test_put_and_get_roundtrip_with_null_score():
    blob = MemoryBlobStore()
    store = RatingCacheStore(blob)

    assert store.get("Show") is None

    store.put("Show", CacheEntry(score=None, fetched_at_ms=1_000))
    entry = store.get("Show")
    assert entry == CacheEntry(score=None, fetched_at_ms=1_000)

    raw = json.loads(blob.read() or "")
    assert raw == {"Show": {"score": None, "timestamp": 1_000}}


def test_put_rereads_blob_before_writing():
    blob = MemoryBlobStore()
    a = RatingCacheStore(blob)
    b = RatingCacheStore(blob)

    a.put("One", CacheEntry(score=70, fetched_at_ms=1))
    b.put("Two", CacheEntry(score=80, fetched_at_ms=2))

    assert set(a.all_entries()) == {"One", "Two"}


def test_corrupt_blob_is_empty_and_overwritten_on_next_put():
    blob = MemoryBlobStore("{corrupt")
    store = RatingCacheStore(blob)

    assert store.get("Show") is None
    assert len(store) == 0
    assert blob.read() == "{corrupt"

    store.put("Show", CacheEntry(score=50, fetched_at_ms=5))
    assert json.loads(blob.read() or "") == {"Show": {"score": 50, "timestamp": 5}}


def test_malformed_entries_are_dropped_and_rest_kept():
    blob = MemoryBlobStore(
        json.dumps(
            {
                "Good": {"score": 88, "timestamp": 10},
                "NoTs": {"score": 1},
                "BadScore": {"score": "high", "timestamp": 10},
                "NotObj": 5,
            }
        )
    )
    store = RatingCacheStore(blob)

    assert store.all_entries() == {"Good": CacheEntry(score=88, fetched_at_ms=10)}


def test_cache_entry_age_never_negative():
    entry = CacheEntry(score=1, fetched_at_ms=1_000)
    assert entry.age_ms(1_500) == 500
    assert entry.age_ms(500) == 0


def test_corrupt_file_on_disk_is_empty_and_overwritten(tmp_path):
    from imgpreview.blob_store import JsonFileBlobStore

    for i, payload in enumerate((b"{corrupt", b"\xff\xfe{garbage")):
        path = tmp_path / f"cache_{i}.json"
        path.write_bytes(payload)
        store = RatingCacheStore(JsonFileBlobStore(path))

        assert store.get("Show") is None
        assert store.all_entries() == {}

        store.put("Show", CacheEntry(score=42, fetched_at_ms=7))
        assert json.loads(path.read_text(encoding="utf-8")) == {"Show": {"score": 42, "timestamp": 7}}
