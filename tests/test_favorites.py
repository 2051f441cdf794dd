import json

from imgpreview.blob_store import MemoryBlobStore
from imgpreview.favorites import FavoritesStore


def test_toggle_marks_and_unmarks_by_normalized_title():
    blob = MemoryBlobStore()
    store = FavoritesStore(blob, clock=lambda: 1234)

    assert store.toggle("Show — 05") is True
    assert store.is_favorite("Show - 06")
    assert json.loads(blob.read() or "") == {"Show": {"originalTitle": "Show — 05", "timestamp": 1234}}

    assert store.toggle("Show (Batch)") is False
    assert not store.is_favorite("Show")
    assert len(store) == 0


def test_empty_title_is_never_favorite():
    blob = MemoryBlobStore()
    store = FavoritesStore(blob)

    assert store.toggle(" - 01") is False
    assert not store.is_favorite("")
    assert blob.writes == 0


def test_clear_all_removes_everything():
    blob = MemoryBlobStore()
    store = FavoritesStore(blob)
    store.toggle("A")
    store.toggle("B")

    store.clear_all()

    assert store.entries() == {}
    assert blob.read() is None


def test_corrupt_blob_reads_as_empty():
    store = FavoritesStore(MemoryBlobStore("oops"))
    assert store.entries() == {}
    assert store.toggle("A") is True


def test_corrupt_file_on_disk_reads_as_empty(tmp_path):
    from imgpreview.blob_store import JsonFileBlobStore

    for i, payload in enumerate((b"[not an object]", b"\xff\xfe{garbage")):
        path = tmp_path / f"favorites_{i}.json"
        path.write_bytes(payload)
        store = FavoritesStore(JsonFileBlobStore(path), clock=lambda: 99)

        assert store.entries() == {}
        assert not store.is_favorite("Show")

        assert store.toggle("Show - 01") is True
        assert json.loads(path.read_text(encoding="utf-8")) == {
            "Show": {"originalTitle": "Show - 01", "timestamp": 99}
        }
