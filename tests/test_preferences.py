from imgpreview.blob_store import MemoryBlobStore
from imgpreview.preferences import IMAGE_SIZE_KEY, PADDING_KEY, PreferenceStore


def test_defaults_when_unset():
    prefs = PreferenceStore(MemoryBlobStore())
    assert prefs.image_size() == "64px"
    assert prefs.padding() is None
    assert prefs.read_preference("missing", "dflt") == "dflt"


def test_write_and_read_back():
    blob = MemoryBlobStore()
    prefs = PreferenceStore(blob)

    prefs.write_preference(IMAGE_SIZE_KEY, "96")
    prefs.write_preference(PADDING_KEY, " 10px ")

    again = PreferenceStore(blob)
    assert again.image_size() == "96px"
    assert again.padding() == "10px"


def test_invalid_stored_size_falls_back():
    prefs = PreferenceStore(MemoryBlobStore('{"imageSize": "huge"}'))
    assert prefs.image_size() == "64px"
