from __future__ import annotations

"""
imgpreview/preferences.py

Colaborador de preferencias (read/write) sobre un BlobStore JSON.

Claves conocidas:
- imageSize: "NNpx" (default "64px"); se normaliza al leer.
- padding: string libre, solo orientativo.
"""

from imgpreview.blob_store import BlobStore, read_json_object, write_json_object
from imgpreview.config_preview import PREVIEW_DEFAULT_IMAGE_SIZE
from imgpreview.title_utils import normalize_size

IMAGE_SIZE_KEY = "imageSize"
PADDING_KEY = "padding"


class PreferenceStore:
    def __init__(self, blob: BlobStore) -> None:
        self._blob = blob

    def read_preference(self, name: str, default: object = None) -> object:
        return read_json_object(self._blob, tag="PREFS").get(name, default)

    def write_preference(self, name: str, value: object) -> None:
        current = read_json_object(self._blob, tag="PREFS")
        current[name] = value
        write_json_object(self._blob, current)

    def image_size(self) -> str:
        return normalize_size(self.read_preference(IMAGE_SIZE_KEY, PREVIEW_DEFAULT_IMAGE_SIZE))

    def padding(self) -> str | None:
        v = self.read_preference(PADDING_KEY, None)
        if isinstance(v, str) and v.strip():
            return v.strip()
        return None
