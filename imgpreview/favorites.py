from __future__ import annotations

"""
imgpreview/favorites.py

Favoritos persistentes: título normalizado -> FavoriteEntry.

Formato del blob (JSON):
    { "<normalized title>": {"originalTitle": str, "timestamp": epoch_ms}, ... }

Invariante: clave presente <=> título favorito (no existe "desmarcado pero
recordado"). Operaciones síncronas; normalizan el título internamente.
clear_all() es destructivo: la confirmación es responsabilidad del caller (UI/CLI).
"""

import time
from collections.abc import Callable, Mapping
from dataclasses import dataclass

from imgpreview import logger as logger
from imgpreview.blob_store import BlobStore, read_json_object, write_json_object
from imgpreview.title_utils import normalize_title

_TAG = "FAV"


@dataclass(frozen=True)
class FavoriteEntry:
    original_title: str
    marked_at_ms: int

    def to_json(self) -> dict[str, object]:
        return {"originalTitle": self.original_title, "timestamp": int(self.marked_at_ms)}


def _entry_from_json(v: object) -> FavoriteEntry | None:
    if not isinstance(v, Mapping):
        return None
    original = v.get("originalTitle")
    ts = v.get("timestamp")
    if not isinstance(original, str):
        return None
    if isinstance(ts, bool) or not isinstance(ts, (int, float)):
        return None
    return FavoriteEntry(original_title=original, marked_at_ms=int(ts))


def _now_ms() -> int:
    return int(time.time() * 1000)


class FavoritesStore:
    def __init__(self, blob: BlobStore, *, clock: Callable[[], int] = _now_ms) -> None:
        self._blob = blob
        self._clock = clock

    def _load(self) -> dict[str, FavoriteEntry]:
        out: dict[str, FavoriteEntry] = {}
        for key, v in read_json_object(self._blob, tag=_TAG).items():
            entry = _entry_from_json(v)
            if entry is not None:
                out[key] = entry
        return out

    def _save(self, entries: Mapping[str, FavoriteEntry]) -> None:
        write_json_object(self._blob, {k: e.to_json() for k, e in entries.items()})

    def is_favorite(self, title: str) -> bool:
        key = normalize_title(title)
        if not key:
            return False
        return key in self._load()

    def toggle(self, title: str) -> bool:
        """Marca/desmarca. Devuelve el nuevo estado."""
        key = normalize_title(title)
        if not key:
            return False

        entries = self._load()
        if key in entries:
            del entries[key]
            new_state = False
        else:
            entries[key] = FavoriteEntry(original_title=title.strip(), marked_at_ms=self._clock())
            new_state = True

        self._save(entries)
        logger.debug_ctx(_TAG, f"{key!r} -> {'favorite' if new_state else 'not favorite'}")
        return new_state

    def clear_all(self) -> None:
        count = len(self._load())
        self._blob.delete()
        logger.info(f"[{_TAG}] cleared {count} favorite(s)")

    def entries(self) -> dict[str, FavoriteEntry]:
        return self._load()

    def __len__(self) -> int:
        return len(self._load())
