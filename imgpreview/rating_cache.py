from __future__ import annotations

"""
imgpreview/rating_cache.py

Caché persistente de ratings AniList: título normalizado -> CacheEntry.

Formato del blob (JSON):
    { "<normalized title>": {"score": int | null, "timestamp": epoch_ms}, ... }

Principios
----------
1) score=None es un resultado válido ("consultado, sin score") y distinto de
   "sin entrada" (nunca consultado).
2) Sin eviction: el store crece con los títulos distintos vistos.
3) Read-merge-write: cada put() relee el blob justo antes de escribir, para no
   pisar entradas escritas por otra resolución en vuelo (otro título).
4) Blob corrupto -> store vacío (warning). Entradas individuales mal formadas
   se descartan y el resto se conserva.

Solo el RatingResolver muta este store.
"""

from collections.abc import Iterator, Mapping
from dataclasses import dataclass

from imgpreview import logger as logger
from imgpreview.blob_store import BlobStore, read_json_object, write_json_object

_TAG = "CACHE"


@dataclass(frozen=True)
class CacheEntry:
    score: int | None
    fetched_at_ms: int

    def age_ms(self, now_ms: int) -> int:
        return max(0, int(now_ms) - int(self.fetched_at_ms))

    def to_json(self) -> dict[str, object]:
        return {"score": self.score, "timestamp": int(self.fetched_at_ms)}


def _entry_from_json(v: object) -> CacheEntry | None:
    """Parseo defensivo de una entrada. None si está mal formada."""
    if not isinstance(v, Mapping):
        return None

    ts = v.get("timestamp")
    if isinstance(ts, bool) or not isinstance(ts, (int, float)):
        return None

    score = v.get("score")
    if score is not None and (isinstance(score, bool) or not isinstance(score, int)):
        return None

    return CacheEntry(score=score, fetched_at_ms=int(ts))


class RatingCacheStore:
    def __init__(self, blob: BlobStore) -> None:
        self._blob = blob

    def _load(self) -> dict[str, CacheEntry]:
        raw = read_json_object(self._blob, tag=_TAG)

        out: dict[str, CacheEntry] = {}
        dropped = 0
        for key, v in raw.items():
            entry = _entry_from_json(v)
            if entry is None:
                dropped += 1
                continue
            out[key] = entry

        if dropped:
            logger.debug_ctx(_TAG, f"dropped {dropped} malformed cache entries")
        return out

    def get(self, key: str) -> CacheEntry | None:
        return self._load().get(key)

    def put(self, key: str, entry: CacheEntry) -> None:
        # Relectura inmediatamente antes de escribir (read-merge-write).
        current = self._load()
        current[key] = entry
        write_json_object(self._blob, {k: e.to_json() for k, e in current.items()})
        logger.debug_ctx(_TAG, f"stored {key!r} score={entry.score!r}")

    def all_entries(self) -> dict[str, CacheEntry]:
        return self._load()

    def __iter__(self) -> Iterator[str]:
        return iter(self._load())

    def __len__(self) -> int:
        return len(self._load())
