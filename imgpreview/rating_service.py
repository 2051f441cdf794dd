from __future__ import annotations

"""
imgpreview/rating_service.py

Resolución de ratings: RatingCacheStore + Rating Fetcher con semántica
stale-while-revalidate.

Algoritmo de resolve(title, force_refresh)
------------------------------------------
- Normaliza título y consulta la caché.
- Clasifica: absent | fresh (edad < TTL) | stale (edad >= TTL).
- fresh y no forzado -> devuelve el valor cacheado, sin red.
- absent / stale / forzado -> devuelve YA el mejor valor conocido (cacheado o
  "loading") y lanza UNA tarea en background con exactamente un fetch:
    * éxito: sobre-escribe la entrada (score + ahora) y entrega el valor fresco
      al callback de presentación.
    * fallo con entrada previa: entrega la entrada previa con failed=True
      (la caché no se toca).
    * fallo sin entrada previa: entrega score=None, failed=True.

Concurrencia
------------
- Todo corre en el event loop (cooperativo). El único punto de suspensión es
  el fetch.
- Sin deduplicación: dos resolve() simultáneos del mismo título lanzan dos
  fetch. Sin cancelación: el último en completar gana (last-write-wins),
  tanto en la caché como en el callback.
- Un fallo del callback se registra y no se propaga.
"""

import asyncio
import threading
import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import Literal, Protocol

from imgpreview import logger as logger
from imgpreview.anilist_client import FetchFailure, FetchOutcome
from imgpreview.config_preview import RATING_CACHE_TTL_SECONDS
from imgpreview.rating_cache import CacheEntry, RatingCacheStore
from imgpreview.title_utils import normalize_title

_TAG = "RATING"

RatingSource = Literal["fresh", "cache", "loading"]
CacheState = Literal["absent", "fresh", "stale"]


class RatingFetcher(Protocol):
    async def fetch(self, normalized_title: str) -> FetchOutcome: ...


@dataclass(frozen=True)
class RatingView:
    """
    Valor entregado a la capa de presentación.

    source:
      - "fresh": recién obtenido de la red
      - "cache": servido desde caché (fresh o stale)
      - "loading": nada conocido todavía
    """

    title: str
    score: int | None
    source: RatingSource
    failed: bool = False
    expires_at_ms: int | None = None

    @property
    def cached(self) -> bool:
        return self.source == "cache"


RatingCallback = Callable[[RatingView], None]


def _now_ms() -> int:
    return int(time.time() * 1000)


class RatingResolver:
    def __init__(
        self,
        cache: RatingCacheStore,
        fetcher: RatingFetcher,
        *,
        ttl_seconds: int | None = None,
        clock: Callable[[], int] = _now_ms,
    ) -> None:
        self._cache = cache
        self._fetcher = fetcher
        self._ttl_ms = int(ttl_seconds if ttl_seconds is not None else RATING_CACHE_TTL_SECONDS) * 1000
        self._clock = clock
        self._tasks: set[asyncio.Task[RatingView]] = set()

        self._metrics_lock = threading.Lock()
        self._metrics: dict[str, int] = {
            "fresh_hits": 0,
            "stale_hits": 0,
            "misses": 0,
            "forced": 0,
            "refresh_ok": 0,
            "refresh_failed": 0,
            "callback_errors": 0,
        }

    @property
    def ttl_ms(self) -> int:
        return self._ttl_ms

    # --------------------------------------------------------
    # Clasificación
    # --------------------------------------------------------

    def classify(self, entry: CacheEntry | None, now_ms: int | None = None) -> CacheState:
        if entry is None:
            return "absent"
        now = self._clock() if now_ms is None else now_ms
        return "fresh" if entry.age_ms(now) < self._ttl_ms else "stale"

    def _cached_view(self, key: str, entry: CacheEntry, *, failed: bool = False) -> RatingView:
        return RatingView(
            title=key,
            score=entry.score,
            source="cache",
            failed=failed,
            expires_at_ms=entry.fetched_at_ms + self._ttl_ms,
        )

    # --------------------------------------------------------
    # API pública
    # --------------------------------------------------------

    def resolve(
        self,
        title: str,
        *,
        force_refresh: bool = False,
        on_update: RatingCallback | None = None,
    ) -> RatingView:
        """
        Devuelve el mejor valor conocido de inmediato y, si procede, programa
        un refresh en background. Debe llamarse desde un event loop en marcha
        cuando el refresh es necesario.
        """
        key = normalize_title(title)
        entry = self._cache.get(key)
        state = self.classify(entry)

        if entry is not None and state == "fresh" and not force_refresh:
            self._m_inc("fresh_hits")
            return self._cached_view(key, entry)

        if force_refresh:
            self._m_inc("forced")
        self._m_inc({"absent": "misses", "stale": "stale_hits", "fresh": "fresh_hits"}[state])

        current = self._cached_view(key, entry) if entry is not None else RatingView(title=key, score=None, source="loading")

        task = asyncio.get_running_loop().create_task(self._refresh_key(key, on_update))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return current

    async def refresh(self, title: str, on_update: RatingCallback | None = None) -> RatingView:
        """Fetch + actualización de caché + entrega al callback (cuerpo del refresh en background)."""
        return await self._refresh_key(normalize_title(title), on_update)

    async def drain(self) -> None:
        """Espera todos los refresh en vuelo (incluidos los lanzados mientras se espera)."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    @property
    def pending(self) -> int:
        return len(self._tasks)

    # --------------------------------------------------------
    # Internos
    # --------------------------------------------------------

    async def _refresh_key(self, key: str, on_update: RatingCallback | None) -> RatingView:
        # Entrada previa capturada antes del fetch: es el fallback "last known".
        previous = self._cache.get(key)

        outcome = await self._fetcher.fetch(key)

        if isinstance(outcome, FetchFailure):
            self._m_inc("refresh_failed")
            logger.debug_ctx(_TAG, f"refresh failed for {key!r}: {outcome.reason}")
            if previous is not None:
                view = self._cached_view(key, previous, failed=True)
            else:
                view = RatingView(title=key, score=None, source="fresh", failed=True)
        else:
            now = self._clock()
            view = RatingView(
                title=key,
                score=outcome.score,
                source="fresh",
                expires_at_ms=now + self._ttl_ms,
            )
            try:
                self._cache.put(key, CacheEntry(score=outcome.score, fetched_at_ms=now))
            except OSError as exc:
                logger.error(f"[{_TAG}] cannot persist rating cache for {key!r}: {exc!r}")
            self._m_inc("refresh_ok")

        self._deliver(view, on_update)
        return view

    def _deliver(self, view: RatingView, on_update: RatingCallback | None) -> None:
        if on_update is None:
            return
        try:
            on_update(view)
        except Exception as exc:
            self._m_inc("callback_errors")
            logger.error(f"[{_TAG}] presentation callback failed for {view.title!r}: {exc!r}")

    # --------------------------------------------------------
    # Métricas
    # --------------------------------------------------------

    def _m_inc(self, key: str, delta: int = 1) -> None:
        with self._metrics_lock:
            self._metrics[key] = int(self._metrics.get(key, 0)) + int(delta)

    def metrics_snapshot(self) -> dict[str, int]:
        with self._metrics_lock:
            return dict(self._metrics)

    def log_metrics_summary(self, *, force: bool = False) -> None:
        """Resumen de contadores al final del run (respeta SILENT/DEBUG)."""
        snap = self.metrics_snapshot()
        if not force and not any(v for v in snap.values()):
            return

        silent = logger.is_silent_mode()
        if silent and not logger.is_debug_mode() and not force:
            return

        lines = [f"[{_TAG}][METRICS] summary"]
        items = sorted(((k, v) for k, v in snap.items() if v), key=lambda kv: (-kv[1], kv[0]))
        if not items:
            lines.append("  (all zeros)")
        else:
            width = max(len(k) for k, _ in items)
            lines.extend(f"  {k.ljust(width)} : {v}" for k, v in items)

        for ln in lines:
            if silent:
                logger.progress(ln)
            else:
                logger.info(ln)

