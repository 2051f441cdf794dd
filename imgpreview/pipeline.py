from __future__ import annotations

"""
imgpreview/pipeline.py

Raíz de composición del pipeline de enriquecimiento.

    DocumentObserver --(records)--> ChangeScheduler --(debounce)--> RowEnricher.scan()
                                                                        |
                                          RatingResolver (cache-first + refresh) + FavoritesStore

Todos los stores se pasan explícitamente (BlobStore por store); por defecto se
usan ficheros JSON bajo DATA_DIR.
"""

from collections.abc import Callable
from dataclasses import dataclass, field

from bs4 import BeautifulSoup

from imgpreview import logger as logger
from imgpreview.anilist_client import AniListRatingFetcher
from imgpreview.blob_store import BlobStore, JsonFileBlobStore
from imgpreview.config_preview import (
    FAVORITES_PATH,
    PREFERENCES_PATH,
    PREVIEW_IMAGE_ATTR,
    PREVIEW_PROCESSED_CLASS,
    PREVIEW_RELEASES_TABLE_ID,
    RATING_CACHE_PATH,
)
from imgpreview.favorites import FavoritesStore
from imgpreview.mutations import DocumentObserver
from imgpreview.preferences import PreferenceStore
from imgpreview.rating_cache import RatingCacheStore
from imgpreview.rating_service import RatingFetcher, RatingResolver
from imgpreview.row_processor import RowEnricher
from imgpreview.scheduler import ChangeScheduler


@dataclass
class Pipeline:
    document: BeautifulSoup
    observer: DocumentObserver
    scheduler: ChangeScheduler
    enricher: RowEnricher
    resolver: RatingResolver
    favorites: FavoritesStore
    preferences: PreferenceStore
    cache: RatingCacheStore
    _unsubscribe: Callable[[], None] | None = field(default=None, init=False, repr=False)

    def start(self) -> None:
        """Suscribe el scheduler y programa el scan inicial (requiere event loop)."""
        if self._unsubscribe is None:
            self._unsubscribe = self.observer.subscribe(self.scheduler.on_mutations)
        self.scheduler.trigger()

    def stop(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None
        self.scheduler.close()

    async def settle(self) -> None:
        """Ejecuta el rescan pendiente (si lo hay) y espera los ratings en vuelo."""
        self.scheduler.flush()
        await self.resolver.drain()


def build_pipeline(
    document: BeautifulSoup,
    *,
    fetcher: RatingFetcher | None = None,
    cache_blob: BlobStore | None = None,
    favorites_blob: BlobStore | None = None,
    prefs_blob: BlobStore | None = None,
    debounce_seconds: float | None = None,
    ttl_seconds: int | None = None,
    table_id: str = PREVIEW_RELEASES_TABLE_ID,
    image_attr: str = PREVIEW_IMAGE_ATTR,
    processed_class: str = PREVIEW_PROCESSED_CLASS,
) -> Pipeline:
    cache = RatingCacheStore(cache_blob or JsonFileBlobStore(RATING_CACHE_PATH))
    favorites = FavoritesStore(favorites_blob or JsonFileBlobStore(FAVORITES_PATH))
    preferences = PreferenceStore(prefs_blob or JsonFileBlobStore(PREFERENCES_PATH))

    resolver = RatingResolver(cache, fetcher or AniListRatingFetcher(), ttl_seconds=ttl_seconds)

    enricher = RowEnricher(
        document,
        resolver=resolver,
        favorites=favorites,
        preferences=preferences,
        table_id=table_id,
        image_attr=image_attr,
        processed_class=processed_class,
    )
    scheduler = ChangeScheduler(
        enricher.scan,
        debounce_seconds=debounce_seconds,
        image_attr=image_attr,
        processed_class=processed_class,
    )

    logger.debug_ctx("ROWS", f"pipeline ready (table=#{table_id}, attr={image_attr})")

    return Pipeline(
        document=document,
        observer=DocumentObserver(document),
        scheduler=scheduler,
        enricher=enricher,
        resolver=resolver,
        favorites=favorites,
        preferences=preferences,
        cache=cache,
    )
