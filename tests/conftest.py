from __future__ import annotations

import asyncio
from dataclasses import dataclass, field

import pytest
from bs4 import BeautifulSoup

from imgpreview.anilist_client import FetchFailure, FetchOutcome, RatingFetchResult
from imgpreview.blob_store import MemoryBlobStore
from imgpreview.favorites import FavoritesStore
from imgpreview.preferences import PreferenceStore
from imgpreview.rating_cache import RatingCacheStore
from imgpreview.rating_service import RatingResolver


@dataclass
class FakeFetcher:
    """
    Fetcher programable: devuelve `outcomes[title]` o `default`.

    Si `gate` está fijado, cada fetch espera a que se abra (permite
    intercalar resoluciones concurrentes en los tests).
    """

    default: FetchOutcome = field(default_factory=lambda: RatingFetchResult(score=80))
    outcomes: dict[str, FetchOutcome] = field(default_factory=dict)
    gate: asyncio.Event | None = None
    calls: list[str] = field(default_factory=list)

    async def fetch(self, normalized_title: str) -> FetchOutcome:
        self.calls.append(normalized_title)
        if self.gate is not None:
            await self.gate.wait()
        return self.outcomes.get(normalized_title, self.default)


FAILURE = FetchFailure(reason="boom")


ROW_HTML = (
    '<tr><td><a href="/shows/{slug}" data-preview-image="/img/{slug}.jpg">{title}</a>{badge}</td>'
    "<td>12:00</td></tr>"
)


def make_row(title: str, slug: str = "x", *, badge: bool = False) -> str:
    badge_html = '<div class="badge-wrapper"><span class="badge">1080p</span></div>' if badge else ""
    return ROW_HTML.format(title=title, slug=slug, badge=badge_html)


def make_document(*rows: str) -> BeautifulSoup:
    html = (
        "<html><head><title>Releases</title></head><body>"
        f'<table id="releases-table">{"".join(rows)}</table>'
        "</body></html>"
    )
    return BeautifulSoup(html, "html.parser")


@pytest.fixture()
def cache_blob() -> MemoryBlobStore:
    return MemoryBlobStore()


@pytest.fixture()
def cache(cache_blob: MemoryBlobStore) -> RatingCacheStore:
    return RatingCacheStore(cache_blob)


@pytest.fixture()
def fetcher() -> FakeFetcher:
    return FakeFetcher()


@pytest.fixture()
def resolver(cache: RatingCacheStore, fetcher: FakeFetcher) -> RatingResolver:
    return RatingResolver(cache, fetcher, ttl_seconds=6 * 60 * 60)


@pytest.fixture()
def favorites() -> FavoritesStore:
    return FavoritesStore(MemoryBlobStore())


@pytest.fixture()
def preferences() -> PreferenceStore:
    return PreferenceStore(MemoryBlobStore())
