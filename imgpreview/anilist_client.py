from __future__ import annotations

"""
imgpreview/anilist_client.py

Cliente AniList (GraphQL): UNA consulta de rating por título normalizado.

🧠 Principios
-------------
1) Frontera de I/O pura:
   - No toca la caché (eso es cosa de rating_service.RatingResolver).
   - Una llamada = exactamente un round trip de red. Sin reintentos internos
     (Retry(total=0) en el adapter); la política de reintentos vive en el caller.

2) Fail-safe:
   - Error de red, JSON inválido, cuerpo sin la forma esperada
     -> FetchFailure (nunca excepción hacia el pipeline).

3) Cooperativo:
   - `fetch()` es una corrutina; la llamada bloqueante de requests se ejecuta en
     un worker (asyncio.to_thread) para no bloquear el event loop.

Resultados
----------
- RatingFetchResult(score=int)   -> averageScore 0..100
- RatingFetchResult(score=None)  -> AniList no conoce el título / no tiene score
- FetchFailure(reason)           -> sin score recuperable

Métricas
--------
Contadores thread-safe (el POST corre en un worker thread):
get_anilist_metrics_snapshot() / reset_anilist_metrics().
"""

import asyncio
import threading
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Final, Union

import requests  # type: ignore[import-not-found]
from requests.adapters import HTTPAdapter  # type: ignore[import-not-found]
from requests.exceptions import RequestException  # type: ignore[import-not-found]
from urllib3.util.retry import Retry  # type: ignore[import-not-found]

from imgpreview import logger as logger
from imgpreview.config_preview import (
    ANILIST_GRAPHQL_URL,
    ANILIST_HTTP_TIMEOUT_SECONDS,
    ANILIST_HTTP_USER_AGENT,
)

_TAG = "RATING"

ANILIST_SCORE_QUERY: Final[str] = """
query ($search: String) {
  Media(search: $search, type: ANIME) {
    averageScore
  }
}
""".strip()


@dataclass(frozen=True)
class RatingFetchResult:
    score: int | None


@dataclass(frozen=True)
class FetchFailure:
    reason: str


FetchOutcome = Union[RatingFetchResult, FetchFailure]


# ============================================================
#                  MÉTRICAS (thread-safe)
# ============================================================

_METRICS_LOCK = threading.Lock()
_METRICS: dict[str, int] = {
    "http_requests": 0,
    "http_failures": 0,
    "not_found": 0,
}


def _m_inc(key: str, delta: int = 1) -> None:
    with _METRICS_LOCK:
        _METRICS[key] = int(_METRICS.get(key, 0)) + int(delta)


def get_anilist_metrics_snapshot() -> dict[str, int]:
    with _METRICS_LOCK:
        return dict(_METRICS)


def reset_anilist_metrics() -> None:
    with _METRICS_LOCK:
        for k in list(_METRICS.keys()):
            _METRICS[k] = 0


# ============================================================
# HTTP session (lazy-init thread-safe)
# ============================================================

_SESSION: requests.Session | None = None
_SESSION_LOCK = threading.Lock()


def _get_session() -> requests.Session:
    """Singleton requests.Session sin reintentos (Retry total=0)."""
    global _SESSION
    if _SESSION is not None:
        return _SESSION

    with _SESSION_LOCK:
        if _SESSION is not None:
            return _SESSION

        session = requests.Session()
        adapter = HTTPAdapter(max_retries=Retry(total=0, raise_on_status=False))
        session.mount("https://", adapter)
        session.mount("http://", adapter)
        session.headers.update(
            {
                "User-Agent": str(ANILIST_HTTP_USER_AGENT).strip() or "SubsPlease-ImgPreview/1.0 (local)",
                "Content-Type": "application/json",
                "Accept": "application/json",
            }
        )

        _SESSION = session
        return session


# ============================================================
# Parseo de la respuesta
# ============================================================


def _failure(reason: str) -> FetchFailure:
    _m_inc("http_failures", 1)
    logger.debug_ctx(_TAG, f"AniList fetch failed: {reason}")
    return FetchFailure(reason=reason)


def parse_score_response(status_code: int, body: object) -> FetchOutcome:
    """
    Interpreta el cuerpo JSON de AniList.

    - "data" ausente / no objeto -> FetchFailure
    - data.Media == null -> no encontrado (score=None). AniList responde 404 en ese caso.
    - Media.averageScore ausente -> FetchFailure
    - averageScore null -> score=None
    - averageScore entero 0..100 -> score
    """
    if not isinstance(body, Mapping):
        return _failure(f"body is not a JSON object ({type(body).__name__})")

    if "data" not in body:
        return _failure(f"missing 'data' (status={status_code})")

    data = body.get("data")
    if data is not None and not isinstance(data, Mapping):
        return _failure("'data' is not an object")

    media = data.get("Media") if isinstance(data, Mapping) else None

    if media is None:
        if status_code in (200, 404) and isinstance(data, Mapping) and "Media" in data:
            _m_inc("not_found", 1)
            return RatingFetchResult(score=None)
        return _failure(f"no Media in response (status={status_code})")

    if status_code != 200:
        return _failure(f"unexpected HTTP status {status_code}")

    if not isinstance(media, Mapping):
        return _failure("'Media' is not an object")

    if "averageScore" not in media:
        return _failure("missing 'averageScore'")

    score = media.get("averageScore")
    if score is None:
        return RatingFetchResult(score=None)

    if isinstance(score, bool) or not isinstance(score, int) or not (0 <= score <= 100):
        return _failure(f"invalid averageScore {score!r}")

    return RatingFetchResult(score=score)


# ============================================================
# Fetcher
# ============================================================


class AniListRatingFetcher:
    """
    Rating Fetcher contra el endpoint GraphQL de AniList.

    `session` es inyectable (tests); por defecto se usa el singleton del módulo.
    """

    def __init__(
        self,
        *,
        session: requests.Session | None = None,
        url: str | None = None,
        timeout_seconds: float | None = None,
    ) -> None:
        self._session = session
        self._url = (url or ANILIST_GRAPHQL_URL).strip()
        self._timeout = float(timeout_seconds if timeout_seconds is not None else ANILIST_HTTP_TIMEOUT_SECONDS)

    def fetch_blocking(self, normalized_title: str) -> FetchOutcome:
        title = (normalized_title or "").strip()
        if not title:
            return FetchFailure(reason="empty title")

        session = self._session or _get_session()
        payload = {"query": ANILIST_SCORE_QUERY, "variables": {"search": title}}

        _m_inc("http_requests", 1)
        logger.debug_ctx(_TAG, f"Fetching rating for: {title!r}")

        try:
            resp = session.post(self._url, json=payload, timeout=self._timeout)
        except RequestException as exc:
            return _failure(f"HTTP error: {exc!r}")

        try:
            body = resp.json()
        except ValueError as exc:
            text = getattr(resp, "text", "") or ""
            return _failure(f"invalid JSON ({exc!r}): {logger.truncate_line(str(text), 200)}")

        return parse_score_response(int(resp.status_code), body)

    async def fetch(self, normalized_title: str) -> FetchOutcome:
        return await asyncio.to_thread(self.fetch_blocking, normalized_title)
