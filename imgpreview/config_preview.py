from __future__ import annotations

from pathlib import Path
from typing import Final

from imgpreview.config_base import (
    DATA_DIR,
    _cap_float_min,
    _cap_int,
    _get_env_float,
    _get_env_int,
    _get_env_str,
)

# ============================================================
# AniList (GraphQL endpoint + HTTP client tuning)
# ============================================================

ANILIST_GRAPHQL_URL: str = (
    _get_env_str("ANILIST_GRAPHQL_URL", "https://graphql.anilist.co") or "https://graphql.anilist.co"
)

# Único timeout de la llamada remota (el resolver no impone otro).
ANILIST_HTTP_TIMEOUT_SECONDS: float = _cap_float_min(
    "ANILIST_HTTP_TIMEOUT_SECONDS",
    _get_env_float("ANILIST_HTTP_TIMEOUT_SECONDS", 15.0),
    min_v=0.5,
)

ANILIST_HTTP_USER_AGENT: str = (
    _get_env_str("ANILIST_HTTP_USER_AGENT", "SubsPlease-ImgPreview/1.0 (local)")
    or "SubsPlease-ImgPreview/1.0 (local)"
)

# ============================================================
# Rating cache (stale-while-revalidate)
# ============================================================

RATING_CACHE_TTL_SECONDS: int = _cap_int(
    "RATING_CACHE_TTL_SECONDS",
    _get_env_int("RATING_CACHE_TTL_SECONDS", 6 * 60 * 60),
    min_v=60,
    max_v=60 * 60 * 24 * 30,
)

RATING_CACHE_PATH: Final[Path] = DATA_DIR / "rating_cache.json"
FAVORITES_PATH: Final[Path] = DATA_DIR / "favorites.json"
PREFERENCES_PATH: Final[Path] = DATA_DIR / "preferences.json"

# ============================================================
# Host document contract + scheduler
# ============================================================

PREVIEW_DEBOUNCE_SECONDS: float = _cap_float_min(
    "PREVIEW_DEBOUNCE_SECONDS",
    _get_env_float("PREVIEW_DEBOUNCE_SECONDS", 0.3),
    min_v=0.0,
)

PREVIEW_RELEASES_TABLE_ID: str = _get_env_str("PREVIEW_RELEASES_TABLE_ID", "releases-table") or "releases-table"
PREVIEW_IMAGE_ATTR: str = _get_env_str("PREVIEW_IMAGE_ATTR", "data-preview-image") or "data-preview-image"
PREVIEW_PROCESSED_CLASS: str = _get_env_str("PREVIEW_PROCESSED_CLASS", "processed") or "processed"

PREVIEW_DEFAULT_IMAGE_SIZE: Final[str] = "64px"
