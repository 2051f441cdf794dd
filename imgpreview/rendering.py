from __future__ import annotations

"""
imgpreview/rendering.py

Superficie de presentación sobre el árbol BeautifulSoup:
- render_rating(span, view): texto/color/tooltip del rating in-place.
- render_favorite(span, is_fav): estrella de favorito.
- set_style_property(tag, name, value): edición del atributo style inline.

Colores:
- verde  #00cc66 -> recién obtenido de AniList
- naranja #ff9900 -> servido desde caché (o refresh fallido con caché)
- gris   #999    -> sin score
"""

import time
from typing import Final

from bs4 import Tag

from imgpreview.rating_service import RatingView

COLOR_FRESH: Final[str] = "#00cc66"
COLOR_CACHED: Final[str] = "#ff9900"
COLOR_MISSING: Final[str] = "#999"

LOADING_TEXT: Final[str] = "…"
MISSING_TEXT: Final[str] = "N/A"
FAVORITE_ON: Final[str] = "★"
FAVORITE_OFF: Final[str] = "☆"


def class_list(tag: Tag) -> list[str]:
    """Clases del tag como lista (bs4 puede guardar "class" como str o lista)."""
    raw = tag.get("class")
    if raw is None:
        return []
    if isinstance(raw, str):
        return raw.split()
    return list(raw)


def has_class(tag: Tag, cls: str) -> bool:
    return cls in class_list(tag)


def add_class(tag: Tag, cls: str) -> None:
    classes = class_list(tag)
    if cls not in classes:
        classes.append(cls)
    tag["class"] = classes


def _parse_style(raw: str) -> dict[str, str]:
    out: dict[str, str] = {}
    for chunk in (raw or "").split(";"):
        if ":" not in chunk:
            continue
        k, v = chunk.split(":", 1)
        k = k.strip()
        if k:
            out[k] = v.strip()
    return out


def get_style_property(tag: Tag, name: str) -> str | None:
    raw = tag.get("style")
    return _parse_style(raw if isinstance(raw, str) else "").get(name)


def set_style_property(tag: Tag, name: str, value: str) -> None:
    """Equivalente a element.style.setProperty(name, value)."""
    raw = tag.get("style")
    props = _parse_style(raw if isinstance(raw, str) else "")
    props[name] = value
    tag["style"] = "; ".join(f"{k}: {v}" for k, v in props.items())


def format_remaining(ms: int) -> str:
    """Milisegundos -> "Hh Mm" (negativos se recortan a 0)."""
    total_seconds = max(0, int(ms)) // 1000
    hours = total_seconds // 3600
    minutes = (total_seconds % 3600) // 60
    return f"{hours}h {minutes}m"


def _now_ms() -> int:
    return int(time.time() * 1000)


def render_rating(span: Tag, view: RatingView, now_ms: int | None = None) -> None:
    now = _now_ms() if now_ms is None else now_ms

    if view.source == "loading":
        span.string = LOADING_TEXT
        span["title"] = "Loading rating..."
        return

    if view.score is not None:
        span.string = f"⭐ {view.score}%"
        if view.cached:
            set_style_property(span, "color", COLOR_CACHED)
            remaining = format_remaining((view.expires_at_ms or now) - now)
            span["title"] = (
                f"Refresh failed - showing cached (expires in {remaining})\nClick to retry"
                if view.failed
                else f"Loaded from cache (expires in {remaining})\nClick to refresh"
            )
        else:
            set_style_property(span, "color", COLOR_FRESH)
            span["title"] = "Fresh from AniList\nClick to refresh"
        return

    span.string = MISSING_TEXT
    set_style_property(span, "color", COLOR_MISSING)
    span["title"] = "AniList fetch failed\nClick to retry" if view.failed else "No AniList score\nClick to refresh"


def render_favorite(span: Tag, is_favorite: bool) -> None:
    span.string = FAVORITE_ON if is_favorite else FAVORITE_OFF
    span["title"] = "Remove from favorites" if is_favorite else "Add to favorites"
    classes = [c for c in class_list(span) if c != "sp-fav-on"]
    if is_favorite:
        classes.append("sp-fav-on")
    span["class"] = classes
