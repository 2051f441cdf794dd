from __future__ import annotations

"""
imgpreview/main.py

Punto de entrada CLI.

Subcomandos
-----------
- enrich INPUT.html [-o OUT.html]   enriquece un listado y espera los ratings
- set-size SIZE                     preferencia imageSize ("64" / "64px")
- set-padding VALUE                 preferencia padding (orientativa)
- favorite TITLE                    alterna favorito
- favorites                         lista favoritos
- clear-favorites [--yes]           borra todos (pide confirmación)
- cache                             lista ratings cacheados con su edad

Reglas de consola (alineado con imgpreview/logger.py)
-----------------------------------------------------
- Resultados y prompts: logger.progress(...) (siempre visibles)
- Debug contextual: logger.debug_ctx(...)
- Ctrl+C: salida limpia (130), sin stacktrace.
"""

import argparse
import asyncio
import re
import sys
import time
from pathlib import Path

from bs4 import BeautifulSoup

from imgpreview import logger as logger
from imgpreview.anilist_client import get_anilist_metrics_snapshot
from imgpreview.blob_store import JsonFileBlobStore
from imgpreview.config_preview import FAVORITES_PATH, PREFERENCES_PATH, RATING_CACHE_PATH
from imgpreview.favorites import FavoritesStore
from imgpreview.pipeline import build_pipeline
from imgpreview.preferences import IMAGE_SIZE_KEY, PADDING_KEY, PreferenceStore
from imgpreview.rating_cache import RatingCacheStore
from imgpreview.rendering import format_remaining
from imgpreview.title_utils import normalize_size

_SIZE_INPUT_RE = re.compile(r"^\s*\d+(?:px)?\s*$")


def _parse_args(argv: list[str] | None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="imgpreview",
        description="SubsPlease ImgPreview - thumbnails, AniList ratings and favorites for release listings",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    p_enrich = sub.add_parser("enrich", help="Enrich a saved release listing page")
    p_enrich.add_argument("input", type=Path)
    p_enrich.add_argument("-o", "--output", type=Path, default=None)

    p_size = sub.add_parser("set-size", help="Set image preview size (e.g. 64 or 64px)")
    p_size.add_argument("size")

    p_pad = sub.add_parser("set-padding", help="Set padding value (e.g. 10px)")
    p_pad.add_argument("padding")

    p_fav = sub.add_parser("favorite", help="Toggle favorite status for a title")
    p_fav.add_argument("title")

    sub.add_parser("favorites", help="List favorites")

    p_clear = sub.add_parser("clear-favorites", help="Remove all favorites")
    p_clear.add_argument("--yes", action="store_true", help="Do not ask for confirmation")

    sub.add_parser("cache", help="List cached ratings")

    return parser.parse_args(argv)


# ============================================================
# Subcomandos
# ============================================================


async def _enrich_document(document: BeautifulSoup) -> int:
    pipeline = build_pipeline(document)
    pipeline.start()
    try:
        await pipeline.settle()
    finally:
        pipeline.stop()
    pipeline.resolver.log_metrics_summary()
    logger.debug_ctx("RATING", f"anilist metrics={get_anilist_metrics_snapshot()}")
    return len(pipeline.enricher.rows)


def _cmd_enrich(input_path: Path, output_path: Path | None) -> int:
    if not input_path.exists():
        logger.error(f"Input file not found: {str(input_path)!r}")
        return 1

    document = BeautifulSoup(input_path.read_text(encoding="utf-8"), "html.parser")
    rows = asyncio.run(_enrich_document(document))

    out = output_path or input_path.with_name(f"{input_path.stem}.enriched{input_path.suffix or '.html'}")
    out.write_text(str(document), encoding="utf-8")
    logger.progress(f"[ImgPreview] Enriched {rows} row(s) -> {out}")
    return 0


def _cmd_set_size(raw: str) -> int:
    if not _SIZE_INPUT_RE.match(raw):
        logger.error(f"Invalid size {raw!r}; expected digits optionally followed by 'px'")
        return 1
    size = normalize_size(raw.strip())
    PreferenceStore(JsonFileBlobStore(PREFERENCES_PATH)).write_preference(IMAGE_SIZE_KEY, size)
    logger.progress(f"[ImgPreview] Image size set to {size}")
    return 0


def _cmd_set_padding(raw: str) -> int:
    value = raw.strip()
    if not value:
        logger.error("Padding value must not be empty")
        return 1
    PreferenceStore(JsonFileBlobStore(PREFERENCES_PATH)).write_preference(PADDING_KEY, value)
    logger.progress(f"[ImgPreview] Padding set to {value}")
    return 0


def _favorites() -> FavoritesStore:
    return FavoritesStore(JsonFileBlobStore(FAVORITES_PATH))


def _cmd_favorite(title: str) -> int:
    if not title.strip():
        logger.error("Title must not be empty")
        return 1
    state = _favorites().toggle(title)
    logger.progress(f"[ImgPreview] {title.strip()!r}: {'favorite' if state else 'not favorite'}")
    return 0


def _cmd_list_favorites() -> int:
    entries = _favorites().entries()
    if not entries:
        logger.progress("[ImgPreview] No favorites")
        return 0
    for key, entry in sorted(entries.items()):
        marked = time.strftime("%Y-%m-%d %H:%M", time.localtime(entry.marked_at_ms / 1000))
        logger.progress(f"  {key}  (as {entry.original_title!r}, {marked})")
    return 0


def _cmd_clear_favorites(assume_yes: bool) -> int:
    store = _favorites()
    count = len(store)
    if not assume_yes:
        answer = input(f"Remove all {count} favorite(s)? [y/N] ").strip().lower()
        if answer not in ("y", "yes"):
            logger.progress("[ImgPreview] Cancelled")
            return 0
    store.clear_all()
    logger.progress(f"[ImgPreview] Removed {count} favorite(s)")
    return 0


def _cmd_cache() -> int:
    entries = RatingCacheStore(JsonFileBlobStore(RATING_CACHE_PATH)).all_entries()
    if not entries:
        logger.progress("[ImgPreview] Rating cache is empty")
        return 0
    now_ms = int(time.time() * 1000)
    for key, entry in sorted(entries.items()):
        score = "N/A" if entry.score is None else f"{entry.score}%"
        logger.progress(f"  {key}: {score} (age {format_remaining(entry.age_ms(now_ms))})")
    return 0


def main(argv: list[str] | None = None) -> int:
    args = _parse_args(argv)

    try:
        if args.command == "enrich":
            return _cmd_enrich(args.input, args.output)
        if args.command == "set-size":
            return _cmd_set_size(args.size)
        if args.command == "set-padding":
            return _cmd_set_padding(args.padding)
        if args.command == "favorite":
            return _cmd_favorite(args.title)
        if args.command == "favorites":
            return _cmd_list_favorites()
        if args.command == "clear-favorites":
            return _cmd_clear_favorites(args.yes)
        if args.command == "cache":
            return _cmd_cache()
    except KeyboardInterrupt:
        logger.progress("\n[ImgPreview] Interrupted by user (Ctrl+C).")
        return 130

    return 1


def start() -> None:
    sys.exit(main())


if __name__ == "__main__":
    start()
