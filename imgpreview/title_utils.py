"""
imgpreview/title_utils.py

Utilidades puras para:
- Normalización de títulos de releases (clave de caché / lookup AniList)
- Normalización del tamaño de miniatura ("NNpx")

Objetivo:
- Deterministas, sin efectos secundarios.
- No hacer logging (módulo core/utility).
"""

from __future__ import annotations

import re
from typing import Final

from imgpreview.config_preview import PREVIEW_DEFAULT_IMAGE_SIZE

# ============================================================================
# Regex/constantes
# ============================================================================

# "Show (Batch)" al final (case-insensitive)
_BATCH_SUFFIX_RE: Final[re.Pattern[str]] = re.compile(r"\s*\(batch\)\s*$", re.IGNORECASE)

# Episodio o rango al final: "Show - 01", "Show — 05", "Show – 01-12"
_EPISODE_SUFFIX_RE: Final[re.Pattern[str]] = re.compile(r"\s*[-–—]\s*\d+(?:\s*-\s*\d+)?\s*$")

_SIZE_DIGITS_RE: Final[re.Pattern[str]] = re.compile(r"^\d+$")
_SIZE_PX_RE: Final[re.Pattern[str]] = re.compile(r"^\d+px$")


def normalize_title(raw: str | None) -> str:
    """
    Clave canónica para caché de ratings y favoritos.

    Orden:
      1) sufijo "(Batch)"
      2) sufijo de episodio "- NN" o rango "- NN-NN" (guiones -, – o —)
      3) strip

    Se repite hasta punto fijo ("Show (Batch) - 01", "Show - 1 - 2 - 3"), así que
    es idempotente: normalize_title(normalize_title(x)) == normalize_title(x).
    Un título compuesto solo por el sufijo puede quedar en "".
    """
    if not raw:
        return ""

    t = raw.strip()
    while True:
        stripped = _EPISODE_SUFFIX_RE.sub("", _BATCH_SUFFIX_RE.sub("", t)).strip()
        if stripped == t:
            return t
        t = stripped


def normalize_size(raw: object) -> str:
    """
    Tamaño de miniatura en forma canónica "NNpx".

    - 64      -> "64px"
    - "64"    -> "64px"
    - "64px"  -> "64px"
    - resto   -> PREVIEW_DEFAULT_IMAGE_SIZE
    """
    if isinstance(raw, bool):
        return PREVIEW_DEFAULT_IMAGE_SIZE
    if isinstance(raw, int):
        return f"{raw}px" if raw >= 0 else PREVIEW_DEFAULT_IMAGE_SIZE
    if isinstance(raw, str):
        s = raw.strip()
        if _SIZE_DIGITS_RE.match(s):
            return f"{s}px"
        if _SIZE_PX_RE.match(s):
            return s
    return PREVIEW_DEFAULT_IMAGE_SIZE
