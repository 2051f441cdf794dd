from __future__ import annotations

"""
imgpreview/blob_store.py

Sustrato clave-valor durable: UN blob serializado por store.

- JsonFileBlobStore: fichero en disco con escritura atómica.
- MemoryBlobStore: blob en memoria (tests / ejecuciones efímeras).

Los stores de dominio (rating_cache, favorites, preferences) reciben un
BlobStore por inyección; no hay acceso global/estático al disco.
"""

import json
import os
import tempfile
from collections.abc import Mapping
from pathlib import Path
from typing import Protocol

from imgpreview import logger as logger


class BlobStore(Protocol):
    """Lectura/escritura/borrado de un único blob de texto."""

    def read(self) -> str | None: ...

    def write(self, text: str) -> None: ...

    def delete(self) -> None: ...


class JsonFileBlobStore:
    """
    Blob persistido en un fichero.

    Escritura atómica:
    - temp file en el mismo directorio
    - fsync (best-effort)
    - os.replace
    """

    def __init__(self, path: Path | str) -> None:
        self._path = Path(path)

    @property
    def path(self) -> Path:
        return self._path

    def read(self) -> str | None:
        if not self._path.exists():
            return None
        return self._path.read_text(encoding="utf-8")

    def write(self, text: str) -> None:
        dirpath = self._path.parent
        dirpath.mkdir(parents=True, exist_ok=True)

        temp_name: str | None = None
        try:
            with tempfile.NamedTemporaryFile("w", encoding="utf-8", delete=False, dir=str(dirpath)) as tf:
                temp_name = tf.name
                tf.write(text)
                tf.flush()
                try:
                    os.fsync(tf.fileno())
                except OSError:
                    pass

            os.replace(temp_name, str(self._path))
        finally:
            if temp_name and os.path.exists(temp_name) and temp_name != str(self._path):
                try:
                    os.remove(temp_name)
                except OSError:
                    pass

    def delete(self) -> None:
        try:
            self._path.unlink()
        except FileNotFoundError:
            return

    def __repr__(self) -> str:
        return f"JsonFileBlobStore({str(self._path)!r})"


class MemoryBlobStore:
    def __init__(self, initial: str | None = None) -> None:
        self._text = initial
        self.writes = 0

    def read(self) -> str | None:
        return self._text

    def write(self, text: str) -> None:
        self._text = text
        self.writes += 1

    def delete(self) -> None:
        self._text = None


# ============================================================
# JSON object helpers (comunes a los stores de dominio)
# ============================================================


def read_json_object(store: BlobStore, *, tag: str) -> dict[str, object]:
    """
    Lee el blob como objeto JSON.

    - Blob ausente -> {}
    - Blob corrupto (no JSON / no objeto) -> {} + warning. El blob NO se borra
      aquí; la siguiente escritura lo sobre-escribe.
    - Blob no decodificable (UTF-8 inválido) -> {} + warning, igual que corrupto.
    - Error de lectura (OSError) -> {} + warning.
    """
    try:
        raw_text = store.read()
    except UnicodeDecodeError as exc:
        logger.warning(f"[{tag}] corrupt store {store!r} (not UTF-8: {exc!r}); treating as empty")
        return {}
    except OSError as exc:
        logger.warning(f"[{tag}] cannot read store {store!r}: {exc!r}; treating as empty")
        return {}

    if raw_text is None or not raw_text.strip():
        return {}

    try:
        raw = json.loads(raw_text)
    except (json.JSONDecodeError, ValueError) as exc:
        logger.warning(f"[{tag}] corrupt store {store!r} ({exc!r}); treating as empty")
        return {}

    if not isinstance(raw, dict):
        logger.warning(
            f"[{tag}] corrupt store {store!r}: expected JSON object, got {type(raw).__name__}; treating as empty"
        )
        return {}

    return {str(k): v for k, v in raw.items()}


def write_json_object(store: BlobStore, obj: Mapping[str, object]) -> None:
    """Serializa y reemplaza el blob completo."""
    store.write(json.dumps(dict(obj), ensure_ascii=False, indent=2, sort_keys=True))
