from __future__ import annotations

"""
imgpreview/logger.py

Logger central del proyecto (fachada sobre `logging`).

API estable
-----------
- debug / info / warning / error
- progress (siempre visible, sin timestamps)
- debug_ctx(tag, msg) (debug contextual alineado con SILENT/DEBUG)
- truncate_line(text) (para no volcar payloads HTTP enormes)

Política
--------
- SILENT_MODE=True: suprime debug/info/warning (salvo always=True). `error()` siempre emite.
- DEBUG_MODE=True: permite trazas útiles; en SILENT+DEBUG se emiten por `progress`.
- El logging nunca debe romper el pipeline de enriquecimiento.

Salida opcional a fichero
-------------------------
Este módulo NO decide nombres. Solo consume variables desde imgpreview.config_base
(si ya está importado):

- LOGGER_FILE_ENABLED: bool
- LOGGER_FILE_PATH: Path | str | None (también vía ENV LOGGER_FILE_PATH)

Notas técnicas
--------------
- No importamos `imgpreview.config_base` directamente (evitamos circular imports).
  Lo leemos desde `sys.modules` si ya está importado.
- Inicialización idempotente.
"""

import logging
import os
import sys
import threading
from types import ModuleType, TracebackType
from typing import Final, Mapping, TypedDict

from typing_extensions import TypeAlias, Unpack

_ExcInfoTuple: TypeAlias = tuple[type[BaseException], BaseException, TracebackType | None]
ExcInfo: TypeAlias = bool | _ExcInfoTuple | BaseException | None


class LogKwargs(TypedDict, total=False):
    """Subconjunto útil de kwargs soportados por logging.Logger.*."""

    exc_info: ExcInfo
    stack_info: bool
    stacklevel: int
    extra: Mapping[str, object] | None


# ============================================================================
# CONFIGURACIÓN GLOBAL
# ============================================================================

LOGGER_NAME: Final[str] = "imgpreview"
_CONFIG_MODULE: Final[str] = "imgpreview.config_base"

_LOGGER: logging.Logger | None = None
_CONFIGURED: bool = False

_FILE_HANDLER_TAG: Final[str] = "_imgpreview_file_handler"
_PROGRESS_FILE_LOCK = threading.Lock()


def _safe_get_cfg() -> ModuleType | None:
    """Devuelve imgpreview.config_base si ya ha sido importado."""
    mod = sys.modules.get(_CONFIG_MODULE)
    return mod if isinstance(mod, ModuleType) else None


def _cfg_bool(name: str, default: bool = False) -> bool:
    cfg = _safe_get_cfg()
    if cfg is None:
        return default
    try:
        return bool(getattr(cfg, name, default))
    except Exception:
        return default


def _cfg_int(name: str, default: int) -> int:
    cfg = _safe_get_cfg()
    if cfg is None:
        return default
    try:
        return int(getattr(cfg, name, default))
    except Exception:
        return default


def _cfg_str(name: str, default: str | None = None) -> str | None:
    cfg = _safe_get_cfg()
    if cfg is None:
        return default
    try:
        v = getattr(cfg, name, default)
        if v is None:
            return None
        s = str(v).strip()
        return s or default
    except Exception:
        return default


def is_silent_mode() -> bool:
    """SILENT_MODE global (si imgpreview.config_base está cargado)."""
    return _cfg_bool("SILENT_MODE", False)


def is_debug_mode() -> bool:
    """DEBUG_MODE global (si imgpreview.config_base está cargado)."""
    return _cfg_bool("DEBUG_MODE", False)


# ============================================================================
# RESOLUCIÓN DE LEVEL + EXTERNAL LOGGERS
# ============================================================================

_LEVELS: Final[dict[str, int]] = {
    "DEBUG": logging.DEBUG,
    "INFO": logging.INFO,
    "WARNING": logging.WARNING,
    "WARN": logging.WARNING,
    "ERROR": logging.ERROR,
    "CRITICAL": logging.CRITICAL,
    "FATAL": logging.CRITICAL,
}


def _resolve_level_from_config() -> int:
    """
    Determina el nivel del logging root.

    Prioridad:
      1) LOG_LEVEL explícito
      2) DEBUG_MODE
      3) INFO
    """
    if _safe_get_cfg() is None:
        return logging.INFO

    lvl = _cfg_str("LOG_LEVEL", None)
    if isinstance(lvl, str) and lvl.strip():
        mapped = _LEVELS.get(lvl.strip().upper())
        if mapped is not None:
            return mapped

    if _cfg_bool("DEBUG_MODE", False):
        return logging.DEBUG

    return logging.INFO


def _apply_root_level(level: int) -> None:
    root = logging.getLogger()
    root.setLevel(level)
    for handler in root.handlers:
        try:
            handler.setLevel(level)
        except Exception:
            pass


def _configure_external_loggers() -> None:
    """Baja el nivel de urllib3/requests salvo que HTTP_DEBUG=True."""
    if _cfg_bool("HTTP_DEBUG", False):
        return

    for name in ("urllib3", "urllib3.connectionpool", "requests"):
        try:
            logging.getLogger(name).setLevel(logging.WARNING)
        except Exception:
            pass


# ============================================================================
# FILE LOGGING (opcional, controlado por config)
# ============================================================================


def _file_logging_enabled() -> bool:
    return _cfg_bool("LOGGER_FILE_ENABLED", False)


def _file_logging_path() -> str | None:
    """
    Path del fichero de log.

    Prioridad:
      0) ENV LOGGER_FILE_PATH
      1) imgpreview.config_base.LOGGER_FILE_PATH
      2) None
    """
    env_p = (os.getenv("LOGGER_FILE_PATH") or "").strip()
    if env_p:
        return env_p
    return _cfg_str("LOGGER_FILE_PATH", None)


def _has_our_file_handler(root: logging.Logger) -> bool:
    return any(getattr(h, _FILE_HANDLER_TAG, False) for h in root.handlers)


def _ensure_file_handler(root: logging.Logger, *, level: int) -> None:
    """Añade un FileHandler al root logger si procede. Best-effort."""
    if not _file_logging_enabled():
        return

    path = _file_logging_path()
    if not path or _has_our_file_handler(root):
        return

    try:
        dir_name = os.path.dirname(path)
        if dir_name:
            os.makedirs(dir_name, exist_ok=True)

        fh = logging.FileHandler(path, mode="a", encoding="utf-8", delay=True)
        fh.setLevel(level)
        fh.setFormatter(logging.Formatter("%(asctime)s [%(levelname)s] %(name)s: %(message)s"))
        setattr(fh, _FILE_HANDLER_TAG, True)
        root.addHandler(fh)
    except Exception:
        return


def _append_progress_to_file(message: str) -> None:
    if not _file_logging_enabled():
        return

    path = _file_logging_path()
    if not path:
        return

    try:
        with _PROGRESS_FILE_LOCK:
            with open(path, "a", encoding="utf-8") as f:
                f.write(f"{message}\n")
    except Exception:
        return


# ============================================================================
# INICIALIZACIÓN
# ============================================================================


def _ensure_configured() -> logging.Logger:
    """Inicializa logging de forma idempotente y devuelve el logger principal."""
    global _LOGGER, _CONFIGURED

    level = _resolve_level_from_config()

    if _CONFIGURED and _LOGGER is not None:
        try:
            _apply_root_level(level)
            _ensure_file_handler(logging.getLogger(), level=level)
        except Exception:
            pass
        return _LOGGER

    root = logging.getLogger()
    try:
        if not root.handlers:
            logging.basicConfig(
                level=level,
                format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
            )
        else:
            _apply_root_level(level)
    except Exception:
        pass

    _configure_external_loggers()

    try:
        _ensure_file_handler(root, level=level)
    except Exception:
        pass

    _LOGGER = logging.getLogger(LOGGER_NAME)
    _CONFIGURED = True
    return _LOGGER


def get_logger() -> logging.Logger:
    """Devuelve el logger principal, asegurando inicialización."""
    return _ensure_configured()


def _should_log(*, always: bool = False) -> bool:
    if always:
        return True
    return not is_silent_mode()


# ============================================================================
# PROGRESO (NO logging)
# ============================================================================


def progress(message: str) -> None:
    """Emite una línea siempre visible (ignora SILENT_MODE)."""
    try:
        sys.stdout.write(f"{message}\n")
        sys.stdout.flush()
    except Exception:
        pass

    _append_progress_to_file(message)


# ============================================================================
# API PÚBLICA DE LOGGING
# ============================================================================


def debug(msg: str, *args: object, always: bool = False, **kwargs: Unpack[LogKwargs]) -> None:
    if not _should_log(always=always):
        return
    log = _ensure_configured()
    try:
        log.debug(msg, *args, **kwargs)
    except Exception:
        pass


def info(msg: str, *args: object, always: bool = False, **kwargs: Unpack[LogKwargs]) -> None:
    if not _should_log(always=always):
        return
    log = _ensure_configured()
    try:
        log.info(msg, *args, **kwargs)
    except Exception:
        pass


def warning(msg: str, *args: object, always: bool = False, **kwargs: Unpack[LogKwargs]) -> None:
    if not _should_log(always=always):
        return
    log = _ensure_configured()
    try:
        log.warning(msg, *args, **kwargs)
    except Exception:
        pass


def error(msg: str, *args: object, always: bool = False, **kwargs: Unpack[LogKwargs]) -> None:
    """ERROR siempre se emite (ignora SILENT_MODE)."""
    log = _ensure_configured()
    try:
        log.error(msg, *args, **kwargs)
    except Exception:
        try:
            print(msg)
        except Exception:
            pass


# ============================================================================
# DEBUG CONTEXTUAL (tag)
# ============================================================================

_DEFAULT_LOG_LINE_MAX_CHARS: Final[int] = 500


def truncate_line(text: str, max_chars: int | None = None) -> str:
    """Trunca una línea para evitar payloads enormes (JSON/HTML)."""
    limit = (
        int(max_chars)
        if isinstance(max_chars, int) and max_chars > 0
        else _cfg_int("LOGGER_LOG_LINE_MAX_CHARS", _DEFAULT_LOG_LINE_MAX_CHARS)
    )
    if len(text) <= limit:
        return text
    return text[: max(0, limit - 12)] + " …(truncated)"


def debug_ctx(tag: str, msg: object) -> None:
    """
    Debug contextual con tag.

    - DEBUG_MODE=False -> no-op
    - DEBUG_MODE=True:
        * SILENT_MODE=True  -> progress("[TAG][DEBUG] ...")
        * SILENT_MODE=False -> info("[TAG][DEBUG] ...")
    """
    if not is_debug_mode():
        return

    t = (tag or "DEBUG").strip().upper()
    text = str(msg)

    if is_silent_mode():
        progress(f"[{t}][DEBUG] {text}")
    else:
        info(f"[{t}][DEBUG] {text}")
