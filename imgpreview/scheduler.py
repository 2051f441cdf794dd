from __future__ import annotations

"""
imgpreview/scheduler.py

Scheduler de rescans con debounce (máquina de estados idle / pending).

- on_mutations(records): callback del observer. Si algún nodo añadido contiene
  un candidato sin procesar -> pending + (re)arranca el timer.
- Triggers repetidos en pending solo reinician el timer (una ráfaga = un rescan).
- Al expirar el timer: rescan completo y vuelta a idle.

No hay cola: "se debe un rescan" es todo el estado. Los rescans son
idempotentes, así que coalescer no pierde información.
"""

import asyncio
from collections.abc import Callable, Sequence
from typing import Literal

from imgpreview import logger as logger
from imgpreview.config_preview import (
    PREVIEW_DEBOUNCE_SECONDS,
    PREVIEW_IMAGE_ATTR,
    PREVIEW_PROCESSED_CLASS,
)
from imgpreview.mutations import MutationRecord, has_unprocessed_candidate

_TAG = "SCHED"

SchedulerState = Literal["idle", "pending"]


class ChangeScheduler:
    def __init__(
        self,
        rescan: Callable[[], object],
        *,
        debounce_seconds: float | None = None,
        image_attr: str = PREVIEW_IMAGE_ATTR,
        processed_class: str = PREVIEW_PROCESSED_CLASS,
    ) -> None:
        self._rescan = rescan
        self._debounce = max(
            0.0, float(debounce_seconds if debounce_seconds is not None else PREVIEW_DEBOUNCE_SECONDS)
        )
        self._image_attr = image_attr
        self._processed_class = processed_class

        self._state: SchedulerState = "idle"
        self._handle: asyncio.TimerHandle | None = None

        self.triggers = 0
        self.rescans = 0

    @property
    def state(self) -> SchedulerState:
        return self._state

    @property
    def debounce_seconds(self) -> float:
        return self._debounce

    # --------------------------------------------------------
    # Entrada: notificaciones de cambio
    # --------------------------------------------------------

    def has_candidates(self, records: Sequence[MutationRecord]) -> bool:
        for record in records:
            if record.type != "childList":
                continue
            for node in record.added_nodes:
                if has_unprocessed_candidate(
                    node, image_attr=self._image_attr, processed_class=self._processed_class
                ):
                    return True
        return False

    def on_mutations(self, records: Sequence[MutationRecord]) -> None:
        if self.has_candidates(records):
            self.trigger()

    def trigger(self) -> None:
        """idle -> pending, o reinicia el timer si ya estaba pending."""
        loop = asyncio.get_running_loop()
        self.triggers += 1

        if self._handle is not None:
            self._handle.cancel()

        self._state = "pending"
        self._handle = loop.call_later(self._debounce, self._fire)

    # --------------------------------------------------------
    # Salida: rescan
    # --------------------------------------------------------

    def _fire(self) -> None:
        self._handle = None
        self._run_rescan()

    def _run_rescan(self) -> None:
        self.rescans += 1
        try:
            self._rescan()
        except Exception as exc:
            logger.error(f"[{_TAG}] rescan failed: {exc!r}", exc_info=exc)
        finally:
            self._state = "idle"
        logger.debug_ctx(_TAG, f"rescan #{self.rescans} done (triggers={self.triggers})")

    def flush(self) -> bool:
        """Ejecuta ya un rescan pendiente. Devuelve True si había uno."""
        if self._state != "pending":
            return False
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None
        self._run_rescan()
        return True

    def close(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None
        self._state = "idle"
