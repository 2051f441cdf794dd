from __future__ import annotations

"""
imgpreview/mutations.py

Puerto de notificación de cambios del documento (equivalente a MutationObserver).

- MutationRecord: un cambio "childList" con los nodos añadidos.
- DocumentObserver: suscripción + notify(); los mutadores append_child/insert_html
  modifican el árbol y emiten el registro correspondiente.
- PollingSource: sustituto por polling (tests / transportes sin eventos).

El filtrado de candidatos (has_unprocessed_candidate) nunca lanza: la ausencia
de coincidencias es el caso negativo normal.
"""

import asyncio
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field

from bs4 import BeautifulSoup
from bs4.element import PageElement, Tag

from imgpreview import logger as logger
from imgpreview.rendering import has_class

_TAG = "SCHED"


@dataclass(frozen=True)
class MutationRecord:
    target: PageElement | None
    added_nodes: tuple[PageElement, ...] = field(default_factory=tuple)
    type: str = "childList"


MutationCallback = Callable[[Sequence[MutationRecord]], None]


def has_unprocessed_candidate(node: object, *, image_attr: str, processed_class: str) -> bool:
    """
    True si `node` (o algún descendiente) es un enlace con `image_attr` sin la
    clase `processed_class`. Nodos no-elemento (texto, comentarios) -> False.
    """
    if not isinstance(node, Tag):
        return False

    def _is_candidate(tag: Tag) -> bool:
        return tag.name == "a" and tag.has_attr(image_attr) and not has_class(tag, processed_class)

    try:
        if _is_candidate(node):
            return True
        return node.find(lambda t: isinstance(t, Tag) and _is_candidate(t)) is not None
    except (AttributeError, TypeError, ValueError) as exc:
        logger.debug_ctx(_TAG, f"candidate filter ignored node: {exc!r}")
        return False


class DocumentObserver:
    def __init__(self, document: BeautifulSoup) -> None:
        self.document = document
        self._subscribers: list[MutationCallback] = []

    def subscribe(self, callback: MutationCallback) -> Callable[[], None]:
        self._subscribers.append(callback)

        def _unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return _unsubscribe

    def notify(self, records: Sequence[MutationRecord]) -> None:
        if not records:
            return
        for cb in list(self._subscribers):
            try:
                cb(records)
            except Exception as exc:
                logger.error(f"[{_TAG}] mutation subscriber failed: {exc!r}", exc_info=exc)

    # --------------------------------------------------------
    # Mutadores del host (modifican el árbol + notifican)
    # --------------------------------------------------------

    def append_child(self, parent: Tag, node: PageElement) -> PageElement:
        parent.append(node)
        self.notify([MutationRecord(target=parent, added_nodes=(node,))])
        return node

    def insert_html(self, parent: Tag, html: str) -> list[PageElement]:
        """Parsea `html` y añade sus nodos de primer nivel a `parent` (un solo registro)."""
        fragment = BeautifulSoup(html, "html.parser")
        nodes = list(fragment.contents)
        for node in nodes:
            parent.append(node.extract())
        self.notify([MutationRecord(target=parent, added_nodes=tuple(nodes))])
        return nodes


class PollingSource:
    """
    Sustituto del observer por polling: cada `interval` segundos, si el documento
    tiene algún candidato sin procesar, emite un registro sintético.
    """

    def __init__(
        self,
        document: BeautifulSoup,
        callback: MutationCallback,
        *,
        interval: float,
        image_attr: str,
        processed_class: str,
    ) -> None:
        self.document = document
        self._callback = callback
        self._interval = max(0.01, float(interval))
        self._image_attr = image_attr
        self._processed_class = processed_class
        self._task: asyncio.Task[None] | None = None

    def poll_once(self) -> bool:
        if not has_unprocessed_candidate(
            self.document, image_attr=self._image_attr, processed_class=self._processed_class
        ):
            return False
        self._callback([MutationRecord(target=None, added_nodes=(self.document,))])
        return True

    async def _run(self) -> None:
        while True:
            self.poll_once()
            await asyncio.sleep(self._interval)

    def start(self) -> None:
        if self._task is None or self._task.done():
            self._task = asyncio.get_running_loop().create_task(self._run())

    def stop(self) -> None:
        if self._task is not None:
            self._task.cancel()
            self._task = None
