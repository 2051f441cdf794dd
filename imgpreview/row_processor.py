from __future__ import annotations

"""
imgpreview/row_processor.py

Enriquecimiento de filas del listado de releases (árbol BeautifulSoup).

Contrato del documento host
---------------------------
- Filas de interés: `#<PREVIEW_RELEASES_TABLE_ID> a[<PREVIEW_IMAGE_ATTR>]`
  (el atributo lleva la URL de la miniatura).
- Marca de idempotencia: clase PREVIEW_PROCESSED_CLASS en el enlace.
- Badge opcional por celda: `.badge-wrapper` (se MUEVE, no se duplica).

Estructura resultante por celda:

    <div class="sp-img-wrapper">
      <img class="sp-thumb" src=... alt=...>
      <div class="sp-text">
        <div class="sp-title"> <a ...>Title</a> <span class="sp-rating"> <span class="sp-fav"> </div>
        <div class="badge-wrapper sp-badges"> ... </div>
      </div>
    </div>

Reglas
------
- Una fila se procesa UNA vez por vida de la página: la marca se pone antes de
  cualquier trabajo asíncrono (refresh de rating).
- Markup inesperado (sin <td>, sin título) -> skip silencioso.
- Un fallo en una fila se registra y no aborta el scan.
"""

from typing import Final

from bs4 import BeautifulSoup, Tag

from imgpreview import logger as logger
from imgpreview.config_preview import (
    PREVIEW_IMAGE_ATTR,
    PREVIEW_PROCESSED_CLASS,
    PREVIEW_RELEASES_TABLE_ID,
)
from imgpreview.favorites import FavoritesStore
from imgpreview.preferences import PreferenceStore
from imgpreview.rating_service import RatingResolver, RatingView
from imgpreview.rendering import (
    LOADING_TEXT,
    add_class,
    has_class,
    render_favorite,
    render_rating,
    set_style_property,
)

_TAG = "ROWS"

STYLE_ELEMENT_ID: Final[str] = "sp-styles"
THUMB_SIZE_VAR: Final[str] = "--sp-thumb-size"
BADGE_SELECTOR: Final[str] = ".badge-wrapper"

_CSS_TEMPLATE: Final[str] = """
#{table_id} td .sp-img-wrapper {{ display: flex; gap: 10px; align-items: flex-start; padding: {padding}; }}
.sp-thumb {{ width: var({thumb_var}, 64px); height: auto; object-fit: cover; border-radius: 6px; flex-shrink: 0; }}
.sp-text {{ display: flex; flex-direction: column; justify-content: flex-start; }}
.sp-title {{ font-weight: 600; margin-bottom: 4px; }}
.sp-badges {{ margin-top: 6px; }}
.sp-fav-on {{ color: #f5c518; }}
"""


def candidate_selector(
    *,
    table_id: str = PREVIEW_RELEASES_TABLE_ID,
    image_attr: str = PREVIEW_IMAGE_ATTR,
    processed_class: str = PREVIEW_PROCESSED_CLASS,
) -> str:
    return f"#{table_id} a[{image_attr}]:not(.{processed_class})"


class EnrichedRow:
    """
    Fila ya enriquecida + "listeners" equivalentes a los del navegador:
    - refresh_rating(): click en el rating (refresh forzado)
    - toggle_favorite(): click en la estrella
    """

    def __init__(
        self,
        enricher: RowEnricher,
        *,
        title: str,
        link: Tag,
        wrapper: Tag,
        rating_span: Tag | None,
        fav_span: Tag | None,
    ) -> None:
        self._enricher = enricher
        self.title = title
        self.link = link
        self.wrapper = wrapper
        self.rating_span = rating_span
        self.fav_span = fav_span
        self.last_view: RatingView | None = None

    def apply_view(self, view: RatingView) -> None:
        self.last_view = view
        if self.rating_span is not None:
            render_rating(self.rating_span, view)

    def refresh_rating(self) -> RatingView | None:
        return self._enricher.update_rating(self, force=True)

    def toggle_favorite(self) -> bool:
        return self._enricher.toggle_favorite(self)

    def __repr__(self) -> str:
        return f"EnrichedRow(title={self.title!r})"


class RowEnricher:
    def __init__(
        self,
        document: BeautifulSoup,
        *,
        resolver: RatingResolver,
        favorites: FavoritesStore,
        preferences: PreferenceStore,
        table_id: str = PREVIEW_RELEASES_TABLE_ID,
        image_attr: str = PREVIEW_IMAGE_ATTR,
        processed_class: str = PREVIEW_PROCESSED_CLASS,
    ) -> None:
        self.document = document
        self._resolver = resolver
        self._favorites = favorites
        self._preferences = preferences
        self.table_id = table_id
        self.image_attr = image_attr
        self.processed_class = processed_class
        self.rows: list[EnrichedRow] = []

    # --------------------------------------------------------
    # Selección
    # --------------------------------------------------------

    @property
    def selector(self) -> str:
        return candidate_selector(
            table_id=self.table_id,
            image_attr=self.image_attr,
            processed_class=self.processed_class,
        )

    def unprocessed_rows(self) -> list[Tag]:
        return list(self.document.select(self.selector))

    def is_processed(self, link: Tag) -> bool:
        return has_class(link, self.processed_class)

    # --------------------------------------------------------
    # Documento: estilos + tamaño de miniatura
    # --------------------------------------------------------

    def ensure_styles(self) -> None:
        if self.document.find(id=STYLE_ELEMENT_ID) is not None:
            return

        css = _CSS_TEMPLATE.format(
            table_id=self.table_id,
            padding=self._preferences.padding() or "6px 0",
            thumb_var=THUMB_SIZE_VAR,
        )
        style = self.document.new_tag("style", attrs={"id": STYLE_ELEMENT_ID})
        style.string = css

        head = self.document.head
        if head is None:
            head = self.document.new_tag("head")
            html = self.document.html
            if html is not None:
                html.insert(0, head)
            else:
                self.document.insert(0, head)
        head.append(style)

    def apply_thumb_size(self) -> str:
        size = self._preferences.image_size()
        html = self.document.html
        if html is not None:
            set_style_property(html, THUMB_SIZE_VAR, size)
        return size

    # --------------------------------------------------------
    # Scan completo
    # --------------------------------------------------------

    def scan(self) -> int:
        """Rescan completo: procesa todas las filas no procesadas. Devuelve nº enriquecidas."""
        self.ensure_styles()
        self.apply_thumb_size()

        enriched = 0
        for link in self.unprocessed_rows():
            try:
                if self.process_row(link) is not None:
                    enriched += 1
            except Exception as exc:
                logger.error(f"[{_TAG}] failed to enrich row: {exc!r}", exc_info=exc)

        logger.debug_ctx(_TAG, f"scan enriched={enriched} total={len(self.rows)}")
        return enriched

    # --------------------------------------------------------
    # Una fila
    # --------------------------------------------------------

    def process_row(self, link: Tag) -> EnrichedRow | None:
        if self.is_processed(link):
            return None

        # Marca ANTES de cualquier trabajo asíncrono (re-entrancia segura).
        add_class(link, self.processed_class)

        img_url = str(link.get(self.image_attr) or "")
        cell = link.find_parent("td")
        if cell is None:
            logger.debug_ctx(_TAG, "row without enclosing <td>; skipped")
            return None

        title = link.get_text().strip()
        badge = cell.select_one(BADGE_SELECTOR)

        doc = self.document
        wrapper = doc.new_tag("div", attrs={"class": ["sp-img-wrapper"]})
        img = doc.new_tag("img", attrs={"class": ["sp-thumb"], "src": img_url, "alt": title or "preview"})
        text_div = doc.new_tag("div", attrs={"class": ["sp-text"]})
        title_div = doc.new_tag("div", attrs={"class": ["sp-title"]})

        title_div.append(link.extract())

        rating_span: Tag | None = None
        fav_span: Tag | None = None
        if title:
            rating_span = doc.new_tag("span", attrs={"class": ["sp-rating"]})
            set_style_property(rating_span, "margin-left", "8px")
            set_style_property(rating_span, "cursor", "pointer")
            rating_span.string = LOADING_TEXT
            title_div.append(rating_span)

            fav_span = doc.new_tag("span", attrs={"class": ["sp-fav"]})
            set_style_property(fav_span, "margin-left", "6px")
            set_style_property(fav_span, "cursor", "pointer")
            title_div.append(fav_span)
        else:
            logger.debug_ctx(_TAG, f"row without title text (img={img_url!r}); no rating controls")

        text_div.append(title_div)
        if badge is not None:
            add_class(badge, "sp-badges")
            text_div.append(badge.extract())

        wrapper.append(img)
        wrapper.append(text_div)

        cell.clear()
        cell.append(wrapper)

        row = EnrichedRow(
            self,
            title=title,
            link=link,
            wrapper=wrapper,
            rating_span=rating_span,
            fav_span=fav_span,
        )
        self.rows.append(row)

        if fav_span is not None:
            render_favorite(fav_span, self._favorites.is_favorite(title))
        if rating_span is not None:
            self.update_rating(row, force=False)

        return row

    # --------------------------------------------------------
    # Controles (rating / favorito)
    # --------------------------------------------------------

    def update_rating(self, row: EnrichedRow, *, force: bool) -> RatingView | None:
        if row.rating_span is None:
            return None
        view = self._resolver.resolve(row.title, force_refresh=force, on_update=row.apply_view)
        row.apply_view(view)
        return view

    def toggle_favorite(self, row: EnrichedRow) -> bool:
        new_state = self._favorites.toggle(row.title)
        if row.fav_span is not None:
            render_favorite(row.fav_span, new_state)
        return new_state
