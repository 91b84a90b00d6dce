"""
overlays.py

Side panel / footer rendering and direction icon lookup.

Panels are caller-supplied components: any callable that takes keyword
arguments (data, page_format[, logo_ref]) and returns markup. Their output is
passed through a sanitizer so nothing interactive survives into the document.
"""

from __future__ import annotations

from html import escape
from html.parser import HTMLParser
from typing import Any, Callable, List, Mapping, Optional, Protocol

from errors import RenderError
from logger import get_logger
from models import OverlayFragments, OverlayMetadata

LOGGER = get_logger(__name__)

EMPTY_PANEL = "<div></div>"


class Renderable(Protocol):
    def __call__(self, **props: Any) -> Optional[str]:
        ...


def default_side_panel(**_props: Any) -> str:
    return EMPTY_PANEL


def default_footer(**_props: Any) -> str:
    return EMPTY_PANEL


# ---------------------------------------------------------------------
# Sanitizer
# ---------------------------------------------------------------------

# Dropped together with everything inside them
_DROP_WITH_CONTENT = {"script", "noscript", "template", "iframe", "object", "embed", "style"}
# Dropped, but their text content is kept
_UNWRAP = {"button", "select", "option", "textarea", "form", "label", "a", "input"}
_VOID = {"br", "hr", "img", "meta", "link", "col", "area", "base", "wbr", "source"}
_BLOCKED_ATTRS = {"contenteditable", "tabindex", "draggable", "autofocus", "href", "action", "formaction"}


class _StaticMarkupFilter(HTMLParser):
    def __init__(self) -> None:
        super().__init__(convert_charrefs=True)
        self.out: List[str] = []
        self._skip_depth = 0

    def handle_starttag(self, tag: str, attrs: list) -> None:
        self._start(tag, attrs, self_closing=False)

    def handle_startendtag(self, tag: str, attrs: list) -> None:
        self._start(tag, attrs, self_closing=True)

    def _start(self, tag: str, attrs: list, self_closing: bool) -> None:
        if tag in _DROP_WITH_CONTENT:
            if not self_closing:
                self._skip_depth += 1
            return
        if self._skip_depth:
            return
        if tag in _UNWRAP:
            if tag == "input":
                value = dict(attrs).get("value")
                if value:
                    self.out.append(escape(value))
            return

        kept = []
        for name, value in attrs:
            name = name.lower()
            if name.startswith("on") or name in _BLOCKED_ATTRS:
                continue
            if value is not None and value.strip().lower().startswith("javascript:"):
                continue
            if value is None:
                kept.append(f" {name}")
            else:
                kept.append(f' {name}="{escape(value, quote=True)}"')

        close = " /" if self_closing or tag in _VOID else ""
        self.out.append(f"<{tag}{''.join(kept)}{close}>")

    def handle_endtag(self, tag: str) -> None:
        if tag in _DROP_WITH_CONTENT:
            if self._skip_depth:
                self._skip_depth -= 1
            return
        if self._skip_depth or tag in _UNWRAP or tag in _VOID:
            return
        self.out.append(f"</{tag}>")

    def handle_data(self, data: str) -> None:
        if not self._skip_depth:
            self.out.append(escape(data, quote=False))


def to_static_markup(markup: Optional[str]) -> str:
    """Strip event handlers, links, scripts and form controls from markup."""
    if not markup:
        return ""
    f = _StaticMarkupFilter()
    f.feed(str(markup))
    f.close()
    return "".join(f.out)


# ---------------------------------------------------------------------
# Rendering
# ---------------------------------------------------------------------

def _render_component(name: str, component: Optional[Callable[..., Any]], **props: Any) -> str:
    if component is None:
        return EMPTY_PANEL
    try:
        markup = component(**props)
    except Exception as exc:
        raise RenderError(f"{name} failed to render: {exc}") from exc
    if markup is None:
        return ""
    return to_static_markup(str(markup))


def render_overlays(
    side_panel: Optional[Renderable],
    footer: Optional[Renderable],
    data: Optional[Mapping[str, Any]],
    page_format: str,
    logo_ref: Any = "",
) -> OverlayFragments:
    data = data or {}
    side_html = _render_component("Side panel", side_panel, data=data, page_format=page_format)
    footer_html = _render_component(
        "Footer", footer, data=data, page_format=page_format, logo_ref=logo_ref
    )
    LOGGER.debug("Rendered overlays (side %d chars, footer %d chars)", len(side_html), len(footer_html))
    return OverlayFragments(side_html=side_html, footer_html=footer_html)


def resolve_facing_image(metadata: OverlayMetadata) -> Any:
    """
    Image reference for the direction icon, or None when data[facing_key]
    has no entry in facing_images.
    """
    if not metadata.data or not metadata.facing_key or not metadata.facing_images:
        return None
    code = metadata.data.get(metadata.facing_key)
    if code is None:
        return None
    try:
        return metadata.facing_images.get(code)
    except TypeError:
        # unhashable direction value
        return None
