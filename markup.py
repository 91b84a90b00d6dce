"""
markup.py

Converts static panel markup into reportlab platypus flowables so side panel
and footer fragments can be inlined into their regions on the PDF canvas.

Supported: headings, p/div/section blocks, lists, b/strong, i/em, u, br, hr,
img, and the inline styles font-size, font-weight, color and text-align.
Anything else contributes its text only.
"""

from __future__ import annotations

import re
from html import escape
from html.parser import HTMLParser
from typing import Any, Dict, List, Optional, Tuple

from reportlab.lib import colors
from reportlab.lib.enums import TA_CENTER, TA_JUSTIFY, TA_LEFT, TA_RIGHT
from reportlab.lib.styles import ParagraphStyle
from reportlab.lib.utils import ImageReader
from reportlab.platypus import Flowable, HRFlowable, Image as RLImage, Paragraph, Spacer

from logger import get_logger

LOGGER = get_logger(__name__)

# CSS pixels are 1/96 inch, page units are 1/72 inch
PX_TO_PT = 72.0 / 96.0

BASE_FONT_SIZE = 9.0

_HEADING_SIZES = {"h1": 16.0, "h2": 14.0, "h3": 12.0, "h4": 10.5, "h5": 9.5, "h6": 9.0}
_BLOCK_TAGS = {
    "p", "div", "section", "article", "header", "footer", "main", "aside",
    "ul", "ol", "li", "table", "tr", "td", "th", "blockquote", "figure", "figcaption",
} | set(_HEADING_SIZES)
_INLINE_MAP = {"b": "b", "strong": "b", "i": "i", "em": "i", "u": "u", "sub": "sub", "sup": "sup"}
_ALIGNMENTS = {"left": TA_LEFT, "center": TA_CENTER, "right": TA_RIGHT, "justify": TA_JUSTIFY}

_LENGTH_RE = re.compile(r"^\s*([0-9]*\.?[0-9]+)\s*(px|pt|em|rem|%)?\s*$")


def parse_style(style: Optional[str]) -> Dict[str, str]:
    """'a: b; c: d' -> {'a': 'b', 'c': 'd'}"""
    out: Dict[str, str] = {}
    for decl in (style or "").split(";"):
        if ":" not in decl:
            continue
        key, value = decl.split(":", 1)
        out[key.strip().lower()] = value.strip()
    return out


def css_length_to_pt(value: Optional[str], base: float = BASE_FONT_SIZE, percent_of: Optional[float] = None) -> Optional[float]:
    if not value:
        return None
    m = _LENGTH_RE.match(str(value))
    if not m:
        return None
    number, unit = float(m.group(1)), (m.group(2) or "px")
    if unit == "px":
        return number * PX_TO_PT
    if unit == "pt":
        return number
    if unit in ("em", "rem"):
        return number * base
    if percent_of is not None:
        return percent_of * number / 100.0
    return None


def _to_color(value: str) -> Optional[colors.Color]:
    try:
        return colors.toColor(value)
    except ValueError:
        LOGGER.debug("Ignoring unknown color %r", value)
        return None


class _FlowableBuilder(HTMLParser):
    def __init__(self, max_width: float, base_font_size: float) -> None:
        super().__init__(convert_charrefs=True)
        self.max_width = max_width
        self.flowables: List[Flowable] = []

        self._styles: List[Dict[str, Any]] = [
            {"size": base_font_size, "bold": False, "align": TA_LEFT, "color": colors.black}
        ]
        self._open_blocks: List[str] = []
        self._inline_stack: List[List[Tuple[str, str]]] = []
        self._buf: List[str] = []
        self._lists: List[Dict[str, Any]] = []

    # -- block handling -------------------------------------------------

    @property
    def _style(self) -> Dict[str, Any]:
        return self._styles[-1]

    def _push_block(self, tag: str, attrs: Dict[str, Optional[str]]) -> None:
        self._flush()
        style = dict(self._style)
        if tag in _HEADING_SIZES:
            style["size"] = _HEADING_SIZES[tag]
            style["bold"] = True
        self._apply_css(style, parse_style(attrs.get("style")))
        self._styles.append(style)
        self._open_blocks.append(tag)

        if tag in ("ul", "ol"):
            self._lists.append({"ordered": tag == "ol", "count": 0})
        elif tag == "li":
            prefix = "• "
            if self._lists:
                lst = self._lists[-1]
                lst["count"] += 1
                if lst["ordered"]:
                    prefix = f"{lst['count']}. "
            self._buf.append(prefix)

    def _pop_block(self, tag: str) -> None:
        if tag not in self._open_blocks:
            return
        self._flush()
        while self._open_blocks:
            closed = self._open_blocks.pop()
            self._styles.pop()
            if closed in ("ul", "ol") and self._lists:
                self._lists.pop()
            if closed == tag:
                break

    def _apply_css(self, style: Dict[str, Any], css: Dict[str, str]) -> None:
        size = css_length_to_pt(css.get("font-size"), base=style["size"], percent_of=style["size"])
        if size:
            style["size"] = size
        weight = css.get("font-weight", "").lower()
        if weight in ("bold", "bolder") or (weight.isdigit() and int(weight) >= 600):
            style["bold"] = True
        elif weight in ("normal", "lighter") or (weight.isdigit() and int(weight) < 600):
            style["bold"] = False
        align = css.get("text-align", "").lower()
        if align in _ALIGNMENTS:
            style["align"] = _ALIGNMENTS[align]
        if css.get("color"):
            color = _to_color(css["color"])
            if color is not None:
                style["color"] = color

    def _paragraph_style(self) -> ParagraphStyle:
        s = self._style
        return ParagraphStyle(
            name="panel",
            fontName="Helvetica-Bold" if s["bold"] else "Helvetica",
            fontSize=s["size"],
            leading=s["size"] * 1.2,
            alignment=s["align"],
            textColor=s["color"],
            spaceAfter=s["size"] * 0.3,
        )

    def _flush(self) -> None:
        # inline tags still open carry over into the next paragraph
        open_tags = [pair for frame in self._inline_stack for pair in frame]
        text = "".join(self._buf).strip()
        self._buf = ["".join(markup for _, markup in open_tags)] if open_tags else []
        if not re.sub(r"<[^>]+>", "", text).strip():
            if text.endswith("<br/>"):
                self.flowables.append(Spacer(1, self._style["size"]))
            return
        tail = "".join(f"</{name}>" for name, _ in reversed(open_tags))
        self.flowables.append(Paragraph(text + tail, self._paragraph_style()))

    # -- parser callbacks -----------------------------------------------

    def handle_starttag(self, tag: str, attrs: list) -> None:
        amap = {k.lower(): v for k, v in attrs}
        if tag in _BLOCK_TAGS:
            self._push_block(tag, amap)
        elif tag == "br":
            self._buf.append("<br/>")
        elif tag == "hr":
            self._flush()
            self.flowables.append(HRFlowable(width="100%", thickness=0.5, color=colors.grey, spaceBefore=2, spaceAfter=2))
        elif tag == "img":
            self._flush()
            img = self._image(amap)
            if img is not None:
                self.flowables.append(img)
        elif tag in _INLINE_MAP:
            rl = _INLINE_MAP[tag]
            self._open_inline([(rl, f"<{rl}>")])
        elif tag == "span":
            css = parse_style(amap.get("style"))
            opened: List[Tuple[str, str]] = []
            color = _to_color(css["color"]) if css.get("color") else None
            if color is not None:
                hexval = color.hexval().replace("0x", "#")
                opened.append(("font", f'<font color="{hexval}">'))
            if css.get("font-weight", "").lower() in ("bold", "700", "800", "900"):
                opened.append(("b", "<b>"))
            self._open_inline(opened)

    def _open_inline(self, frame: List[Tuple[str, str]]) -> None:
        for _, markup in frame:
            self._buf.append(markup)
        self._inline_stack.append(frame)

    def handle_startendtag(self, tag: str, attrs: list) -> None:
        self.handle_starttag(tag, attrs)
        if tag in _BLOCK_TAGS:
            self._pop_block(tag)
        elif tag in _INLINE_MAP or tag == "span":
            self.handle_endtag(tag)

    def handle_endtag(self, tag: str) -> None:
        if tag in _BLOCK_TAGS:
            self._pop_block(tag)
        elif tag in _INLINE_MAP or tag == "span":
            if self._inline_stack:
                for name, _ in reversed(self._inline_stack.pop()):
                    self._buf.append(f"</{name}>")

    def handle_data(self, data: str) -> None:
        text = re.sub(r"\s+", " ", data)
        if text:
            self._buf.append(escape(text, quote=False))

    def close(self) -> None:
        super().close()
        self._flush()
        self._inline_stack = []
        self._buf = []

    # -- images ---------------------------------------------------------

    def _image(self, attrs: Dict[str, Optional[str]]) -> Optional[Flowable]:
        src = attrs.get("src")
        if not src:
            return None
        try:
            reader = ImageReader(src)
            iw, ih = reader.getSize()
        except Exception as exc:
            LOGGER.warning("Skipping panel image %s: %s", src[:80], exc)
            return None
        if iw <= 0 or ih <= 0:
            return None

        css = parse_style(attrs.get("style"))
        w = css_length_to_pt(css.get("width") or attrs.get("width"), percent_of=self.max_width)
        h = css_length_to_pt(css.get("height") or attrs.get("height"))
        if w and not h:
            h = w * ih / iw
        elif h and not w:
            w = h * iw / ih
        elif not w and not h:
            w, h = iw * PX_TO_PT, ih * PX_TO_PT

        if w > self.max_width:
            h = h * self.max_width / w
            w = self.max_width

        img = RLImage(src, width=w, height=h)
        img.hAlign = {TA_CENTER: "CENTER", TA_RIGHT: "RIGHT"}.get(self._style["align"], "LEFT")
        return img


def markup_to_flowables(markup: str, max_width: float, base_font_size: float = BASE_FONT_SIZE) -> List[Flowable]:
    """Flowables for markup, laid out for a column max_width points wide."""
    if not markup:
        return []
    builder = _FlowableBuilder(max_width=max_width, base_font_size=base_font_size)
    builder.feed(markup)
    builder.close()
    return builder.flowables
