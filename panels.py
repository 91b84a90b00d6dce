"""
panels.py

Stock side panel and footer components.

title_block_panel lays out the usual drawing title block fields
(issuer / project / client / title / number / revision / sign-off) as markup.
notes_footer shows general notes with the issuer logo.

Both follow the component calling convention used by overlays.render_overlays.
"""

from __future__ import annotations

from html import escape
from typing import Any, Mapping, Optional

from models import TitleBlock

# Larger sheets get larger type
_FONT_PX = {"a2": 15, "a3": 13, "a4": 11, "a5": 9}


def _font_px(page_format: str) -> int:
    return _FONT_PX.get((page_format or "").lower(), 11)


def _cell(label: str, value: str) -> str:
    value = escape(value.strip()) if value and value.strip() else "&nbsp;"
    return f"<p><b>{escape(label)}</b><br/>{value}</p>"


def title_block_panel(data: Optional[Mapping[str, Any]] = None, page_format: str = "a4", **_props: Any) -> str:
    tb = TitleBlock.from_data(data or {})
    size = _font_px(page_format)

    parts = [f'<div style="font-size: {size}px; padding: 10px;">']
    if tb.drawing_title:
        parts.append(f'<h3 style="text-align: center;">{escape(tb.drawing_title)}</h3>')
        parts.append("<hr/>")

    parts.append(_cell("ISSUER", tb.issuer_company))
    parts.append(_cell("PROJECT", tb.project))
    parts.append(_cell("CLIENT", tb.client))
    if tb.location:
        parts.append(_cell("LOCATION", tb.location))
    parts.append("<hr/>")

    parts.append(_cell("DWG NO", tb.drawing_number))
    parts.append(_cell("REV", tb.revision))
    parts.append(_cell("DATE", tb.date))
    parts.append("<hr/>")

    parts.append(_cell("DRAWN", tb.drawn_by))
    parts.append(_cell("CHECKED", tb.checked_by))
    parts.append(_cell("APPROVED", tb.approved_by))
    parts.append("</div>")
    return "".join(parts)


def notes_footer(data: Optional[Mapping[str, Any]] = None, page_format: str = "a4", logo_ref: Any = "", **_props: Any) -> str:
    data = data or {}
    size = _font_px(page_format)
    notes = str(data.get("notes") or data.get("comments") or "").strip()

    parts = [f'<div style="font-size: {size}px;">']
    if notes:
        parts.append(f"<p><b>Notes:</b> {escape(notes)}</p>")
    if logo_ref and isinstance(logo_ref, str):
        parts.append(f'<img src="{escape(logo_ref, quote=True)}" alt="logo" style="width: 80px;"/>')
    parts.append("</div>")
    return "".join(parts)
