"""
templates.py

Page formats for composed documents.
All units: points (1/72 inch). Every format is laid out in landscape.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Tuple

from reportlab.lib.pagesizes import A2, A3, A4, A5, landscape

from errors import UnsupportedFormatError


@dataclass(frozen=True)
class PageFormatSpec:
    name: str
    pagesize: Tuple[float, float]  # (width_pt, height_pt), landscape
    facing_size: Tuple[float, float]  # direction icon (width, height)

    @property
    def width(self) -> float:
        return self.pagesize[0]

    @property
    def height(self) -> float:
        return self.pagesize[1]


# The direction icon keeps a fixed size per sheet, it never follows the content scale.
PAGE_FORMATS: Dict[str, PageFormatSpec] = {
    "a2": PageFormatSpec("a2", landscape(A2), (60.0, 60.0)),
    "a3": PageFormatSpec("a3", landscape(A3), (50.0, 50.0)),
    "a4": PageFormatSpec("a4", landscape(A4), (40.0, 40.0)),
    "a5": PageFormatSpec("a5", landscape(A5), (30.0, 30.0)),
}

DEFAULT_PAGE_FORMATS = ("a2", "a3", "a4", "a5")


def get_page_format_names() -> list[str]:
    return list(PAGE_FORMATS.keys())


def get_page_format(name: str) -> PageFormatSpec:
    """
    Look up a page format by name (case-insensitive).
    There is no fallback format; an unknown name is an error.
    """
    key = (name or "").strip().lower()
    try:
        return PAGE_FORMATS[key]
    except KeyError:
        raise UnsupportedFormatError(f"Unsupported page format: {name}") from None
