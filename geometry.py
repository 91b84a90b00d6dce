"""
geometry.py

Page layout for composed documents.

Given a page format and the captured region's pixel size, works out:
- the bordered frame block (top-left 75% x 85% of the sheet)
- where the snapshot lands inside it and at which uniform scale
- the side panel strip on the right
- the footer band along the bottom
- the direction icon box

Everything is in page units with the origin at the top-left corner.
Nothing is cached: call resolve() for every export.
"""

from __future__ import annotations

from typing import Tuple, Union

from errors import GeometryError
from models import LayoutGeometry, Rect, SnapshotDimensions
from templates import get_page_format


PAGE_MARGIN = 5.0

FRAME_WIDTH_RATIO = 0.75
FRAME_HEIGHT_RATIO = 0.85

SIDE_PANEL_LEFT_RATIO = 0.78
SIDE_PANEL_WIDTH_RATIO = 0.20

OVERLAY_LEFT_RATIO = 0.77
OVERLAY_TOP_RATIO = 0.70

FOOTER_BOTTOM_OFFSET = 10.0

Dimensions = Union[SnapshotDimensions, Tuple[float, float]]


def best_fit_ratio(box_w: float, box_h: float, src_w: float, src_h: float) -> float:
    """Largest uniform scale that fits src inside box."""
    return min(box_w / src_w, box_h / src_h)


def resolve(page_format: str, dimensions: Dimensions) -> LayoutGeometry:
    if not isinstance(dimensions, SnapshotDimensions):
        dimensions = SnapshotDimensions(*dimensions)

    src_w, src_h = float(dimensions.width), float(dimensions.height)
    if src_w <= 0 or src_h <= 0:
        raise GeometryError(f"Cannot lay out a snapshot of {src_w:g}x{src_h:g} pixels.")

    fmt = get_page_format(page_format)
    page_w, page_h = fmt.pagesize
    margin = PAGE_MARGIN

    frame = Rect(margin, margin, page_w * FRAME_WIDTH_RATIO, page_h * FRAME_HEIGHT_RATIO)

    ratio = best_fit_ratio(frame.width, frame.height, src_w, src_h)
    draw_w = src_w * ratio
    draw_h = src_h * ratio
    primary = Rect(
        frame.x + (frame.width - draw_w) / 2.0,
        frame.y + (frame.height - draw_h) / 2.0,
        draw_w,
        draw_h,
    )

    # Same height as the frame so the strip stops above the footer
    side_panel = Rect(
        margin + page_w * SIDE_PANEL_LEFT_RATIO,
        margin,
        page_w * SIDE_PANEL_WIDTH_RATIO,
        frame.height,
    )

    footer_top = frame.bottom + margin
    footer = Rect(
        margin * 2,
        footer_top,
        page_w - margin * 4,
        max(0.0, page_h - FOOTER_BOTTOM_OFFSET - footer_top),
    )

    facing_w, facing_h = fmt.facing_size
    overlay = Rect(
        page_w * OVERLAY_LEFT_RATIO - margin,
        page_h * OVERLAY_TOP_RATIO - margin,
        facing_w,
        facing_h,
    )

    return LayoutGeometry(
        page_format=fmt.name,
        page_width=page_w,
        page_height=page_h,
        frame_region=frame,
        primary_region=primary,
        side_panel_region=side_panel,
        footer_region=footer,
        overlay_region=overlay,
        scale_ratio=ratio,
    )
