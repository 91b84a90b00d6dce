"""
composer.py

Assembles export artifacts from a snapshot.

- raster-image: the snapshot's JPEG bytes
- vector-image: the snapshot's SVG bytes
- composed-document: one landscape PDF page with
  frame -> snapshot -> side panel -> footer -> direction icon

Dependencies:
- reportlab
- Pillow
"""

from __future__ import annotations

import asyncio
import io
from typing import Any, Awaitable, Callable, Dict, List, Optional

from PIL import Image
from reportlab.lib import colors
from reportlab.lib.utils import ImageReader
from reportlab.pdfgen import canvas
from reportlab.platypus import Flowable, Frame, KeepInFrame

from errors import CompositionError
from logger import get_logger
from markup import markup_to_flowables
from models import (
    Artifact,
    ExportFormat,
    LayoutGeometry,
    OverlayFragments,
    Rect,
    Snapshot,
    SnapshotEncoding,
)

LOGGER = get_logger(__name__)

FRAME_LINE_WIDTH = 0.5
SIDE_PANEL_LINE_WIDTH = 0.5
FOOTER_LINE_WIDTH = 1.0
PANEL_RADIUS = 5.0
FOOTER_PADDING = 5.0
SIDE_PANEL_PADDING = 2.0


def to_image_reader(ref: Any) -> ImageReader:
    """
    ImageReader for an image reference: path, URL, data URI, raw bytes,
    file-like object or PIL image.
    """
    if isinstance(ref, (bytes, bytearray)):
        ref = io.BytesIO(bytes(ref))
    return ImageReader(ref)


class DocumentComposer:
    """
    Dispatches on ExportFormat. Every format has exactly one encoder; there is
    no fallback for formats outside the table.
    """

    def __init__(self) -> None:
        self._encoders: Dict[ExportFormat, Callable[..., bytes]] = {
            ExportFormat.RASTER_IMAGE: self._encode_raster,
            ExportFormat.VECTOR_IMAGE: self._encode_vector,
            ExportFormat.COMPOSED_DOCUMENT: self._compose_document,
        }

    @staticmethod
    def snapshot_encoding(export_format: ExportFormat) -> SnapshotEncoding:
        """Encoding the snapshot must be captured in for export_format."""
        if export_format is ExportFormat.VECTOR_IMAGE:
            return SnapshotEncoding.VECTOR
        return SnapshotEncoding.RASTER

    def compose(
        self,
        export_format: ExportFormat,
        snapshot: Snapshot,
        geometry: Optional[LayoutGeometry] = None,
        overlays: Optional[OverlayFragments] = None,
        facing_ref: Any = None,
        title: str = "",
    ) -> Awaitable[Artifact]:
        encoder = self._encoders.get(export_format)
        if encoder is None:
            raise CompositionError(f"No encoder for {export_format!r}")
        return self._compose(encoder, export_format, snapshot, geometry, overlays, facing_ref, title)

    async def _compose(
        self,
        encoder: Callable[..., bytes],
        export_format: ExportFormat,
        snapshot: Snapshot,
        geometry: Optional[LayoutGeometry],
        overlays: Optional[OverlayFragments],
        facing_ref: Any,
        title: str,
    ) -> Artifact:
        await asyncio.sleep(0)
        if snapshot is None or snapshot.is_empty:
            raise CompositionError("Snapshot is empty; nothing to export.")
        try:
            data = encoder(snapshot, geometry=geometry, overlays=overlays, facing_ref=facing_ref, title=title)
        except CompositionError:
            raise
        except Exception as exc:
            raise CompositionError(f"Building the {export_format.extension} output failed: {exc}") from exc
        LOGGER.debug("Composed %s artifact (%d bytes)", export_format.value, len(data))
        return Artifact(export_format=export_format, data=data)

    # -----------------------------------------------------------------
    # Image formats
    # -----------------------------------------------------------------

    def _encode_raster(self, snapshot: Snapshot, **_kw: Any) -> bytes:
        if snapshot.encoding is not SnapshotEncoding.RASTER:
            raise CompositionError("Raster export needs a raster snapshot.")
        return snapshot.data

    def _encode_vector(self, snapshot: Snapshot, **_kw: Any) -> bytes:
        if snapshot.encoding is not SnapshotEncoding.VECTOR:
            raise CompositionError("Vector export needs a vector snapshot.")
        return snapshot.data

    # -----------------------------------------------------------------
    # Composed document
    # -----------------------------------------------------------------

    def _compose_document(
        self,
        snapshot: Snapshot,
        geometry: Optional[LayoutGeometry] = None,
        overlays: Optional[OverlayFragments] = None,
        facing_ref: Any = None,
        title: str = "",
    ) -> bytes:
        if geometry is None:
            raise CompositionError("Composed documents need a resolved page layout.")
        if snapshot.encoding is not SnapshotEncoding.RASTER or snapshot.image is None:
            raise CompositionError("Composed documents need a raster snapshot.")
        overlays = overlays or OverlayFragments()

        page_w, page_h = geometry.page_width, geometry.page_height

        buf = io.BytesIO()
        c = canvas.Canvas(buf, pagesize=(page_w, page_h))
        if title:
            c.setTitle(title)

        _draw_frame(c, geometry.frame_region, page_h)
        _draw_snapshot(c, snapshot.image, geometry.primary_region, page_h)
        _draw_panel(
            c,
            overlays.side_html,
            geometry.side_panel_region,
            page_h,
            stroke=colors.black,
            line_width=SIDE_PANEL_LINE_WIDTH,
            padding=SIDE_PANEL_PADDING,
        )
        _draw_panel(
            c,
            overlays.footer_html,
            geometry.footer_region,
            page_h,
            stroke=colors.grey,
            line_width=FOOTER_LINE_WIDTH,
            padding=FOOTER_PADDING,
        )
        if facing_ref is not None:
            _draw_facing(c, facing_ref, geometry.overlay_region, page_h)

        c.showPage()
        c.save()
        return buf.getvalue()


# ---------------------------------------------------------------------
# Page layers
# ---------------------------------------------------------------------

def _draw_frame(c: canvas.Canvas, frame: Rect, page_h: float) -> None:
    x, y, w, h = frame.to_canvas(page_h)
    c.saveState()
    c.setLineWidth(FRAME_LINE_WIDTH)
    c.setStrokeColor(colors.black)
    c.rect(x, y, w, h, stroke=1, fill=0)
    c.restoreState()


def _draw_snapshot(c: canvas.Canvas, image: Image.Image, region: Rect, page_h: float) -> None:
    x, y, w, h = region.to_canvas(page_h)
    c.drawImage(ImageReader(image), x, y, width=w, height=h, preserveAspectRatio=True, mask="auto")


def _draw_panel(
    c: canvas.Canvas,
    markup: str,
    region: Rect,
    page_h: float,
    stroke: colors.Color,
    line_width: float,
    padding: float,
) -> None:
    if region.width <= 0 or region.height <= 0:
        return
    x, y, w, h = region.to_canvas(page_h)

    c.saveState()
    c.setLineWidth(line_width)
    c.setStrokeColor(stroke)
    c.roundRect(x, y, w, h, PANEL_RADIUS, stroke=1, fill=0)
    c.restoreState()

    inner_w = max(1.0, w - 2 * padding)
    inner_h = max(1.0, h - 2 * padding)
    flowables: List[Flowable] = markup_to_flowables(markup, max_width=inner_w)
    if not flowables:
        return

    # Content that does not fit is scaled down rather than cut off
    content = KeepInFrame(inner_w, inner_h, flowables, mode="shrink")
    frame = Frame(
        x + padding,
        y + padding,
        inner_w,
        inner_h,
        leftPadding=0,
        rightPadding=0,
        topPadding=0,
        bottomPadding=0,
        showBoundary=0,
    )
    frame.addFromList([content], c)


def _draw_facing(c: canvas.Canvas, ref: Any, region: Rect, page_h: float) -> None:
    try:
        img = to_image_reader(ref)
        img.getSize()
    except Exception as exc:
        raise CompositionError(f"Direction image could not be loaded: {exc}") from exc

    x, y, w, h = region.to_canvas(page_h)
    c.drawImage(img, x, y, width=w, height=h, mask="auto")
