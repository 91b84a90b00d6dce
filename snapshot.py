"""
snapshot.py

Turns a live visual region into a static snapshot (JPEG or SVG).

Regions:
- ImageRegion: an in-memory PIL image or an image file
- PdfPageRegion: one page of a PDF, rasterized with PyMuPDF
- WidgetRegion: a mounted PyQt5 widget

Dependencies:
- Pillow
- pymupdf (fitz)
- PyQt5 (only for WidgetRegion)
"""

from __future__ import annotations

import asyncio
import base64
import io
import os
import weakref
from abc import ABC, abstractmethod
from typing import Any, Awaitable, Optional, Tuple, Union

import fitz  # PyMuPDF
from PIL import Image, ImageColor

from errors import CaptureError
from logger import get_logger
from models import Snapshot, SnapshotDimensions, SnapshotEncoding

LOGGER = get_logger(__name__)

ImageSource = Union[str, Image.Image]


# ---------------------------------------------------------------------
# Regions
# ---------------------------------------------------------------------

class CaptureRegion(ABC):
    """Something on screen (or on disk) that can be captured as an image."""

    @abstractmethod
    def is_attached(self) -> bool:
        """False once the region is gone and must not be captured."""

    @abstractmethod
    def size(self) -> Tuple[int, int]:
        """Current (width, height) in pixels."""

    @abstractmethod
    def render(self) -> Image.Image:
        """Render the current visual state."""

    @property
    def revision(self) -> Optional[int]:
        """
        Layout version of the region. Cached renders are only reused while this
        stays the same; None means never reuse.
        """
        return None

    def render_svg(self, background: str = "white") -> bytes:
        """
        Vector snapshot. Regions with no vector representation embed their
        raster render in an SVG document.
        """
        img = self.render()
        return embed_raster_in_svg(img, background)


class ImageRegion(CaptureRegion):
    def __init__(self, source: ImageSource) -> None:
        self._source: Optional[ImageSource] = source
        self._revision = 0

    @classmethod
    def from_path(cls, path: str) -> "ImageRegion":
        if not os.path.exists(path):
            raise CaptureError(f"Image not found: {path}")
        return cls(path)

    def is_attached(self) -> bool:
        return self._source is not None

    def size(self) -> Tuple[int, int]:
        src = self._require_source()
        if isinstance(src, Image.Image):
            return src.size
        with Image.open(src) as im:
            return im.size

    def render(self) -> Image.Image:
        src = self._require_source()
        if isinstance(src, Image.Image):
            return src.copy()
        with Image.open(src) as im:
            im.load()
            return im.copy()

    @property
    def revision(self) -> Optional[int]:
        return self._revision

    def update(self, source: ImageSource) -> None:
        """Swap in new content (a new layout pass)."""
        self._source = source
        self._revision += 1

    def detach(self) -> None:
        self._source = None

    def _require_source(self) -> ImageSource:
        if self._source is None:
            raise CaptureError()
        return self._source


class PdfPageRegion(CaptureRegion):
    """One PDF page, rasterized at dpi."""

    def __init__(self, pdf_path: str, page_index: int = 0, dpi: int = 96) -> None:
        self.pdf_path = pdf_path
        self.page_index = page_index
        self.dpi = dpi if dpi > 0 else 96

    def is_attached(self) -> bool:
        return bool(self.pdf_path) and os.path.exists(self.pdf_path)

    def size(self) -> Tuple[int, int]:
        doc = fitz.open(self.pdf_path)
        try:
            page = self._load_page(doc)
            zoom = self.dpi / 72.0
            return int(round(page.rect.width * zoom)), int(round(page.rect.height * zoom))
        finally:
            doc.close()

    def render(self) -> Image.Image:
        return render_pdf_page_to_image(self.pdf_path, self.page_index, dpi=self.dpi)

    @property
    def revision(self) -> Optional[int]:
        try:
            return os.stat(self.pdf_path).st_mtime_ns
        except OSError:
            return None

    def _load_page(self, doc: Any) -> Any:
        if self.page_index < 0 or self.page_index >= doc.page_count:
            raise CaptureError(f"PDF page_index out of range: {self.page_index} for {self.pdf_path}")
        return doc.load_page(self.page_index)


class WidgetRegion(CaptureRegion):
    """
    A live PyQt5 widget. Raster snapshots come from QWidget.grab(),
    vector snapshots are painted through QSvgGenerator.
    """

    def __init__(self, widget: Any) -> None:
        self.widget = widget

    def is_attached(self) -> bool:
        from PyQt5 import sip

        w = self.widget
        if w is None or sip.isdeleted(w):
            return False
        return w.isVisible()

    def size(self) -> Tuple[int, int]:
        return self.widget.width(), self.widget.height()

    def render(self) -> Image.Image:
        from PyQt5 import QtGui

        qimg = self.widget.grab().toImage().convertToFormat(QtGui.QImage.Format_RGBA8888)
        w, h = qimg.width(), qimg.height()
        ptr = qimg.constBits()
        ptr.setsize(qimg.byteCount())
        return Image.frombuffer("RGBA", (w, h), bytes(ptr), "raw", "RGBA", qimg.bytesPerLine(), 1).copy()

    def render_svg(self, background: str = "white") -> bytes:
        from PyQt5 import QtCore, QtGui, QtSvg

        buf = QtCore.QBuffer()
        buf.open(QtCore.QIODevice.WriteOnly)

        gen = QtSvg.QSvgGenerator()
        gen.setOutputDevice(buf)
        gen.setSize(self.widget.size())
        gen.setViewBox(self.widget.rect())

        painter = QtGui.QPainter(gen)
        try:
            painter.fillRect(self.widget.rect(), QtGui.QColor(background))
            self.widget.render(painter)
        finally:
            painter.end()
        buf.close()
        return bytes(buf.data())


def render_pdf_page_to_image(pdf_path: str, page_index: int, dpi: int = 96) -> Image.Image:
    """
    Render one PDF page into a PIL Image.
    """
    if dpi <= 0:
        dpi = 96

    doc = fitz.open(pdf_path)
    try:
        if page_index < 0 or page_index >= doc.page_count:
            raise CaptureError(f"PDF page_index out of range: {page_index} for {pdf_path}")

        page = doc.load_page(page_index)
        zoom = dpi / 72.0
        mat = fitz.Matrix(zoom, zoom)
        pix = page.get_pixmap(matrix=mat, alpha=False)

        return Image.frombytes("RGB", (pix.width, pix.height), pix.samples)
    finally:
        doc.close()


# ---------------------------------------------------------------------
# Encoding helpers
# ---------------------------------------------------------------------

def flatten(img: Image.Image, background: str = "white") -> Image.Image:
    """Composite onto an opaque background and return an RGB image."""
    if img.mode == "RGB":
        return img
    rgba = img.convert("RGBA")
    base = Image.new("RGBA", rgba.size, ImageColor.getcolor(background or "white", "RGBA"))
    base.alpha_composite(rgba)
    return base.convert("RGB")


def jpeg_quality(quality: float) -> int:
    """Map a 0..1 quality onto JPEG's 1..100 scale."""
    return max(1, min(100, int(round(quality * 100))))


def encode_jpeg(img: Image.Image, quality: float = 1.0) -> bytes:
    out = io.BytesIO()
    img.save(out, format="JPEG", quality=jpeg_quality(quality))
    return out.getvalue()


def embed_raster_in_svg(img: Image.Image, background: str = "white") -> bytes:
    w, h = img.size
    png = io.BytesIO()
    img.save(png, format="PNG")
    payload = base64.b64encode(png.getvalue()).decode("ascii")
    svg = (
        f'<svg xmlns="http://www.w3.org/2000/svg" xmlns:xlink="http://www.w3.org/1999/xlink" '
        f'width="{w}" height="{h}" viewBox="0 0 {w} {h}">'
        f'<rect width="100%" height="100%" fill="{background}"/>'
        f'<image width="{w}" height="{h}" xlink:href="data:image/png;base64,{payload}"/>'
        f"</svg>"
    )
    return svg.encode("utf-8")


# ---------------------------------------------------------------------
# Capturer
# ---------------------------------------------------------------------

class SnapshotCapturer:
    """
    Captures regions. Renders are cached per region and reused only while the
    region's revision is unchanged; cache_bust forces a fresh render.
    """

    def __init__(self) -> None:
        self._cache: "weakref.WeakKeyDictionary[CaptureRegion, Tuple[int, Image.Image]]" = weakref.WeakKeyDictionary()

    def capture(
        self,
        region: Optional[CaptureRegion],
        encoding: SnapshotEncoding = SnapshotEncoding.RASTER,
        *,
        quality: float = 1.0,
        background: str = "white",
        cache_bust: bool = False,
    ) -> Awaitable[Snapshot]:
        """
        Validate the region now and return the awaitable that captures it.
        A missing or detached region raises CaptureError before anything is scheduled.
        """
        if region is None or not region.is_attached():
            raise CaptureError()
        return self._capture(region, encoding, quality, background, cache_bust)

    def clear_cache(self) -> None:
        self._cache.clear()

    async def _capture(
        self,
        region: CaptureRegion,
        encoding: SnapshotEncoding,
        quality: float,
        background: str,
        cache_bust: bool,
    ) -> Snapshot:
        await asyncio.sleep(0)
        try:
            if encoding is SnapshotEncoding.VECTOR:
                return self._capture_vector(region, background)
            return self._capture_raster(region, quality, background, cache_bust)
        except CaptureError:
            raise
        except Exception as exc:
            raise CaptureError(f"Capturing the region failed: {exc}") from exc

    def _capture_raster(
        self,
        region: CaptureRegion,
        quality: float,
        background: str,
        cache_bust: bool,
    ) -> Snapshot:
        img = self._rendered(region, cache_bust)
        w, h = img.size
        dims = SnapshotDimensions(w, h)
        if dims.is_empty:
            LOGGER.warning("Captured region is empty (%dx%d)", w, h)
            return Snapshot(SnapshotEncoding.RASTER, dims)

        flat = flatten(img, background)
        data = encode_jpeg(flat, quality)
        LOGGER.debug("Captured raster snapshot %dx%d (%d bytes)", w, h, len(data))
        return Snapshot(SnapshotEncoding.RASTER, dims, data=data, image=flat)

    def _capture_vector(self, region: CaptureRegion, background: str) -> Snapshot:
        w, h = region.size()
        dims = SnapshotDimensions(w, h)
        if dims.is_empty:
            LOGGER.warning("Captured region is empty (%dx%d)", w, h)
            return Snapshot(SnapshotEncoding.VECTOR, dims)

        data = region.render_svg(background)
        LOGGER.debug("Captured vector snapshot %dx%d (%d bytes)", w, h, len(data))
        return Snapshot(SnapshotEncoding.VECTOR, dims, data=data)

    def _rendered(self, region: CaptureRegion, cache_bust: bool) -> Image.Image:
        rev = region.revision

        if not cache_bust and rev is not None:
            hit = self._cache.get(region)
            if hit is not None and hit[0] == rev:
                return hit[1]

        img = region.render()
        if rev is not None:
            self._cache[region] = (rev, img)
        else:
            self._cache.pop(region, None)
        return img
