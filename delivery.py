"""
delivery.py

Final step of an export: save the artifact as {file_name}.{ext}, or hand back
a PreviewHandle the caller opens and later releases.
"""

from __future__ import annotations

import asyncio
import io
import os
import tempfile
from typing import Optional

import fitz  # PyMuPDF
from PIL import Image

from errors import CompositionError
from logger import get_logger
from models import Artifact, ExportFormat

LOGGER = get_logger(__name__)


class PreviewHandle:
    """
    Retrievable reference to a produced document.

    The document lives in a private temp file until release() is called.
    Ownership belongs to whoever received the handle.
    """

    def __init__(self, artifact: Artifact, path: str) -> None:
        self.artifact = artifact
        self.path: Optional[str] = path

    @property
    def mime_type(self) -> str:
        return self.artifact.mime_type

    @property
    def data(self) -> bytes:
        return self.artifact.data

    @property
    def released(self) -> bool:
        return self.path is None

    def render_page(self, dpi: int = 96) -> Image.Image:
        """Rasterize the document for a preview surface."""
        if self.released:
            raise CompositionError("Preview has already been released.")
        fmt = self.artifact.export_format
        if fmt is ExportFormat.COMPOSED_DOCUMENT:
            doc = fitz.open(stream=self.data, filetype="pdf")
            try:
                zoom = (dpi if dpi > 0 else 96) / 72.0
                pix = doc.load_page(0).get_pixmap(matrix=fitz.Matrix(zoom, zoom), alpha=False)
                return Image.frombytes("RGB", (pix.width, pix.height), pix.samples)
            finally:
                doc.close()
        if fmt is ExportFormat.RASTER_IMAGE:
            with Image.open(io.BytesIO(self.data)) as im:
                im.load()
                return im.copy()
        raise CompositionError(f"Cannot rasterize a {fmt.extension} preview.")

    def release(self) -> None:
        if self.path is None:
            return
        try:
            os.remove(self.path)
        except FileNotFoundError:
            pass
        LOGGER.debug("Released preview %s", self.path)
        self.path = None

    def __enter__(self) -> "PreviewHandle":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.release()

    def __repr__(self) -> str:
        return f"PreviewHandle({self.artifact.export_format.value}, path={self.path!r})"


def output_path(output_dir: str, file_name: str, artifact: Artifact) -> str:
    return os.path.join(output_dir, f"{file_name}.{artifact.extension}")


async def save_artifact(artifact: Artifact, output_dir: str, file_name: str) -> str:
    """Write the artifact next to its siblings as {file_name}.{ext}."""
    await asyncio.sleep(0)
    path = output_path(output_dir, file_name, artifact)
    try:
        if output_dir:
            os.makedirs(output_dir, exist_ok=True)
        with open(path, "wb") as f:
            f.write(artifact.data)
    except OSError as exc:
        raise CompositionError(f"Could not write {path}: {exc}") from exc
    LOGGER.info("Saved %s (%d bytes)", path, len(artifact.data))
    return path


async def open_preview(artifact: Artifact, file_name: str = "document") -> PreviewHandle:
    await asyncio.sleep(0)
    try:
        fd, path = tempfile.mkstemp(prefix=f"{file_name}-", suffix=f".{artifact.extension}")
        with os.fdopen(fd, "wb") as f:
            f.write(artifact.data)
    except OSError as exc:
        raise CompositionError(f"Could not stage preview: {exc}") from exc
    LOGGER.info("Preview ready at %s", path)
    return PreviewHandle(artifact, path)
