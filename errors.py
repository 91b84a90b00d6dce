"""
errors.py

Exception hierarchy for the export pipeline.
"""

from __future__ import annotations

__all__ = [
    "ExportError",
    "CaptureError",
    "GeometryError",
    "RenderError",
    "CompositionError",
    "UnsupportedFormatError",
    "ExportInProgressError",
    "ELEMENT_NOT_FOUND",
]


ELEMENT_NOT_FOUND = "Element to print not found."


class ExportError(RuntimeError):
    """Base class for every failure the export pipeline reports."""


class CaptureError(ExportError):
    """Raised when the region to print is missing, detached or cannot be rendered."""

    def __init__(self, message: str = ELEMENT_NOT_FOUND) -> None:
        super().__init__(message)


class GeometryError(ExportError):
    """Raised when a page layout cannot be computed for the snapshot."""


class RenderError(ExportError):
    """Raised when a side panel or footer component fails to render."""


class CompositionError(ExportError):
    """Raised when encoding or assembling the output document fails."""


class UnsupportedFormatError(ExportError):
    """Raised for page or print formats outside the recognised set."""


class ExportInProgressError(ExportError):
    """Raised when an export is requested while another is still running."""
