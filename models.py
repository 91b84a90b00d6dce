"""
models.py

Dataclasses for export settings, requests, page geometry and results.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any, Callable, Dict, List, Mapping, Optional, Tuple

from PIL import Image

from errors import UnsupportedFormatError
from templates import DEFAULT_PAGE_FORMATS, get_page_format

if TYPE_CHECKING:
    from delivery import PreviewHandle


# ---------------------------------------------------------------------
# Formats
# ---------------------------------------------------------------------

class ExportFormat(Enum):
    RASTER_IMAGE = "raster-image"
    VECTOR_IMAGE = "vector-image"
    COMPOSED_DOCUMENT = "composed-document"

    @property
    def extension(self) -> str:
        return _EXTENSIONS[self]

    @property
    def mime_type(self) -> str:
        return _MIME_TYPES[self]

    @classmethod
    def from_label(cls, label: str) -> "ExportFormat":
        key = (label or "").strip().lower()
        try:
            return FORMAT_LABELS[key]
        except KeyError:
            raise UnsupportedFormatError(f"Unsupported format: {label}") from None


_EXTENSIONS = {
    ExportFormat.RASTER_IMAGE: "jpg",
    ExportFormat.VECTOR_IMAGE: "svg",
    ExportFormat.COMPOSED_DOCUMENT: "pdf",
}

_MIME_TYPES = {
    ExportFormat.RASTER_IMAGE: "image/jpeg",
    ExportFormat.VECTOR_IMAGE: "image/svg+xml",
    ExportFormat.COMPOSED_DOCUMENT: "application/pdf",
}

# png is accepted as a label but is always JPEG encoded and saved as .jpg
FORMAT_LABELS: Dict[str, ExportFormat] = {
    "jpeg": ExportFormat.RASTER_IMAGE,
    "jpg": ExportFormat.RASTER_IMAGE,
    "png": ExportFormat.RASTER_IMAGE,
    "svg": ExportFormat.VECTOR_IMAGE,
    "pdf": ExportFormat.COMPOSED_DOCUMENT,
}

# Shown in pickers but never exportable
PLACEHOLDER_LABELS = frozenset({"dwg", "dxf"})


class ExportMode(Enum):
    DOWNLOAD = "download"
    PREVIEW = "preview"

    @classmethod
    def coerce(cls, value: "ExportMode | str") -> "ExportMode":
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            raise UnsupportedFormatError(f"Unsupported export mode: {value}") from None


class SnapshotEncoding(Enum):
    RASTER = "raster"
    VECTOR = "vector"


@dataclass(frozen=True)
class PrintFormatOption:
    label: str
    disabled: bool = False

    @property
    def is_placeholder(self) -> bool:
        return self.label.strip().lower() in PLACEHOLDER_LABELS

    @property
    def export_format(self) -> ExportFormat:
        return ExportFormat.from_label(self.label)


def default_print_formats() -> List[PrintFormatOption]:
    return [
        PrintFormatOption("jpeg", False),
        PrintFormatOption("pdf", False),
        PrintFormatOption("svg", False),
        PrintFormatOption("dwg", True),
        PrintFormatOption("dxf", True),
    ]


# ---------------------------------------------------------------------
# Geometry
# ---------------------------------------------------------------------

@dataclass(frozen=True)
class Rect:
    """Axis-aligned box in page units, origin at the top-left corner of the page."""
    x: float
    y: float
    width: float
    height: float

    @property
    def right(self) -> float:
        return self.x + self.width

    @property
    def bottom(self) -> float:
        return self.y + self.height

    def to_canvas(self, page_h: float) -> Tuple[float, float, float, float]:
        """(x, y, w, h) with y measured from the bottom edge, as the PDF canvas expects."""
        return self.x, page_h - self.bottom, self.width, self.height

    def contains(self, other: "Rect", tol: float = 1e-6) -> bool:
        return (
            other.x >= self.x - tol
            and other.y >= self.y - tol
            and other.right <= self.right + tol
            and other.bottom <= self.bottom + tol
        )


@dataclass(frozen=True)
class SnapshotDimensions:
    width: float
    height: float

    @property
    def is_empty(self) -> bool:
        return self.width <= 0 or self.height <= 0


@dataclass(frozen=True)
class LayoutGeometry:
    page_format: str
    page_width: float
    page_height: float
    frame_region: Rect
    primary_region: Rect
    side_panel_region: Rect
    footer_region: Rect
    overlay_region: Rect
    scale_ratio: float


# ---------------------------------------------------------------------
# Snapshot + overlays
# ---------------------------------------------------------------------

@dataclass
class Snapshot:
    """
    A static capture of a region.

    data holds the encoded bytes (JPEG for raster, SVG for vector).
    image is the flattened PIL image for raster snapshots, None for vector ones.
    """
    encoding: SnapshotEncoding
    dimensions: SnapshotDimensions
    data: bytes = b""
    image: Optional[Image.Image] = None

    @property
    def is_empty(self) -> bool:
        return self.dimensions.is_empty or not self.data


@dataclass
class OverlayMetadata:
    data: Mapping[str, Any] = field(default_factory=dict)
    facing_key: str = "facing"
    facing_images: Mapping[str, Any] = field(default_factory=dict)
    logo_ref: Any = ""


@dataclass(frozen=True)
class OverlayFragments:
    side_html: str = ""
    footer_html: str = ""


@dataclass
class TitleBlock:
    """Fields the stock title-block side panel knows how to lay out."""
    # Issuer info
    issuer_company: str = ""

    project: str = ""
    client: str = ""
    location: str = ""
    drawing_title: str = ""
    drawing_number: str = ""
    revision: str = ""
    date: str = ""
    drawn_by: str = ""
    checked_by: str = ""
    approved_by: str = ""

    @classmethod
    def from_data(cls, data: Mapping[str, Any]) -> "TitleBlock":
        known = {k: str(v) for k, v in data.items() if k in cls.__dataclass_fields__ and v is not None}
        # "title" and "clientName" are common spellings in caller data
        if not known.get("drawing_title") and data.get("title"):
            known["drawing_title"] = str(data["title"])
        if not known.get("client") and data.get("clientName"):
            known["client"] = str(data["clientName"])
        return cls(**known)


# ---------------------------------------------------------------------
# Requests + results
# ---------------------------------------------------------------------

@dataclass(frozen=True)
class ExportRequest:
    export_format: ExportFormat
    page_format: str
    file_name: str
    mode: ExportMode = ExportMode.DOWNLOAD

    @property
    def output_name(self) -> str:
        return f"{self.file_name}.{self.export_format.extension}"


@dataclass(frozen=True)
class Artifact:
    export_format: ExportFormat
    data: bytes

    @property
    def extension(self) -> str:
        return self.export_format.extension

    @property
    def mime_type(self) -> str:
        return self.export_format.mime_type


@dataclass
class CompositionResult:
    ok: bool
    mode: ExportMode
    path: Optional[str] = None
    preview: Optional["PreviewHandle"] = None
    error: Optional[BaseException] = None

    def __bool__(self) -> bool:
        return self.ok


# ---------------------------------------------------------------------
# Settings
# ---------------------------------------------------------------------

ErrorHandler = Callable[[BaseException], None]


@dataclass
class ExportSettings:
    page_formats: List[str] = field(default_factory=lambda: list(DEFAULT_PAGE_FORMATS))
    print_formats: List[PrintFormatOption] = field(default_factory=default_print_formats)
    file_name: str = "document"
    dark_mode: bool = False  # cosmetic, read by dialog chrome only

    facing_images: Dict[str, Any] = field(default_factory=dict)
    facing_data_key: str = "facing"
    logo_url: str = ""

    output_dir: str = field(default_factory=os.getcwd)
    quality: float = 1.0
    background: str = "white"

    default_page_format: str = "a4"
    default_print_format: str = "pdf"

    on_error: Optional[ErrorHandler] = None
    on_state_change: Optional[Callable[[Any], None]] = None

    def __post_init__(self) -> None:
        if not self.page_formats:
            raise UnsupportedFormatError("At least one page format is required.")
        self.page_formats = [get_page_format(name).name for name in self.page_formats]

        options: List[PrintFormatOption] = []
        for opt in self.print_formats:
            if isinstance(opt, Mapping):
                opt = PrintFormatOption(str(opt["label"]), bool(opt.get("disabled", False)))
            elif isinstance(opt, str):
                opt = PrintFormatOption(opt, False)
            if opt.is_placeholder:
                if not opt.disabled:
                    raise UnsupportedFormatError(f"Format '{opt.label}' cannot be enabled.")
            else:
                ExportFormat.from_label(opt.label)
            options.append(opt)
        self.print_formats = options

        if not 0.0 < self.quality <= 1.0:
            raise ValueError(f"quality must be in (0, 1], got {self.quality}")

        if (self.default_page_format or "").lower() not in self.page_formats:
            self.default_page_format = self.page_formats[0]
        else:
            self.default_page_format = self.default_page_format.lower()

        enabled = self.enabled_print_labels()
        if self.default_print_format not in enabled:
            self.default_print_format = enabled[0] if enabled else ""

        if not (self.file_name or "").strip():
            self.file_name = "document"

    def enabled_print_labels(self) -> List[str]:
        return [opt.label for opt in self.print_formats if not opt.disabled]

    def find_print_format(self, label: str) -> Optional[PrintFormatOption]:
        key = (label or "").strip().lower()
        for opt in self.print_formats:
            if opt.label.strip().lower() == key:
                return opt
        return None

    def overlay_metadata(self, data: Mapping[str, Any]) -> OverlayMetadata:
        return OverlayMetadata(
            data=data,
            facing_key=self.facing_data_key,
            facing_images=self.facing_images,
            logo_ref=self.logo_url,
        )
