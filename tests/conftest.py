"""
pytest fixtures shared across the suite.

    def test_something(image_region, settings):
        ...
"""

from __future__ import annotations

import asyncio
from typing import Any, Dict, List

import pytest
from PIL import Image, ImageDraw
from reportlab.pdfgen import canvas

from models import ExportSettings
from snapshot import ImageRegion, SnapshotCapturer


# ============================================================================
# Images + regions
# ============================================================================

def make_image(width: int = 800, height: int = 600, mode: str = "RGB", color: Any = "white") -> Image.Image:
    img = Image.new(mode, (width, height), color)
    if width > 20 and height > 20:
        draw = ImageDraw.Draw(img)
        draw.rectangle([10, 10, width - 10, height - 10], outline="black", width=3)
        draw.line([0, 0, width, height], fill="red", width=2)
    return img


class CountingRegion(ImageRegion):
    """ImageRegion that records how often it is rendered."""

    def __init__(self, source: Any) -> None:
        super().__init__(source)
        self.render_calls = 0
        self.svg_calls = 0

    def render(self) -> Image.Image:
        self.render_calls += 1
        return super().render()

    def render_svg(self, background: str = "white") -> bytes:
        self.svg_calls += 1
        return super().render_svg(background)


class RecordingCapturer(SnapshotCapturer):
    """SnapshotCapturer that remembers the arguments of every capture."""

    def __init__(self) -> None:
        super().__init__()
        self.calls: List[Dict[str, Any]] = []

    def capture(self, region, encoding, **kwargs):
        self.calls.append({"region": region, "encoding": encoding, **kwargs})
        return super().capture(region, encoding, **kwargs)


@pytest.fixture
def sample_image() -> Image.Image:
    return make_image()


@pytest.fixture
def image_region(sample_image: Image.Image) -> CountingRegion:
    return CountingRegion(sample_image)


@pytest.fixture
def image_file(tmp_path, sample_image: Image.Image) -> str:
    path = tmp_path / "plan.png"
    sample_image.save(path)
    return str(path)


@pytest.fixture
def facing_png(tmp_path) -> str:
    path = tmp_path / "north.png"
    Image.new("RGB", (64, 64), "blue").save(path)
    return str(path)


@pytest.fixture
def logo_png(tmp_path) -> str:
    path = tmp_path / "logo.png"
    Image.new("RGB", (120, 40), "green").save(path)
    return str(path)


@pytest.fixture
def sample_pdf(tmp_path) -> str:
    path = tmp_path / "source.pdf"
    c = canvas.Canvas(str(path), pagesize=(400, 300))
    c.drawString(50, 150, "first page")
    c.showPage()
    c.drawString(50, 150, "second page")
    c.showPage()
    c.save()
    return str(path)


# ============================================================================
# Settings
# ============================================================================

@pytest.fixture
def out_dir(tmp_path) -> str:
    path = tmp_path / "out"
    path.mkdir()
    return str(path)


@pytest.fixture
def errors() -> List[BaseException]:
    return []


@pytest.fixture
def settings(out_dir: str, errors: List[BaseException]) -> ExportSettings:
    return ExportSettings(output_dir=out_dir, on_error=errors.append)


def run(coro):
    return asyncio.run(coro)
