"""
main.py

Entry point for the layout printer.

Exports an image file (or one page of a PDF) as a JPEG, an SVG or a composed
PDF sheet with the stock title-block side panel and notes footer.
"""

import argparse
import asyncio
import os
import sys
from typing import List, Optional

from config import load_data, load_settings
from errors import ExportError
from export_controller import ExportController
from logger import get_logger, set_verbosity
from models import ExportMode, ExportSettings
from panels import notes_footer, title_block_panel
from snapshot import CaptureRegion, ImageRegion, PdfPageRegion

LOGGER = get_logger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="layout-printer",
        description="Export an image or PDF page as JPEG, SVG or a composed PDF sheet",
    )
    parser.add_argument("source", help="Image file or PDF to export")
    parser.add_argument("--page", type=int, default=1, help="PDF page number (1-based)")
    parser.add_argument("--dpi", type=int, default=96, help="Rasterization DPI for PDF sources")
    parser.add_argument("--format", dest="print_format", help="Print format label (jpeg, svg, pdf)")
    parser.add_argument("--page-format", help="Page format (a2, a3, a4, a5)")
    parser.add_argument("--file-name", help="Output file name without extension")
    parser.add_argument("--output-dir", help="Directory to write the export into")
    parser.add_argument("--config", help="Settings JSON file")
    parser.add_argument("--data", help="JSON object with title block fields, notes and facing code")
    parser.add_argument(
        "--preview",
        action="store_true",
        help="Write the export to a temp file and print its path (the caller deletes it)",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    return parser


def region_for(source: str, page: int = 1, dpi: int = 96) -> Optional[CaptureRegion]:
    if not os.path.exists(source):
        return None
    if os.path.splitext(source)[1].lower() == ".pdf":
        return PdfPageRegion(source, page_index=page - 1, dpi=dpi)
    return ImageRegion.from_path(source)


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    set_verbosity(args.verbose)

    overrides = {}
    if args.file_name:
        overrides["file_name"] = args.file_name
    if args.output_dir:
        overrides["output_dir"] = os.path.abspath(args.output_dir)

    try:
        settings = load_settings(args.config, **overrides) if args.config else ExportSettings(**overrides)
        data = load_data(args.data)
    except (OSError, ValueError, ExportError) as exc:
        LOGGER.error("Could not load configuration: %s", exc)
        return 1

    controller = ExportController(
        region_for(args.source, args.page, args.dpi),
        settings,
        data=data,
        side_panel=title_block_panel,
        footer=notes_footer,
    )
    try:
        if args.page_format:
            controller.select_page_format(args.page_format)
        if args.print_format:
            controller.select_print_format(args.print_format)
    except ExportError as exc:
        LOGGER.error("%s", exc)
        return 1

    mode = ExportMode.PREVIEW if args.preview else ExportMode.DOWNLOAD
    result = asyncio.run(controller.execute(mode))
    if not result:
        return 1

    if result.preview is not None:
        # the preview file is left in place for the viewer that opens it
        print(result.preview.path)
    else:
        print(result.path)
    return 0


if __name__ == "__main__":
    sys.exit(main())
