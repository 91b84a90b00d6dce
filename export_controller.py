"""
export_controller.py

Runs one export at a time through

    IDLE -> CAPTURING -> RESOLVING -> RENDERING -> COMPOSING -> DELIVERING -> DONE | FAILED

Image formats go straight from CAPTURING to COMPOSING.

run()/execute() never raise: failures are logged, handed to settings.on_error
and returned as a failed CompositionResult. Once started, an export runs to
completion unless its task is cancelled; cancellation marks it FAILED and
frees the controller before CancelledError propagates. A second export
requested while one is in flight is rejected with ExportInProgressError.
"""

from __future__ import annotations

import asyncio
from dataclasses import replace
from enum import Enum
from typing import Any, Mapping, Optional, Type

import geometry
from composer import DocumentComposer
from delivery import open_preview, save_artifact
from errors import (
    CaptureError,
    CompositionError,
    ExportError,
    ExportInProgressError,
    GeometryError,
    RenderError,
    UnsupportedFormatError,
)
from logger import get_logger
from models import (
    CompositionResult,
    ExportFormat,
    ExportMode,
    ExportRequest,
    ExportSettings,
    OverlayFragments,
)
from overlays import Renderable, default_footer, default_side_panel, render_overlays, resolve_facing_image
from snapshot import CaptureRegion, SnapshotCapturer

LOGGER = get_logger(__name__)


class ExportState(Enum):
    IDLE = "idle"
    CAPTURING = "capturing"
    RESOLVING = "resolving"
    RENDERING = "rendering"
    COMPOSING = "composing"
    DELIVERING = "delivering"
    DONE = "done"
    FAILED = "failed"


# Error type an unexpected exception is wrapped in, by the stage it escaped from
_STAGE_ERRORS: Mapping[ExportState, Type[ExportError]] = {
    ExportState.IDLE: ExportError,
    ExportState.CAPTURING: CaptureError,
    ExportState.RESOLVING: GeometryError,
    ExportState.RENDERING: RenderError,
    ExportState.COMPOSING: CompositionError,
    ExportState.DELIVERING: CompositionError,
}


def normalize_error(exc: BaseException, state: ExportState) -> ExportError:
    if isinstance(exc, ExportError):
        return exc
    wrapper = _STAGE_ERRORS.get(state, ExportError)
    err = wrapper(str(exc) or exc.__class__.__name__)
    err.__cause__ = exc
    return err


class ExportController:
    def __init__(
        self,
        region: Optional[CaptureRegion],
        settings: Optional[ExportSettings] = None,
        *,
        data: Optional[Mapping[str, Any]] = None,
        side_panel: Optional[Renderable] = None,
        footer: Optional[Renderable] = None,
        capturer: Optional[SnapshotCapturer] = None,
        composer: Optional[DocumentComposer] = None,
    ) -> None:
        self.region = region
        self.settings = settings or ExportSettings()
        self.data: Mapping[str, Any] = data or {}
        self.side_panel = side_panel or default_side_panel
        self.footer = footer or default_footer
        self.capturer = capturer or SnapshotCapturer()
        self.composer = composer or DocumentComposer()

        self.page_format = self.settings.default_page_format
        self.print_format = self.settings.default_print_format

        self._state = ExportState.IDLE
        self._busy = False

    # -----------------------------------------------------------------
    # Selection
    # -----------------------------------------------------------------

    @property
    def state(self) -> ExportState:
        return self._state

    @property
    def busy(self) -> bool:
        return self._busy

    def select_page_format(self, name: str) -> None:
        key = (name or "").strip().lower()
        if key not in self.settings.page_formats:
            raise UnsupportedFormatError(f"Unsupported page format: {name}")
        self.page_format = key

    def select_print_format(self, label: str) -> None:
        opt = self.settings.find_print_format(label)
        if opt is None or opt.disabled:
            raise UnsupportedFormatError(f"Unsupported format: {label}")
        self.print_format = opt.label

    def build_request(self, mode: ExportMode | str = ExportMode.DOWNLOAD) -> ExportRequest:
        opt = self.settings.find_print_format(self.print_format)
        if opt is None or opt.disabled:
            raise UnsupportedFormatError(f"Unsupported format: {self.print_format}")
        return ExportRequest(
            export_format=opt.export_format,
            page_format=self.page_format,
            file_name=self.settings.file_name,
            mode=ExportMode.coerce(mode),
        )

    # -----------------------------------------------------------------
    # Pipeline
    # -----------------------------------------------------------------

    async def execute(self, mode: ExportMode | str = ExportMode.DOWNLOAD) -> CompositionResult:
        """Export the current selection, either to disk or as a preview."""
        try:
            request = self.build_request(mode)
        except ExportError as exc:
            fallback = mode if isinstance(mode, ExportMode) else ExportMode.DOWNLOAD
            return self._report(exc, fallback, set_state=False)
        return await self.run(request)

    async def run(self, request: ExportRequest) -> CompositionResult:
        if self._busy:
            return self._report(
                ExportInProgressError("An export is already in progress."), request.mode, set_state=False
            )

        self._busy = True
        self._set_state(ExportState.IDLE)
        try:
            # Checked before any capture work is scheduled
            if self.region is None or not self.region.is_attached():
                raise CaptureError()
            page_format = (request.page_format or "").strip().lower()
            if page_format not in self.settings.page_formats:
                raise UnsupportedFormatError(f"Unsupported page format: {request.page_format}")

            result = await self._run_stages(replace(request, page_format=page_format))
        except asyncio.CancelledError:
            LOGGER.warning("Export cancelled during %s", self._state.value)
            self._busy = False
            self._set_state(ExportState.FAILED)
            raise
        except Exception as exc:
            err = normalize_error(exc, self._state)
            self._busy = False
            return self._report(err, request.mode)
        finally:
            self._busy = False

        self._set_state(ExportState.DONE)
        return result

    async def _run_stages(self, request: ExportRequest) -> CompositionResult:
        fmt = request.export_format
        composed = fmt is ExportFormat.COMPOSED_DOCUMENT

        self._set_state(ExportState.CAPTURING)
        snapshot = await self.capturer.capture(
            self.region,
            self.composer.snapshot_encoding(fmt),
            # composed documents always embed a fresh, full quality capture
            quality=1.0 if composed else self.settings.quality,
            background=self.settings.background,
            cache_bust=composed,
        )

        layout = None
        fragments: Optional[OverlayFragments] = None
        facing_ref = None
        if composed:
            self._set_state(ExportState.RESOLVING)
            layout = geometry.resolve(request.page_format, snapshot.dimensions)

            self._set_state(ExportState.RENDERING)
            fragments = render_overlays(
                self.side_panel,
                self.footer,
                self.data,
                request.page_format,
                self.settings.logo_url,
            )
            facing_ref = resolve_facing_image(self.settings.overlay_metadata(self.data))

        self._set_state(ExportState.COMPOSING)
        artifact = await self.composer.compose(
            fmt,
            snapshot,
            geometry=layout,
            overlays=fragments,
            facing_ref=facing_ref,
            title=request.file_name,
        )

        self._set_state(ExportState.DELIVERING)
        if request.mode is ExportMode.PREVIEW:
            handle = await open_preview(artifact, request.file_name)
            return CompositionResult(ok=True, mode=request.mode, preview=handle)

        path = await save_artifact(artifact, self.settings.output_dir, request.file_name)
        return CompositionResult(ok=True, mode=request.mode, path=path)

    # -----------------------------------------------------------------
    # Reporting
    # -----------------------------------------------------------------

    def _set_state(self, state: ExportState) -> None:
        self._state = state
        LOGGER.debug("Export state -> %s", state.value)
        callback = self.settings.on_state_change
        if callback is not None:
            try:
                callback(state)
            except Exception:
                LOGGER.exception("on_state_change handler failed")

    def _report(self, err: ExportError, mode: ExportMode, set_state: bool = True) -> CompositionResult:
        if set_state:
            self._set_state(ExportState.FAILED)

        handler = self.settings.on_error
        if handler is None:
            LOGGER.error("Printing failed: %s", err, exc_info=err)
        else:
            LOGGER.error("Printing failed: %s", err)
            try:
                handler(err)
            except Exception:
                LOGGER.exception("on_error handler failed")

        return CompositionResult(ok=False, mode=mode, error=err)
