"""
SnapStation photo booth controller.
Owns the session state and wires capture, layout, rendering, filtering and export.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from datetime import date
from pathlib import Path
from typing import Callable, Optional, Tuple, Union

import numpy as np
from dotenv import load_dotenv

from snapstation.capture import (
    CaptureBusyError,
    CaptureOrchestrator,
    CaptureSource,
    CaptureTiming,
    LoggingNavigator,
    Navigator,
    OpenCVCaptureSource,
)
from snapstation.config import Config
from snapstation.export import ExportSink, FileExportSink
from snapstation.filters import apply_filter
from snapstation.interaction import InteractionStateMachine, TapOutcome, display_to_buffer
from snapstation.models import (
    DEFAULT_PAPER,
    CaptureConfiguration,
    Composite,
    Facing,
    FilterId,
    FrameSet,
    Layout,
    PaperColor,
    RetakePending,
    paper_by_name,
)
from snapstation.rendering import CompositeRenderer

# Load environment variables
load_dotenv()


@dataclass
class BoothState:
    """Everything the booth knows about the current session."""

    config: CaptureConfiguration
    paper: PaperColor
    facing: Facing
    frames: FrameSet = field(default_factory=FrameSet)
    filter_id: FilterId = FilterId.NONE
    composite: Optional[Composite] = None
    dirty: bool = True


class PhotoBooth:
    def __init__(
        self,
        source: CaptureSource,
        *,
        navigator: Navigator,
        export_sink: ExportSink,
        logger: logging.Logger,
        renderer: Optional[CompositeRenderer] = None,
        timing: Optional[CaptureTiming] = None,
        capture_config: Optional[CaptureConfiguration] = None,
        paper: PaperColor = DEFAULT_PAPER,
        facing: Facing = Facing.FRONT,
        filename_prefix: str = "snapstation",
        clock: Callable[[], float] = time.time,
        today: Callable[[], date] = date.today,
        on_countdown: Optional[Callable[[int], None]] = None,
        on_flash: Optional[Callable[[bool], None]] = None,
    ) -> None:
        self.source = source
        self.navigator = navigator
        self.export_sink = export_sink
        self.logger = logger
        self.renderer = renderer or CompositeRenderer(logger=logger)
        self.default_paper = paper
        self.filename_prefix = filename_prefix
        self.clock = clock
        self.today = today

        self.state = BoothState(
            config=capture_config or CaptureConfiguration(),
            paper=paper,
            facing=facing,
        )
        self.machine = InteractionStateMachine(logger)
        self.orchestrator = CaptureOrchestrator(
            source,
            navigator,
            timing=timing or CaptureTiming(),
            logger=logger,
            on_countdown=on_countdown,
            on_flash=on_flash,
        )

    @classmethod
    def from_config(
        cls,
        config: Config,
        *,
        logger: logging.Logger,
        source: Optional[CaptureSource] = None,
        navigator: Optional[Navigator] = None,
        export_sink: Optional[ExportSink] = None,
        on_countdown: Optional[Callable[[int], None]] = None,
        on_flash: Optional[Callable[[bool], None]] = None,
    ) -> "PhotoBooth":
        """Build a booth with OpenCV/file collaborators unless others are supplied."""
        camera = config.camera
        if source is None:
            source = OpenCVCaptureSource(
                {Facing.FRONT: camera.front_device, Facing.BACK: camera.back_device},
                ideal_width=camera.ideal_width,
                ideal_height=camera.ideal_height,
                logger=logger,
            )
        try:
            paper = paper_by_name(config.composite.paper)
        except KeyError:
            logger.warning("Unknown paper '%s'; using %s", config.composite.paper, DEFAULT_PAPER.name)
            paper = DEFAULT_PAPER

        capture = config.capture
        timing = config.timing
        return cls(
            source,
            navigator=navigator or LoggingNavigator(logger),
            export_sink=export_sink or FileExportSink(config.output.output_dir, logger=logger),
            logger=logger,
            renderer=CompositeRenderer(
                brand_text=config.composite.brand_text,
                highlight_color=config.composite.highlight_color,
                logger=logger,
            ),
            timing=CaptureTiming(
                countdown_seconds=timing.countdown_seconds,
                inter_shot_pause=timing.inter_shot_pause,
                flash_duration=timing.flash_duration,
            ),
            capture_config=CaptureConfiguration(
                shot_count=capture.shot_count,
                layout=capture.layout,
                target_ratio=capture.aspect_ratio,
            ),
            paper=paper,
            facing=capture.facing,
            filename_prefix=config.output.filename_prefix,
            on_countdown=on_countdown,
            on_flash=on_flash,
        )

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    @property
    def capturing(self) -> bool:
        return self.orchestrator.busy

    def start(self) -> None:
        """Acquire the camera and show the capture screen."""
        self.source.acquire(self.state.facing)
        self.navigator.show_capture_screen()

    def stop(self) -> None:
        self.source.release()

    # ------------------------------------------------------------------
    # Settings
    # ------------------------------------------------------------------

    def _ensure_idle(self, action: str) -> None:
        if self.capturing:
            raise CaptureBusyError(f"Cannot {action} while a capture is running")

    def set_format(self, shot_count: int, layout: Union[Layout, str]) -> None:
        """Change shot count and layout; the current frames are discarded."""
        self._ensure_idle("change the format")
        self._replace_config(
            CaptureConfiguration(
                shot_count=shot_count,
                layout=Layout(layout),
                target_ratio=self.state.config.target_ratio,
            )
        )

    def set_aspect_ratio(self, ratio: float) -> None:
        self._ensure_idle("change the aspect ratio")
        current = self.state.config
        self._replace_config(
            CaptureConfiguration(
                shot_count=current.shot_count,
                layout=current.layout,
                target_ratio=ratio,
            )
        )

    def _replace_config(self, config: CaptureConfiguration) -> None:
        self.state.config = config
        self.state.frames.clear()
        self.machine.reset()
        self.invalidate()
        self.logger.info(
            "Format set to %s shots, %s layout, ratio %.3f",
            config.shot_count,
            config.layout.value,
            config.target_ratio,
        )

    def set_paper(self, paper: Union[PaperColor, str]) -> None:
        if isinstance(paper, str):
            paper = paper_by_name(paper)
        self.state.paper = paper
        self.invalidate()

    def set_filter(self, filter_id: Union[FilterId, str]) -> None:
        # Filters apply at display time; the cached composite stays valid.
        self.state.filter_id = FilterId(filter_id)

    def switch_facing(self) -> Facing:
        """Toggle between front and back cameras."""
        self._ensure_idle("switch cameras")
        target = self.state.facing.toggled()
        self.source.acquire(target)
        self.state.facing = target
        return target

    # ------------------------------------------------------------------
    # Composite cache
    # ------------------------------------------------------------------

    def invalidate(self) -> None:
        self.state.dirty = True

    def rebuild(self) -> Optional[Composite]:
        """Re-render the composite from the current frames, paper and selection."""
        self.state.composite = self.renderer.render(
            self.state.frames,
            self.state.config,
            self.state.paper,
            selected=self.machine.selected_index,
            today=self.today(),
        )
        self.state.dirty = False
        return self.state.composite

    @property
    def composite(self) -> Optional[Composite]:
        if self.state.dirty:
            return self.rebuild()
        return self.state.composite

    def display_image(self) -> Optional[np.ndarray]:
        """Composite as shown on the review screen, highlight and filter included."""
        composite = self.composite
        if composite is None:
            return None
        return apply_filter(composite.base_image, self.state.filter_id)

    def export_image(self) -> Optional[np.ndarray]:
        composite = self.composite
        if composite is None:
            return None
        return apply_filter(composite.clean_image, self.state.filter_id)

    # ------------------------------------------------------------------
    # Capture
    # ------------------------------------------------------------------

    async def start_sequence(self) -> Optional[Composite]:
        """Run the full shot sequence, then rebuild and show the review screen.

        The previous composite is dropped before the first shot, so a failed or
        cancelled sequence leaves nothing to display or export.
        """
        self._ensure_idle("start a sequence")
        self.machine.reset()
        self.state.composite = None
        self.invalidate()
        await self.orchestrator.run_sequence(self.state.frames, self.state.config, self.state.facing)
        composite = self.rebuild()
        self.navigator.show_review_screen()
        return composite

    # ------------------------------------------------------------------
    # Review interaction
    # ------------------------------------------------------------------

    def handle_tap(
        self,
        x: float,
        y: float,
        display_size: Optional[Tuple[float, float]] = None,
    ) -> TapOutcome:
        """Apply a tap on the displayed composite.

        ``display_size`` is the ``(width, height)`` the composite is shown at;
        omit it when ``x``/``y`` are already buffer coordinates.
        """
        if self.capturing:
            return TapOutcome.IGNORED
        composite = self.composite
        if composite is None:
            return TapOutcome.IGNORED

        if display_size is not None:
            x, y = display_to_buffer(x, y, display_size, (composite.width, composite.height))

        outcome = self.machine.handle_tap(composite.layout.zones, self.state.frames, x, y)
        if outcome is not TapOutcome.IGNORED:
            self.invalidate()
        return outcome

    async def resolve_retake(self, accept: bool) -> TapOutcome:
        """Answer the retake prompt; accepting captures a replacement frame."""
        outcome = self.machine.resolve_confirmation(accept)
        if outcome is not TapOutcome.RETAKE:
            if outcome is TapOutcome.DECLINED:
                self.invalidate()
            return outcome

        state = self.machine.state
        assert isinstance(state, RetakePending)
        try:
            await self.orchestrator.retake(
                self.state.frames,
                state.index,
                self.state.config,
                self.state.facing,
            )
        finally:
            self.machine.retake_finished()
            self.invalidate()
            self.rebuild()
            self.navigator.show_review_screen()
        return outcome

    def export(self) -> Optional[Path]:
        image = self.export_image()
        if image is None:
            self.logger.warning("Nothing to export: no composite has been rendered")
            return None
        filename = f"{self.filename_prefix}-{int(self.clock() * 1000)}.png"
        return self.export_sink.export(image, filename)

    def back_to_capture(self) -> None:
        """Leave the review screen, resetting filter and paper to their defaults."""
        self.machine.reset()
        self.state.filter_id = FilterId.NONE
        self.state.paper = self.default_paper
        self.invalidate()
        self.navigator.show_capture_screen()


__all__ = ["BoothState", "PhotoBooth"]
