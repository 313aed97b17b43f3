"""Composite rendering: photos, paper, branding footer and selection highlight."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date
from typing import Optional, Sequence, Tuple

import cv2
import numpy as np

from snapstation.layout import compute_layout
from snapstation.models import (
    CaptureConfiguration,
    Composite,
    CompositeLayout,
    Frame,
    PaperColor,
    SlotZone,
)

TITLE_FONT_PX = 32
DATE_FONT_PX = 18
TITLE_BASELINE_OFFSET = 60
DATE_BASELINE_OFFSET = 25
HIGHLIGHT_STROKE = 10

LIGHT_TITLE = (255, 255, 255)
LIGHT_DATE = (204, 204, 204)
DARK_TITLE = (17, 17, 17)
DARK_DATE = (102, 102, 102)
DEFAULT_HIGHLIGHT = (0, 204, 255)

_FONT = cv2.FONT_HERSHEY_DUPLEX


@dataclass(frozen=True)
class FooterAnchor:
    """Baselines (y) and horizontal centre of the two branding lines."""

    center_x: int
    title_baseline: int
    date_baseline: int
    title_px: int
    date_px: int


def footer_anchor(layout: CompositeLayout) -> FooterAnchor:
    scale = layout.scale_factor
    return FooterAnchor(
        center_x=layout.width // 2,
        title_baseline=layout.height - int(round(TITLE_BASELINE_OFFSET * scale)),
        date_baseline=layout.height - int(round(DATE_BASELINE_OFFSET * scale)),
        title_px=max(1, int(round(TITLE_FONT_PX * scale))),
        date_px=max(1, int(round(DATE_FONT_PX * scale))),
    )


def format_footer_date(day: date) -> str:
    return day.strftime("%A, %b %d, %Y").upper()


class CompositeRenderer:
    """Render a frame set into a single printable composite."""

    def __init__(
        self,
        *,
        brand_text: str = "SNAPSTATION.IO",
        highlight_color: Tuple[int, int, int] = DEFAULT_HIGHLIGHT,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self.brand_text = brand_text
        self.highlight_color = highlight_color
        self.logger = logger or logging.getLogger("snapstation.rendering")

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def render(
        self,
        frames: Sequence[Frame],
        config: CaptureConfiguration,
        paper: PaperColor,
        *,
        selected: Optional[int] = None,
        today: Optional[date] = None,
    ) -> Optional[Composite]:
        """Build a fresh composite, or return ``None`` when there is nothing to draw.

        ``clean_image`` is the full render without the selection highlight;
        ``base_image`` is the same render with the highlight stroked on top of
        slot ``selected``.
        """
        frames = list(frames)
        if not frames:
            self.logger.debug("Skipping composite rebuild: no frames captured yet")
            return None
        if len(frames) != config.shot_count:
            self.logger.warning(
                "Skipping composite rebuild: %s frames for a %s-shot configuration",
                len(frames),
                config.shot_count,
            )
            return None

        first = frames[0]
        layout = compute_layout(config.shot_count, config.layout, first.width, first.height)
        self.logger.debug(
            "Composite geometry %sx%s (natural %sx%s, scale %.4f, %s cols x %s rows)",
            layout.width,
            layout.height,
            layout.natural_width,
            layout.natural_height,
            layout.scale_factor,
            layout.columns,
            layout.rows,
        )

        canvas = np.full((layout.height, layout.width, 3), paper.bgr, dtype=np.uint8)
        for frame, zone in zip(frames, layout.zones):
            self._draw_frame(canvas, frame, zone)

        self._draw_footer(canvas, layout, paper, today or date.today())

        clean = canvas.copy()
        if selected is not None and 0 <= selected < len(layout.zones):
            self._draw_highlight(canvas, layout.zones[selected], layout.scale_factor)

        return Composite(layout=layout, base_image=canvas, clean_image=clean)

    # ------------------------------------------------------------------
    # Drawing helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _draw_frame(canvas: np.ndarray, frame: Frame, zone: SlotZone) -> None:
        if zone.w <= 0 or zone.h <= 0:
            return
        pixels = frame.pixels
        if pixels.shape[1] != zone.w or pixels.shape[0] != zone.h:
            pixels = cv2.resize(pixels, (zone.w, zone.h), interpolation=cv2.INTER_AREA)
        canvas[zone.y:zone.y + zone.h, zone.x:zone.x + zone.w] = pixels[:, :, :3]

    def _draw_highlight(self, canvas: np.ndarray, zone: SlotZone, scale_factor: float) -> None:
        thickness = max(1, int(round(HIGHLIGHT_STROKE * scale_factor)))
        cv2.rectangle(
            canvas,
            (zone.x, zone.y),
            (zone.x + zone.w - 1, zone.y + zone.h - 1),
            self.highlight_color,
            thickness,
        )

    def _draw_footer(
        self,
        canvas: np.ndarray,
        layout: CompositeLayout,
        paper: PaperColor,
        today: date,
    ) -> None:
        anchor = footer_anchor(layout)
        title_color = LIGHT_TITLE if paper.is_dark else DARK_TITLE
        date_color = LIGHT_DATE if paper.is_dark else DARK_DATE

        title_thickness = max(1, int(round(3 * layout.scale_factor)))
        date_thickness = 1
        self._draw_centered_text(
            canvas,
            self.brand_text,
            anchor.center_x,
            anchor.title_baseline,
            anchor.title_px,
            title_color,
            title_thickness,
        )
        self._draw_centered_text(
            canvas,
            format_footer_date(today),
            anchor.center_x,
            anchor.date_baseline,
            anchor.date_px,
            date_color,
            date_thickness,
        )

    @staticmethod
    def _draw_centered_text(
        canvas: np.ndarray,
        text: str,
        center_x: int,
        baseline: int,
        pixel_height: int,
        color: Tuple[int, int, int],
        thickness: int,
    ) -> None:
        if not text:
            return
        font_scale = cv2.getFontScaleFromHeight(_FONT, pixel_height, thickness)
        (text_width, _), _ = cv2.getTextSize(text, _FONT, font_scale, thickness)
        origin = (int(center_x - text_width / 2), int(baseline))
        cv2.putText(canvas, text, origin, _FONT, font_scale, color, thickness, cv2.LINE_AA)


__all__ = ["CompositeRenderer", "FooterAnchor", "footer_anchor", "format_footer_date"]
