import logging
import sys
from datetime import date
from itertools import combinations
from pathlib import Path

import numpy as np

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from snapstation.models import PAPER_PALETTE, CaptureConfiguration, Frame, Layout
from snapstation.rendering import (
    DEFAULT_HIGHLIGHT,
    CompositeRenderer,
    footer_anchor,
    format_footer_date,
)

COLORS = [(255, 0, 0), (0, 255, 0), (0, 0, 255), (0, 255, 255), (255, 0, 255), (255, 255, 0)]


def make_frames(count: int, width: int = 40, height: int = 30) -> list[Frame]:
    frames = []
    for index in range(count):
        pixels = np.zeros((height, width, 3), dtype=np.uint8)
        pixels[:] = COLORS[index % len(COLORS)]
        frames.append(Frame(pixels=pixels, sequence_index=index))
    return frames


def make_renderer() -> CompositeRenderer:
    return CompositeRenderer(logger=logging.getLogger("snapstation-tests"))


def pixel(image: np.ndarray, x: float, y: float) -> tuple[int, ...]:
    return tuple(int(v) for v in image[int(y), int(x)])


def test_render_places_frames_in_their_zones():
    config = CaptureConfiguration(shot_count=4, layout=Layout.GRID, target_ratio=4 / 3)

    composite = make_renderer().render(make_frames(4), config, PAPER_PALETTE["white"], today=date(2026, 10, 19))

    assert composite is not None
    assert composite.base_image.shape == (280, 180, 3)
    for zone, color in zip(composite.layout.zones, COLORS):
        cx, cy = zone.center
        assert pixel(composite.base_image, cx, cy) == color
    assert pixel(composite.base_image, 5, 5) == PAPER_PALETTE["white"].bgr


def test_render_without_frames_is_a_no_op():
    config = CaptureConfiguration(shot_count=4, layout=Layout.GRID)

    assert make_renderer().render([], config, PAPER_PALETTE["white"]) is None


def test_render_refuses_mismatched_frame_count():
    config = CaptureConfiguration(shot_count=4, layout=Layout.GRID)

    assert make_renderer().render(make_frames(3), config, PAPER_PALETTE["white"]) is None


def test_highlight_only_in_base_image():
    config = CaptureConfiguration(shot_count=4, layout=Layout.GRID)

    composite = make_renderer().render(make_frames(4), config, PAPER_PALETTE["white"], selected=1)

    zone = composite.layout.zones[1]
    assert pixel(composite.base_image, zone.x, zone.y) == DEFAULT_HIGHLIGHT
    assert pixel(composite.clean_image, zone.x, zone.y) == COLORS[1]
    # photo interior stays visible under the stroke
    cx, cy = zone.center
    assert pixel(composite.base_image, cx, cy) == COLORS[1]
    # other slots are not outlined
    other = composite.layout.zones[0]
    assert pixel(composite.base_image, other.x, other.y) == COLORS[0]


def test_footer_text_contrasts_with_paper():
    config = CaptureConfiguration(shot_count=1, layout=Layout.STRIP)
    renderer = make_renderer()

    dark = renderer.render(make_frames(1), config, PAPER_PALETTE["black"])
    light = renderer.render(make_frames(1), config, PAPER_PALETTE["white"])

    footer_top = dark.height - 120
    assert dark.base_image[footer_top:].max() > 200
    assert light.base_image[footer_top:].min() < 60


def test_footer_date_format():
    assert format_footer_date(date(2026, 10, 19)) == "MONDAY, OCT 19, 2026"


def test_render_rebuilds_fresh_buffers():
    config = CaptureConfiguration(shot_count=4, layout=Layout.GRID)
    renderer = make_renderer()
    frames = make_frames(4)

    first = renderer.render(frames, config, PAPER_PALETTE["white"])
    second = renderer.render(frames, config, PAPER_PALETTE["white"], selected=0)

    assert first.base_image is not second.base_image
    assert np.array_equal(first.clean_image, second.clean_image)
    assert not np.array_equal(first.base_image, second.base_image)


def test_six_shot_scaled_render_keeps_zones_and_branding_consistent():
    config = CaptureConfiguration(shot_count=6, layout=Layout.GRID)

    composite = make_renderer().render(make_frames(6, 1280, 960), config, PAPER_PALETTE["white"])

    layout = composite.layout
    assert composite.scale_factor < 1.0
    assert composite.base_image.shape == (layout.height, layout.width, 3)
    for zone, color in zip(layout.zones, COLORS):
        assert pixel(composite.base_image, *zone.center) == color
        assert pixel(composite.base_image, zone.x + zone.w - 1, zone.y + zone.h - 1) == color
    for a, b in combinations(layout.zones, 2):
        assert a.x + a.w <= b.x or b.x + b.w <= a.x or a.y + a.h <= b.y or b.y + b.h <= a.y

    anchor = footer_anchor(layout)
    lowest_zone_bottom = max(z.y + z.h for z in layout.zones)
    assert anchor.center_x == layout.width // 2
    assert lowest_zone_bottom < anchor.title_baseline - anchor.title_px
    assert anchor.title_baseline < anchor.date_baseline < layout.height
    assert anchor.title_px == round(32 * composite.scale_factor)
