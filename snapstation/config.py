"""Configuration dataclasses and loading helpers for the photo booth."""

from __future__ import annotations

import json
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Mapping, Optional, Tuple

from snapstation.models import Facing, Layout

DEFAULT_ASPECT_RATIO = 4 / 3
ASPECT_RATIO_PRESETS: Tuple[Tuple[str, float], ...] = (
    ("4:3", 4 / 3),
    ("3:4", 3 / 4),
    ("1:1", 1.0),
    ("16:9", 16 / 9),
)


def _parse_bool(value: Any, default: bool) -> bool:
    """Parse truthy/falsy values from multiple input types."""
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        return value.strip().lower() in {"1", "true", "yes", "on"}
    if isinstance(value, (int, float)):
        return value != 0
    return default


def _parse_positive_int(value: Any, default: int) -> int:
    """Parse a positive integer with fallback to default."""
    try:
        parsed = int(value)
    except (TypeError, ValueError):
        return default
    return parsed if parsed > 0 else default


def _parse_non_negative_int(value: Any, default: int) -> int:
    try:
        parsed = int(value)
    except (TypeError, ValueError):
        return default
    return parsed if parsed >= 0 else default


def _parse_float(value: Any, default: float) -> float:
    """Parse a non-negative floating point number with fallback to default."""
    try:
        parsed = float(value)
    except (TypeError, ValueError):
        return default
    return parsed if parsed >= 0 else default


def _parse_aspect_ratio(value: Any, default: float = DEFAULT_ASPECT_RATIO) -> float:
    """Parse ``"W:H"`` strings or plain numbers into a width/height ratio."""
    if isinstance(value, bool) or value is None:
        return default
    if isinstance(value, (int, float)):
        return float(value) if value > 0 else default
    if isinstance(value, str):
        text = value.strip()
        if ":" in text:
            width_text, _, height_text = text.partition(":")
            try:
                width = float(width_text)
                height = float(height_text)
            except ValueError:
                return default
            if width <= 0 or height <= 0:
                return default
            return width / height
        try:
            parsed = float(text)
        except ValueError:
            return default
        return parsed if parsed > 0 else default
    return default


def _parse_color(value: Any, default: Tuple[int, int, int]) -> Tuple[int, int, int]:
    """Parse hex strings or RGB triplets into clamped BGR tuples."""
    if isinstance(value, (list, tuple)):
        if len(value) != 3:
            return default
        try:
            r, g, b = (max(0, min(255, int(channel))) for channel in value)
        except (TypeError, ValueError):
            return default
        return (b, g, r)

    if isinstance(value, str):
        hex_value = value.strip().lstrip("#")
        if len(hex_value) == 3:
            hex_value = "".join(ch * 2 for ch in hex_value)
        if len(hex_value) == 6:
            try:
                r = int(hex_value[0:2], 16)
                g = int(hex_value[2:4], 16)
                b = int(hex_value[4:6], 16)
            except ValueError:
                return default
            return (b, g, r)

    return default


def _parse_layout(value: Any, default: Layout) -> Layout:
    try:
        return Layout(str(value).strip().lower())
    except ValueError:
        return default


def _parse_facing(value: Any, default: Facing) -> Facing:
    text = str(value).strip().lower()
    if text == "user":
        return Facing.FRONT
    if text == "environment":
        return Facing.BACK
    try:
        return Facing(text)
    except ValueError:
        return default


@dataclass(frozen=True)
class CaptureSettings:
    """Initial shot count, layout and framing of a session."""

    shot_count: int = 4
    layout: Layout = Layout.GRID
    aspect_ratio: float = DEFAULT_ASPECT_RATIO
    facing: Facing = Facing.FRONT


@dataclass(frozen=True)
class TimingSettings:
    """Countdown and pause durations of the capture sequence."""

    countdown_seconds: int = 3
    inter_shot_pause: float = 0.8
    flash_duration: float = 0.15


@dataclass(frozen=True)
class CameraSettings:
    """Device mapping and requested resolution for the live source."""

    front_device: int = 0
    back_device: int = 1
    ideal_width: int = 1280
    ideal_height: int = 720

    def device_for(self, facing: Facing) -> int:
        return self.front_device if facing is Facing.FRONT else self.back_device


@dataclass(frozen=True)
class CompositeSettings:
    """Paper, branding and highlight appearance of the composite."""

    paper: str = "white"
    brand_text: str = "SNAPSTATION.IO"
    highlight_color: Tuple[int, int, int] = (0, 204, 255)


@dataclass(frozen=True)
class OutputSettings:
    output_dir: Path = Path("output")
    filename_prefix: str = "snapstation"


@dataclass(frozen=True)
class LoggingSettings:
    level: str = "INFO"
    log_file: Optional[Path] = Path("logs") / "snapstation.log"
    console: bool = True


@dataclass(frozen=True)
class Config:
    """Root configuration object for the photo booth."""

    capture: CaptureSettings = field(default_factory=CaptureSettings)
    timing: TimingSettings = field(default_factory=TimingSettings)
    camera: CameraSettings = field(default_factory=CameraSettings)
    composite: CompositeSettings = field(default_factory=CompositeSettings)
    output: OutputSettings = field(default_factory=OutputSettings)
    logging: LoggingSettings = field(default_factory=LoggingSettings)


def _parse_capture(raw: Mapping[str, Any]) -> CaptureSettings:
    default = CaptureSettings()
    if not isinstance(raw, Mapping):
        return default
    return CaptureSettings(
        shot_count=_parse_positive_int(raw.get("shot_count"), default.shot_count),
        layout=_parse_layout(raw.get("layout"), default.layout),
        aspect_ratio=_parse_aspect_ratio(raw.get("aspect_ratio"), default.aspect_ratio),
        facing=_parse_facing(raw.get("facing"), default.facing),
    )


def _parse_timing(raw: Mapping[str, Any]) -> TimingSettings:
    default = TimingSettings()
    if not isinstance(raw, Mapping):
        return default
    return TimingSettings(
        countdown_seconds=_parse_non_negative_int(raw.get("countdown_seconds"), default.countdown_seconds),
        inter_shot_pause=_parse_float(raw.get("inter_shot_pause"), default.inter_shot_pause),
        flash_duration=_parse_float(raw.get("flash_duration"), default.flash_duration),
    )


def _parse_camera(raw: Mapping[str, Any]) -> CameraSettings:
    default = CameraSettings()
    if not isinstance(raw, Mapping):
        return default
    return CameraSettings(
        front_device=_parse_non_negative_int(raw.get("front_device"), default.front_device),
        back_device=_parse_non_negative_int(raw.get("back_device"), default.back_device),
        ideal_width=_parse_positive_int(raw.get("ideal_width"), default.ideal_width),
        ideal_height=_parse_positive_int(raw.get("ideal_height"), default.ideal_height),
    )


def _parse_composite(raw: Mapping[str, Any]) -> CompositeSettings:
    default = CompositeSettings()
    if not isinstance(raw, Mapping):
        return default
    return CompositeSettings(
        paper=str(raw.get("paper", default.paper)).strip().lower() or default.paper,
        brand_text=str(raw.get("brand_text", default.brand_text)),
        highlight_color=_parse_color(raw.get("highlight_color"), default.highlight_color),
    )


def _parse_output(raw: Mapping[str, Any]) -> OutputSettings:
    default = OutputSettings()
    if not isinstance(raw, Mapping):
        return default
    prefix = str(raw.get("filename_prefix", default.filename_prefix)).strip()
    return OutputSettings(
        output_dir=Path(raw.get("output_dir", default.output_dir)),
        filename_prefix=prefix or default.filename_prefix,
    )


def _parse_logging(raw: Mapping[str, Any]) -> LoggingSettings:
    default = LoggingSettings()
    if not isinstance(raw, Mapping):
        return default
    log_file: Optional[Path] = default.log_file
    if "log_file" in raw:
        log_file = Path(raw["log_file"]) if raw["log_file"] else None
    return LoggingSettings(
        level=str(raw.get("level", default.level)).upper(),
        log_file=log_file,
        console=_parse_bool(raw.get("console"), default.console),
    )


def _load_env_config(env: Mapping[str, str]) -> Config:
    """Configuration derived from ``SNAPSTATION_*`` environment variables."""
    capture = _parse_capture({
        "shot_count": env.get("SNAPSTATION_SHOT_COUNT"),
        "layout": env.get("SNAPSTATION_LAYOUT"),
        "aspect_ratio": env.get("SNAPSTATION_ASPECT_RATIO"),
        "facing": env.get("SNAPSTATION_FACING"),
    })
    timing = _parse_timing({
        "countdown_seconds": env.get("SNAPSTATION_COUNTDOWN_SECONDS"),
        "inter_shot_pause": env.get("SNAPSTATION_INTER_SHOT_PAUSE"),
        "flash_duration": env.get("SNAPSTATION_FLASH_DURATION"),
    })
    camera = _parse_camera({
        "front_device": env.get("SNAPSTATION_FRONT_DEVICE"),
        "back_device": env.get("SNAPSTATION_BACK_DEVICE"),
        "ideal_width": env.get("SNAPSTATION_CAMERA_WIDTH"),
        "ideal_height": env.get("SNAPSTATION_CAMERA_HEIGHT"),
    })
    composite_raw = {"paper": env.get("SNAPSTATION_PAPER", "white")}
    if env.get("SNAPSTATION_BRAND_TEXT"):
        composite_raw["brand_text"] = env["SNAPSTATION_BRAND_TEXT"]
    if env.get("SNAPSTATION_HIGHLIGHT_COLOR"):
        composite_raw["highlight_color"] = env["SNAPSTATION_HIGHLIGHT_COLOR"]
    output = _parse_output({
        "output_dir": env.get("SNAPSTATION_OUTPUT_DIR", "output"),
        "filename_prefix": env.get("SNAPSTATION_FILENAME_PREFIX", "snapstation"),
    })
    logging_raw: dict[str, Any] = {
        "level": env.get("SNAPSTATION_LOG_LEVEL", "INFO"),
        "console": env.get("SNAPSTATION_LOG_CONSOLE", "true"),
    }
    if "SNAPSTATION_LOG_FILE" in env:
        logging_raw["log_file"] = env["SNAPSTATION_LOG_FILE"]

    return Config(
        capture=capture,
        timing=timing,
        camera=camera,
        composite=_parse_composite(composite_raw),
        output=output,
        logging=_parse_logging(logging_raw),
    )


def load_config(config_path: Path | str, env: Mapping[str, str] | None = None) -> Config:
    """Load configuration from a JSON file or environment defaults."""
    source_env = os.environ if env is None else env
    path = Path(config_path)

    if path.exists():
        with path.open("r", encoding="utf-8") as handle:
            data = json.load(handle)
        return Config(
            capture=_parse_capture(data.get("capture", {})),
            timing=_parse_timing(data.get("timing", {})),
            camera=_parse_camera(data.get("camera", {})),
            composite=_parse_composite(data.get("composite", {})),
            output=_parse_output(data.get("output", {})),
            logging=_parse_logging(data.get("logging", {})),
        )

    return _load_env_config(source_env)


__all__ = [
    "ASPECT_RATIO_PRESETS",
    "CameraSettings",
    "CaptureSettings",
    "CompositeSettings",
    "Config",
    "LoggingSettings",
    "OutputSettings",
    "TimingSettings",
    "load_config",
]
