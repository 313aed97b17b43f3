"""Export sinks turning a finished composite into a file."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional, Protocol

import cv2
import numpy as np


class ExportSink(Protocol):
    def export(self, image: np.ndarray, suggested_filename: str) -> Optional[Path]: ...


class FileExportSink:
    """Write PNG-encoded composites into an output directory."""

    def __init__(self, output_dir: Path, *, logger: logging.Logger) -> None:
        self.output_dir = Path(output_dir)
        self.logger = logger

    def export(self, image: np.ndarray, suggested_filename: str) -> Optional[Path]:
        """Encode and write ``image``; failures are logged and return ``None``."""
        target = self.output_dir / Path(suggested_filename).name
        success, buffer = cv2.imencode(".png", image)
        if not success:
            self.logger.error("Failed to encode composite for %s", target)
            return None

        try:
            self.output_dir.mkdir(parents=True, exist_ok=True)
            target.write_bytes(buffer.tobytes())
        except OSError as exc:
            self.logger.error("Failed to write composite %s: %s", target, exc)
            return None

        self.logger.info("Exported composite to %s", target)
        return target


__all__ = ["ExportSink", "FileExportSink"]
