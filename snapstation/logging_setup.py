"""Logging for the kiosk: one log file plus an optional console echo."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional, Tuple, Union

from snapstation.config import LoggingSettings

LOG_FORMAT = "%(asctime)s - %(levelname)s - %(message)s"


def parse_level(level: Union[int, str]) -> int:
    if isinstance(level, int):
        return level
    return getattr(logging, str(level).upper(), logging.INFO)


def _open_log_file(path: Path) -> Tuple[Optional[logging.Handler], Optional[str]]:
    """Open ``path``, or the same file name in the working directory if that fails.

    The second item is a problem to report once logging is up.
    """
    problem = None
    for candidate in dict.fromkeys([path, Path.cwd() / path.name]):
        try:
            candidate.parent.mkdir(parents=True, exist_ok=True)
            return logging.FileHandler(candidate, encoding="utf-8"), problem
        except OSError as exc:
            problem = f"Cannot write log file '{candidate}': {exc}"
    return None, problem


def configure_logging(
    settings: LoggingSettings = LoggingSettings(),
    logger_name: str = "snapstation",
) -> logging.Logger:
    """Install root handlers described by ``settings`` and return the booth logger."""
    level = parse_level(settings.level)

    handlers: list[logging.Handler] = []
    problem = None
    if settings.log_file:
        file_handler, problem = _open_log_file(Path(settings.log_file))
        if file_handler is not None:
            handlers.append(file_handler)
    if settings.console:
        handlers.append(logging.StreamHandler())
    if not handlers:
        handlers.append(logging.NullHandler())

    formatter = logging.Formatter(LOG_FORMAT)
    for handler in handlers:
        handler.setFormatter(formatter)
    logging.basicConfig(level=level, handlers=handlers, force=True)

    logger = logging.getLogger(logger_name)
    logger.setLevel(level)
    if problem:
        logger.warning(problem)
    return logger


__all__ = ["LOG_FORMAT", "configure_logging", "parse_level"]
