"""Logging helpers shared across geobound modules."""
from __future__ import annotations
import logging
import os

_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"


def resolve_level(level: str | int | None = None) -> int:
    """Map *level* (or ``GEOBOUND_LOG_LEVEL`` when ``None``) to a logging level."""

    if isinstance(level, int):
        return level
    level_name = str(level or os.getenv("GEOBOUND_LOG_LEVEL", "INFO")).upper()
    return getattr(logging, level_name, logging.INFO)


def configure_root_logger(*, level: str | int | None = None) -> None:
    """Configure the root logger with the shared formatter and level.

    Calling this more than once only updates the level; the stream handler is
    installed a single time.
    """

    resolved_level = resolve_level(level)
    root = logging.getLogger()
    root.setLevel(resolved_level)
    if not any(isinstance(handler, logging.StreamHandler) for handler in root.handlers):
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(_FORMAT))
        root.addHandler(handler)
    # urllib3 connection chatter drowns the per-node progress at DEBUG
    logging.getLogger("urllib3").setLevel(max(resolved_level, logging.INFO))
