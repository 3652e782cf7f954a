"""Process-wide logging configuration."""

from __future__ import annotations

import logging
import sys

from swgoh_sync.settings import Settings

_JSON_FORMAT = (
    '{"time":"%(asctime)s","level":"%(levelname)s","logger":"%(name)s","message":"%(message)s"}'
)
_LOCAL_FORMAT = "%(levelname)s %(name)s: %(message)s"


def configure_logging(settings: Settings) -> None:
    """Structured lines for production, human-readable output locally."""
    level = logging.getLevelName(settings.log_level.strip().upper() or "INFO")
    if not isinstance(level, int):
        level = logging.INFO
    logging.basicConfig(
        level=level,
        format=_JSON_FORMAT if settings.is_production else _LOCAL_FORMAT,
        stream=sys.stderr,
        force=True,
    )
    logging.getLogger("httpx").setLevel(logging.WARNING)
