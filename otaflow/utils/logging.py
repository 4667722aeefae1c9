"""Root logger setup for the ``otaflow`` command.

``OTAFLOW_LOG_LEVEL`` (name or number) overrides the level passed by the
caller; ``OTAFLOW_DEBUG`` switches to DEBUG when no explicit level is set.
"""

from __future__ import annotations

import logging
import os
from typing import Union

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"
LOG_DATEFMT = "%H:%M:%S"
_TRUTHY = {"1", "true", "yes", "on"}


def parse_level(value: Union[int, str, None], default: int = logging.INFO) -> int:
    """Translate ``"debug"``/``"10"``/``10`` into a logging level."""
    if isinstance(value, int):
        return value
    text = (value or "").strip().upper()
    if text.isdigit():
        return int(text)
    level = logging.getLevelName(text) if text else None
    return level if isinstance(level, int) else default


def configure_root(default_level: Union[int, str] = logging.INFO) -> int:
    """Configure the root logger and return the effective level."""
    level = parse_level(default_level)
    env_level = os.getenv("OTAFLOW_LOG_LEVEL", "")
    if env_level.strip():
        level = parse_level(env_level, level)
    elif os.getenv("OTAFLOW_DEBUG", "").strip().lower() in _TRUTHY:
        level = logging.DEBUG

    root = logging.getLogger()
    if not root.handlers:
        logging.basicConfig(level=level, format=LOG_FORMAT, datefmt=LOG_DATEFMT)
    root.setLevel(level)
    # Connection pool chatter stays at INFO even in debug runs.
    logging.getLogger("urllib3").setLevel(max(level, logging.INFO))
    return level
