"""Loguru sink configuration for the CLI and long-running services.

Library modules only ever call ``logger``; sinks are installed once by the entry
point so that embedding applications keep control of their own handlers.
"""

from __future__ import annotations

import os
import sys
from pathlib import Path

from loguru import logger

from govsearch.utils.config import LoggingConfig


def setup_logging(config: LoggingConfig | None = None) -> None:
    """Replace Loguru's default sink with the configured ones."""
    # Allow developers to opt out while debugging.
    if os.getenv("GOVSEARCH_DISABLE_LOG_RECONFIG") == "1":
        return

    config = config or LoggingConfig()
    level = config.level.upper()

    logger.remove()
    logger.add(sys.stderr, level=level, serialize=config.format == "json")

    if config.file:
        target = Path(config.file)
        target.parent.mkdir(parents=True, exist_ok=True)
        logger.add(
            str(target),
            level=level,
            rotation=config.rotation,
            retention=config.retention,
            compression="zip",
            serialize=config.format == "json",
        )
