"""Loguru logging configuration.

Replaces the default loguru sink with a formatted stderr sink and, when a
``log_dir`` is given, a rotating file sink.
"""

import sys
from pathlib import Path
from typing import Optional

from loguru import logger

_LOG_FORMAT = "{time:YYYY-MM-DD HH:mm:ss.SSS} | {level:<8} | {name}:{function}:{line} | {message}"


def setup_logging(log_level: str = "INFO", log_dir: Optional[str] = None) -> None:
    """Configure loguru sinks.

    Args:
        log_level: Minimum log level to emit.
        log_dir: Optional directory for log files. When set, a file sink is
            added that rotates every 24 hours and keeps 7 days.
    """
    logger.remove()
    logger.add(
        sys.stderr,
        level=log_level.upper(),
        format=_LOG_FORMAT,
    )

    if log_dir:
        log_path = Path(log_dir)
        log_path.mkdir(parents=True, exist_ok=True)
        logger.add(
            log_path / "urban-transit.log",
            level=log_level.upper(),
            format=_LOG_FORMAT,
            rotation="24h",
            retention="7 days",
        )
