"""Process-wide loguru setup.

Importing this module replaces loguru's default sink with a colored stderr
sink at INFO. ``configure_logging`` changes that level and can add rotating
log files.
"""

from __future__ import annotations

import sys
from pathlib import Path
from typing import Dict, List, Optional, Union

from loguru import logger

CONSOLE_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | <level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - <level>{message}</level>"
)
FILE_FORMAT = "{time:YYYY-MM-DD HH:mm:ss.SSS} | {level: <8} | {name}:{function}:{line} - {message}"

# File name pattern -> sink options. The error log is kept longer.
LOG_FILES: Dict[str, Dict[str, str]] = {
    "umpire_{time}.log": {"level": "DEBUG", "rotation": "50 MB", "retention": "10 days"},
    "errors_{time}.log": {"level": "ERROR", "rotation": "10 MB", "retention": "30 days"},
}

_handler_ids: List[int] = []


def _add_console(level: str) -> int:
    return logger.add(sys.stderr, level=level.upper(), format=CONSOLE_FORMAT, colorize=True)


def configure_logging(level: str = "INFO", log_dir: Optional[Union[str, Path]] = None) -> None:
    """Replace all sinks: stderr at ``level`` plus, with ``log_dir``, the rotating files."""
    while _handler_ids:
        logger.remove(_handler_ids.pop())
    _handler_ids.append(_add_console(level))

    if log_dir is None:
        return
    directory = Path(log_dir)
    directory.mkdir(parents=True, exist_ok=True)
    for pattern, options in LOG_FILES.items():
        # enqueue so the pipeline and runner threads never interleave writes
        _handler_ids.append(logger.add(directory / pattern, format=FILE_FORMAT, enqueue=True, **options))


def get_logger(name: Optional[str] = None):
    """Return the shared logger, bound to ``name`` when given."""
    return logger.bind(name=name) if name else logger


def log_performance(operation: str, duration_ms: float, threshold_ms: float = 100.0) -> None:
    """Debug-log a timing, or warn when it exceeds ``threshold_ms``."""
    if duration_ms <= threshold_ms:
        logger.debug(f"{operation}: {duration_ms:.2f}ms")
        return
    logger.warning(f"Slow operation: {operation} took {duration_ms:.2f}ms (budget {threshold_ms}ms)")


logger.remove()
_handler_ids.append(_add_console("INFO"))

__all__ = ["logger", "configure_logging", "get_logger", "log_performance"]
