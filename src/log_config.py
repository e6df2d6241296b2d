"""
Logging for the Americano service.

The app logs under the ``americano`` namespace. Library chatter (SQL echo,
per-request access lines) is held at WARNING unless the app itself runs at
DEBUG.
"""

import logging
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional, Union

LOG_FORMAT = "%(asctime)s %(levelname)-7s %(name)s: %(message)s"
LOG_DATE_FORMAT = "%H:%M:%S"
LOG_FILE_PREFIX = "americano"

NOISY_LOGGERS = ("sqlalchemy.engine", "sqlalchemy.pool", "uvicorn.access")


def parse_level(level: Union[int, str]) -> int:
    """Accept ``logging.DEBUG`` as well as ``"debug"``; reject unknown names."""
    if isinstance(level, int):
        return level
    value = logging.getLevelName(level.strip().upper())
    if not isinstance(value, int):
        raise ValueError(f"unknown log level {level!r}")
    return value


def log_file_name(now: Optional[datetime] = None) -> str:
    now = now or datetime.now(tz=timezone.utc)
    return f"{LOG_FILE_PREFIX}-{now:%Y%m%d-%H%M%S}.log"


def setup_logging(log_dir: Union[Path, str, None] = None, level: Union[int, str] = logging.INFO) -> Optional[Path]:
    """Install console (and optionally file) handlers on the root logger.

    Calling it again replaces the handlers it installed before. Returns the
    log file path when ``log_dir`` is given.
    """
    level = parse_level(level)
    root = logging.getLogger()
    for handler in root.handlers[:]:
        root.removeHandler(handler)
        handler.close()
    root.setLevel(level)

    formatter = logging.Formatter(LOG_FORMAT, datefmt=LOG_DATE_FORMAT)
    handlers = [logging.StreamHandler(sys.stdout)]

    file_path = None
    if log_dir is not None:
        file_path = Path(log_dir) / log_file_name()
        file_path.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(file_path, encoding="utf-8"))

    for handler in handlers:
        handler.setFormatter(formatter)
        root.addHandler(handler)

    library_level = logging.DEBUG if level <= logging.DEBUG else logging.WARNING
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(library_level)

    logging.getLogger(LOG_FILE_PREFIX).debug("logging at %s", logging.getLevelName(level))
    return file_path
