# log_setup.py
from __future__ import annotations

import logging
import sys
from collections import deque
from typing import Deque, List

import colorlog

LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
MAX_LOG_LINES = 500


def setup_logging(level: int | str = logging.INFO) -> logging.Logger:
    if isinstance(level, str):
        level = getattr(logging, level.upper(), logging.INFO)

    root = logging.getLogger()
    root.setLevel(level)
    for handler in root.handlers[:]:
        if not isinstance(handler, RecentLogHandler):
            root.removeHandler(handler)

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(level)
    handler.setFormatter(
        colorlog.ColoredFormatter(
            fmt="%(log_color)s" + LOG_FORMAT,
            datefmt=DATE_FORMAT,
            log_colors={
                "DEBUG": "cyan",
                "INFO": "green",
                "WARNING": "yellow",
                "ERROR": "red",
                "CRITICAL": "bold_red",
            },
        )
    )
    root.addHandler(handler)

    # Reduce noise from third-party libraries
    logging.getLogger("urllib3").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)
    return root


class RecentLogHandler(logging.Handler):
    """Keeps the last N formatted lines in memory for the status API."""

    def __init__(self, maxlen: int = MAX_LOG_LINES):
        super().__init__()
        self.lines: Deque[str] = deque(maxlen=maxlen)
        self.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT))

    def emit(self, record: logging.LogRecord) -> None:
        try:
            text = self.format(record)
        except Exception:
            self.handleError(record)
            return
        prefix = "[err] " if record.levelno >= logging.ERROR else ""
        for line in text.splitlines():
            if line:
                self.lines.append(prefix + line)

    def tail(self, limit: int) -> List[str]:
        if limit <= 0:
            return []
        return list(self.lines)[-limit:]
