from __future__ import annotations

import logging
import sys
from typing import TextIO

from pythonjsonlogger import jsonlogger

_QUIET_LOGGERS = ("sqlalchemy.engine", "uvicorn.access")


def build_formatter() -> logging.Formatter:
    return jsonlogger.JsonFormatter(
        "%(asctime)s %(levelname)s %(name)s %(message)s",
        rename_fields={"asctime": "timestamp", "levelname": "level", "name": "logger"},
    )


def configure_logging(level: str, stream: TextIO | None = None) -> None:
    root = logging.getLogger()
    root.setLevel(level.upper())

    handler = logging.StreamHandler(stream or sys.stdout)
    handler.setFormatter(build_formatter())

    root.handlers.clear()
    root.addHandler(handler)

    # SQL echo and per-request access lines stay at WARNING unless debugging.
    if root.level > logging.DEBUG:
        for name in _QUIET_LOGGERS:
            logging.getLogger(name).setLevel(logging.WARNING)
