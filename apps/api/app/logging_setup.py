"""Process-wide logging configuration.

Plain-text records by default; with ``LOG_JSON=true`` every record is emitted as one
JSON object so sweep summaries (tenant, counters, notes passed via ``extra``) can be
indexed by a log aggregator.
"""

from __future__ import annotations

import logging
import sys

from pythonjsonlogger import jsonlogger

from .settings import settings

_TEXT_FORMAT = "[%(asctime)s] %(levelname)s in %(name)s: %(message)s"
_JSON_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"


def configure_logging(level: str | None = None, json_output: bool | None = None) -> None:
    use_json = settings.log_json if json_output is None else json_output
    handler = logging.StreamHandler(sys.stdout)
    if use_json:
        handler.setFormatter(jsonlogger.JsonFormatter(_JSON_FORMAT))
    else:
        handler.setFormatter(logging.Formatter(_TEXT_FORMAT))

    root = logging.getLogger()
    root.handlers = [handler]
    root.setLevel((level or settings.log_level).upper())
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
