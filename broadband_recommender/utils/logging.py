"""
Root-logger setup for the CLI and the HTTP app.

Library modules only ever call ``logging.getLogger(__name__)``; the two entry
points call ``configure_logging(config.logging)`` exactly once.

With ``[logging] json_format = true`` each record becomes one JSON line::

    {"time": "2026-10-17T09:30:00Z", "level": "WARNING",
     "logger": "broadband_recommender.recommendations.ranker",
     "message": "Non-finite score ...", "product": "YouTube TV"}

Keys passed through ``extra=`` (the ranker tags ``product``) are copied
onto the line as-is.
"""

from __future__ import annotations

import json
import logging
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import IO, TYPE_CHECKING

if TYPE_CHECKING:
    from broadband_recommender.config import LoggingConfig

TEXT_FORMAT = "%(asctime)s %(levelname)-7s %(name)s | %(message)s"
TIME_FORMAT = "%Y-%m-%dT%H:%M:%SZ"

# Third-party loggers held at WARNING regardless of the configured level.
QUIET_LOGGERS: tuple[str, ...] = ("lightgbm", "uvicorn.access")

_STANDARD_KEYS = frozenset(vars(logging.makeLogRecord({}))) | {"message", "asctime"}


class JsonLineFormatter(logging.Formatter):
    """One JSON object per record, extras included."""

    def format(self, record: logging.LogRecord) -> str:
        line = {
            "time":    datetime.fromtimestamp(record.created, tz=timezone.utc).strftime(TIME_FORMAT),
            "level":   record.levelname,
            "logger":  record.name,
            "message": record.getMessage(),
        }
        line.update(
            (k, v) for k, v in vars(record).items()
            if k not in _STANDARD_KEYS and not k.startswith("_")
        )
        if record.exc_info:
            line["traceback"] = self.formatException(record.exc_info)
        return json.dumps(line, default=str)


def _handler(target: IO[str] | Path, level: int, formatter: logging.Formatter) -> logging.Handler:
    if isinstance(target, Path):
        target.parent.mkdir(parents=True, exist_ok=True)
        handler: logging.Handler = logging.FileHandler(target, encoding="utf-8")
    else:
        handler = logging.StreamHandler(target)
    handler.setLevel(level)
    handler.setFormatter(formatter)
    return handler


def configure_logging(config: "LoggingConfig") -> None:
    """Replace the root logger's handlers according to ``config``."""
    level = logging.getLevelName(config.level)
    formatter = JsonLineFormatter() if config.json_format else logging.Formatter(TEXT_FORMAT, TIME_FORMAT)

    targets: list[IO[str] | Path] = [sys.stdout]
    if config.log_file:
        targets.append(Path(config.log_file))

    logging.basicConfig(
        level=level,
        handlers=[_handler(t, level, formatter) for t in targets],
        force=True,
    )
    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
