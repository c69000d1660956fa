"""Logging set-up with timestamps in UTC+8."""

from __future__ import annotations

import logging
import os
from datetime import datetime, timedelta, timezone

LOG_ENV = "GOLD_K_LOG"
TIME_ZONE = timezone(timedelta(hours=8))
LOG_FORMAT = "%(asctime)s %(levelname)5s %(name)s: %(filename)s:%(lineno)d: %(message)s"

_LEVELS = {
    "trace": logging.DEBUG,
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warn": logging.WARNING,
    "error": logging.ERROR,
    "off": logging.CRITICAL + 1,
}


class OffsetFormatter(logging.Formatter):
    """Formatter that renders times in UTC+8 with millisecond precision."""

    def formatTime(self, record: logging.LogRecord, datefmt: str | None = None) -> str:
        moment = datetime.fromtimestamp(record.created, tz=TIME_ZONE)
        if datefmt:
            return moment.strftime(datefmt)
        return f"{moment:%Y-%m-%d %H:%M:%S}.{moment.microsecond // 1000:03d}"


class _ConsoleHandler(logging.StreamHandler):
    pass


def _parse_filter(spec: str) -> tuple[int, dict[str, int]]:
    default = logging.INFO
    targets: dict[str, int] = {}
    for raw in spec.split(","):
        directive = raw.strip()
        if not directive:
            continue
        if "=" in directive:
            target, _, level_name = directive.partition("=")
            level = _LEVELS.get(level_name.strip().lower())
            target = target.strip().replace("::", ".")
            if level is None or not target:
                continue
            targets[target] = level
        elif directive.lower() in _LEVELS:
            default = _LEVELS[directive.lower()]
        else:
            targets[directive.replace("::", ".")] = logging.DEBUG
    return default, targets


def init_logging() -> logging.Handler:
    """Install a console handler on the root logger, filtered by GOLD_K_LOG."""
    default, targets = _parse_filter(os.environ.get(LOG_ENV, ""))
    root = logging.getLogger()
    for existing in [h for h in root.handlers if isinstance(h, _ConsoleHandler)]:
        root.removeHandler(existing)
    handler = _ConsoleHandler()
    handler.setFormatter(OffsetFormatter(LOG_FORMAT))
    root.addHandler(handler)
    root.setLevel(default)
    for target, level in targets.items():
        logging.getLogger(target).setLevel(level)
    return handler