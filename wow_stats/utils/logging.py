"""
Logging setup for WoW Stats.

``configure_logging(config)`` is called once by each CLI command; library
modules only ever use ``logging.getLogger(__name__)``.

Ingestion log records carry context through ``extra=``:

  run_slug    pipeline run the record belongs to (``PipelineStage``)
  character   ``Name-Realm`` label of the character being ingested

Text lines append whatever context is present::

    2019-10-17T11:38:42Z [WARNING] wow_stats.ingestion.coordinator:
        Thrall-Area 52: fetch failed — timeout | run_slug=4f0c… character=Thrall-Area 52

JSON lines (``json_format = true`` under ``[logging]``) carry the same keys at
the top level::

    {"ts": "2019-10-17T11:38:42Z", "level": "WARNING", "logger": "...", "msg": "...",
     "run_slug": "4f0c…", "character": "Thrall-Area 52"}
"""

from __future__ import annotations

import json
import logging
import sys
import time
from datetime import datetime, timezone
from pathlib import Path
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from wow_stats.config import LoggingConfig

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%dT%H:%M:%SZ"

# Context keys rendered first, in this order
CONTEXT_FIELDS: tuple[str, ...] = ("run_slug", "character")

# Attributes present on every LogRecord; anything else came from ``extra=``.
_RESERVED_ATTRS = frozenset(
    logging.LogRecord("", logging.INFO, "", 0, "", (), None).__dict__
) | {"message", "asctime", "taskName"}

# Loggers that are chatty at INFO during a fan-out of HTTP requests
_QUIET_LOGGERS = ("httpx", "httpcore", "asyncio")


def record_context(record: logging.LogRecord) -> dict[str, Any]:
    """Return the ``extra=`` context of ``record``, known keys first."""
    context = {
        key: getattr(record, key)
        for key in CONTEXT_FIELDS
        if getattr(record, key, None) is not None
    }
    for key, val in record.__dict__.items():
        if key in _RESERVED_ATTRS or key in context or key.startswith("_"):
            continue
        context[key] = val
    return context


class _ContextFormatter(logging.Formatter):
    """Plain-text formatter that appends ``| key=value`` log context."""

    # asctime is rendered with a trailing Z
    converter = time.gmtime

    def format(self, record: logging.LogRecord) -> str:
        line = super().format(record)
        context = record_context(record)
        if not context:
            return line
        suffix = " ".join(f"{key}={val}" for key, val in context.items())
        head, sep, tail = line.partition("\n")
        return f"{head} | {suffix}{sep}{tail}"


class _JsonFormatter(logging.Formatter):
    """One JSON object per record: ``ts``, ``level``, ``logger``, ``msg``,
    optional ``exc``, then the record's context keys."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created, tz=timezone.utc).strftime(
                LOG_DATE_FORMAT
            ),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
        }
        if record.exc_info:
            payload["exc"] = self.formatException(record.exc_info)
        payload.update(record_context(record))
        return json.dumps(payload, default=str)


def configure_logging(config: "LoggingConfig") -> None:
    """Install stdout (and optional file) handlers on the root logger.

    Args:
        config: ``[logging]`` section; ``log_file = ""`` disables the file
            handler, ``json_format`` switches both handlers to JSON lines.
    """
    level = getattr(logging, config.level.upper(), logging.INFO)

    formatter: logging.Formatter = (
        _JsonFormatter()
        if config.json_format
        else _ContextFormatter(LOG_FORMAT, datefmt=LOG_DATE_FORMAT)
    )

    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stdout)]
    if config.log_file:
        log_path = Path(config.log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(log_path, encoding="utf-8"))

    for handler in handlers:
        handler.setLevel(level)
        handler.setFormatter(formatter)

    logging.basicConfig(level=level, handlers=handlers, force=True)

    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
