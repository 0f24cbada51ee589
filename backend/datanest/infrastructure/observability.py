"""Structured Logging — one JSON object per log line.

Invariants:
    - Every line has timestamp (record creation time, UTC), level, logger, message
    - Correlation ids for marketplace lifecycles (purchase, dataset, request,
      proposal, message, user) and error_code are copied from `extra`, as strings
    - Keys outside CORRELATION_KEYS never reach the output

Design Decisions:
    - stdlib logging only; the JSON shape is small enough to own
    - setup_logging() is idempotent: it swaps its own root handler, leaving others alone
    - sqlalchemy.engine and httpx held at WARNING so request logs stay readable
"""

import json
import logging
from datetime import datetime, timezone

CORRELATION_KEYS = (
    "user_id", "dataset_id", "request_id", "proposal_id", "purchase_id",
    "message_id", "error_code", "path", "attempt", "status",
)

_QUIET_LOGGERS = ("sqlalchemy.engine", "httpx", "stripe")

_installed: logging.Handler | None = None


class JSONFormatter(logging.Formatter):

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        entry.update({
            key: str(record.__dict__[key])
            for key in CORRELATION_KEYS
            if record.__dict__.get(key) is not None
        })
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, ensure_ascii=False)


def _formatter_for(fmt: str) -> logging.Formatter:
    if fmt == "json":
        return JSONFormatter()
    return logging.Formatter("%(asctime)s %(levelname)-8s %(name)s: %(message)s")


def setup_logging(level: str = "INFO", fmt: str = "json") -> None:
    """Install the marketplace handler on the root logger (lifespan startup)."""
    global _installed
    root = logging.getLogger()
    if _installed is not None:
        root.removeHandler(_installed)

    handler = logging.StreamHandler()
    handler.setFormatter(_formatter_for(fmt))
    root.addHandler(handler)
    numeric = logging.getLevelName(level.upper())
    root.setLevel(numeric if isinstance(numeric, int) else logging.INFO)
    _installed = handler

    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
