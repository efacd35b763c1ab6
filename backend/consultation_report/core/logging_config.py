"""
Logging for the consultation report service.

Records carry a ``context`` dict (session id, patient id, workflow state...)
next to the message. ``JsonLineFormatter`` writes it as one JSON object per
line; the plain formatter appends it as ``key=value`` pairs. Patient names
never go into the context, only identifiers.
"""

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any, Dict, MutableMapping, Optional

from consultation_report.core.config import settings

PLAIN_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s%(context_suffix)s"


def _context(record: logging.LogRecord) -> Dict[str, Any]:
    return getattr(record, "context", None) or {}


class JsonLineFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        line = {
            "ts": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "event": record.getMessage(),
            **_context(record),
        }
        if record.exc_info:
            line["exception"] = self.formatException(record.exc_info)
        return json.dumps(line, default=str)


class PlainFormatter(logging.Formatter):
    def __init__(self):
        super().__init__(PLAIN_FORMAT)

    def format(self, record: logging.LogRecord) -> str:
        pairs = " ".join(f"{key}={value}" for key, value in _context(record).items())
        record.context_suffix = f" {pairs}" if pairs else ""
        return super().format(record)


class ContextLogger(logging.LoggerAdapter):
    """
    Logger carrying bound context fields.

    ``extra=`` passed at the call site is merged over the bound fields, so a
    session logger can still add per-event details::

        log = get_logger(__name__).bind(session_id=sid)
        log.info("Follow-up confirmed", extra={"follow_up_date": "2024-06-01"})
    """

    def bind(self, **fields: Any) -> "ContextLogger":
        return ContextLogger(self.logger, {**self.extra, **fields})

    def process(self, msg: str, kwargs: MutableMapping[str, Any]):
        kwargs["extra"] = {"context": {**self.extra, **kwargs.get("extra", {})}}
        return msg, kwargs


_handler: Optional[logging.Handler] = None


def configure_logging(level: Optional[str] = None, structured: Optional[bool] = None) -> None:
    """Install the service handler on the root logger once; later calls only adjust the level."""
    global _handler
    root = logging.getLogger()
    root.setLevel((level or settings.LOG_LEVEL).upper())
    if _handler is not None:
        return

    structured = settings.LOG_STRUCTURED if structured is None else structured
    _handler = logging.StreamHandler(sys.stderr)
    _handler.setFormatter(JsonLineFormatter() if structured else PlainFormatter())
    root.addHandler(_handler)


def get_logger(name: str, **context: Any) -> ContextLogger:
    return ContextLogger(logging.getLogger(name), context)
