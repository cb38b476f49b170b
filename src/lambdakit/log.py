"""Logging setup for Lambda functions.

Lambda forwards stdout/stderr to CloudWatch line by line, so records are
rendered one per line: JSON by default, plain text for local runs.
Every record emitted during a dispatch carries the request's trace id.
"""

import json
import logging
import sys
import time
from collections.abc import MutableMapping
from typing import Any

from lambdakit.context import get_trace_id

ROOT_LOGGER = "lambdakit"

# Attributes every LogRecord has; anything else came in through ``extra``
_RESERVED = frozenset(
    logging.LogRecord("", 0, "", 0, "", (), None).__dict__.keys()
) | {"message", "asctime", "taskName"}

_HANDLER_MARK = "_lambdakit_handler"


class JSONFormatter(logging.Formatter):
    """One JSON object per record, extras merged at the top level."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "time": time.strftime("%Y-%m-%dT%H:%M:%S", time.gmtime(record.created))
            + f".{int(record.msecs):03d}Z",
            "level": record.levelname.lower(),
            "logger": record.name,
            "message": record.getMessage(),
        }
        trace_id = getattr(record, "trace_id", None) or get_trace_id()
        if trace_id:
            payload["trace_id"] = trace_id
        for key, value in record.__dict__.items():
            if key not in _RESERVED and key not in payload:
                payload[key] = value
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(payload, default=str)


class TextFormatter(logging.Formatter):
    def __init__(self) -> None:
        super().__init__("%(asctime)s %(levelname)s %(name)s [%(trace_id)s] %(message)s")

    def format(self, record: logging.LogRecord) -> str:
        if not getattr(record, "trace_id", None):
            record.trace_id = get_trace_id() or "-"
        return super().format(record)


def configure_logging(level: str = "info", fmt: str = "json") -> logging.Logger:
    """Install a single stdout handler on the ``lambdakit`` logger.

    Safe to call on every cold start and again on warm invocations: the
    handler installed by an earlier call is replaced, not duplicated.
    """
    logger = logging.getLogger(ROOT_LOGGER)
    for handler in list(logger.handlers):
        if getattr(handler, _HANDLER_MARK, False):
            logger.removeHandler(handler)

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(JSONFormatter() if fmt == "json" else TextFormatter())
    setattr(handler, _HANDLER_MARK, True)
    logger.addHandler(handler)
    logger.setLevel(level.upper())
    logger.propagate = False
    return logger


class RequestLogger(logging.LoggerAdapter):
    """Binds request fields into every record logged for one request.

    Usage::

        logger = RequestLogger(logging.getLogger("lambdakit.server"), {"trace_id": tid})
        logger.info("End", extra={"status_code": 200})
    """

    def process(self, msg: Any, kwargs: MutableMapping[str, Any]) -> tuple[Any, MutableMapping[str, Any]]:
        kwargs["extra"] = {**(self.extra or {}), **kwargs.get("extra", {})}
        return msg, kwargs

    def bind(self, **fields: Any) -> "RequestLogger":
        """Return a logger with *fields* added to the bound context."""
        return RequestLogger(self.logger, {**(self.extra or {}), **fields})


def get_logger(name: str = "lambdakit.server") -> RequestLogger:
    """Logger bound to the current trace id (empty outside a request)."""
    return RequestLogger(logging.getLogger(name), {"trace_id": get_trace_id()})
