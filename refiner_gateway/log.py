"""
Unified logging for the gateway.

Every record carries the trace id of the request being served, so log lines
from the router, the quota tracker and the provider clients can be correlated.

Usage:
    from refiner_gateway.log import get_logger
    logger = get_logger(__name__)
    logger.info("event=refine.start | device=%s", device_id)
"""

import logging
import uuid
from contextvars import ContextVar
from typing import Optional

from rich.logging import RichHandler

_trace_id_var: ContextVar[str] = ContextVar("trace_id", default="-")

_FMT = "[%(trace_id)s] %(name)s - %(message)s"
_DATE_FMT = "%Y-%m-%d %H:%M:%S"
_APP_HANDLER_MARKER = "_is_gateway_log_handler"

_LEVEL_MAP = {
    "DEBUG": logging.DEBUG,
    "INFO": logging.INFO,
    "WARNING": logging.WARNING,
    "ERROR": logging.ERROR,
    "CRITICAL": logging.CRITICAL,
}


def _new_trace_id() -> str:
    return uuid.uuid4().hex[:8]


def set_trace_id(tid: Optional[str] = None) -> str:
    """Set the trace id for the current context and return it."""
    tid = str(tid or "").strip()[:16] or _new_trace_id()
    _trace_id_var.set(tid)
    return tid


def get_trace_id() -> str:
    """Trace id of the current context ('-' when unset)."""
    return _trace_id_var.get()


class _TraceIdFilter(logging.Filter):
    """Inject the current trace id into every record for %(trace_id)s."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.trace_id = _trace_id_var.get()
        return True


def setup_logging(level: str = "INFO") -> None:
    """Attach the console handler to the root logger.

    Idempotent: uvicorn reloads and repeated app factories must not stack
    handlers. A second call only adjusts the level.
    """
    resolved = _LEVEL_MAP.get(str(level or "").upper(), logging.INFO)
    root = logging.getLogger()
    root.setLevel(resolved)

    for handler in root.handlers:
        if getattr(handler, _APP_HANDLER_MARKER, False):
            handler.setLevel(resolved)
            return

    handler = RichHandler(rich_tracebacks=True, show_path=False, log_time_format=_DATE_FMT)
    handler.setFormatter(logging.Formatter(_FMT))
    handler.setLevel(resolved)
    handler.addFilter(_TraceIdFilter())
    setattr(handler, _APP_HANDLER_MARKER, True)
    root.addHandler(handler)


def get_logger(name: str) -> logging.Logger:
    """Named logger; modules call get_logger(__name__)."""
    return logging.getLogger(name)
