"""
Logging setup for the TradeGate engine.

Every record carries the id of the order being submitted by the current
task, so the risk verdict, the broker call and the position update of one
submission can be followed across modules. Records also go to a bounded
in-memory buffer served by the /logs endpoint.
"""

import logging
import sys
from collections import deque
from contextvars import ContextVar
from datetime import UTC, datetime
from typing import Any

# Set by the coordinator for the duration of one submission
current_order_id: ContextVar[str | None] = ContextVar("current_order_id", default=None)

TEXT_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(order_tag)s%(message)s"
JSON_FORMAT = (
    '{"timestamp": "%(asctime)s", "level": "%(levelname)s", '
    '"module": "%(name)s", "order_id": "%(order_id)s", "message": "%(message)s"}'
)

# Chatty third-party loggers held at WARNING
QUIET_LOGGERS = ("uvicorn.access", "httpx", "httpcore")


class OrderContextFilter(logging.Filter):
    """Stamp records with the current order id."""

    def filter(self, record: logging.LogRecord) -> bool:
        order_id = current_order_id.get()
        record.order_id = order_id or ""
        record.order_tag = f"[{order_id}] " if order_id else ""
        return True


class TradeGateFormatter(logging.Formatter):
    """UTC ISO-8601 timestamps."""

    def formatTime(self, record: logging.LogRecord, datefmt: str | None = None) -> str:
        return datetime.fromtimestamp(record.created, UTC).isoformat()


class InMemoryHandler(logging.Handler):
    """Ring buffer of recent records for the /logs endpoint."""

    def __init__(self, capacity: int = 1000):
        super().__init__()
        self.records: deque[dict[str, Any]] = deque(maxlen=capacity)

    def emit(self, record: logging.LogRecord) -> None:
        try:
            self.records.append(
                {
                    "timestamp": datetime.fromtimestamp(record.created, UTC).isoformat(),
                    "level": record.levelname,
                    "level_no": record.levelno,
                    "logger": record.name,
                    "order_id": getattr(record, "order_id", None) or None,
                    "message": record.getMessage(),
                }
            )
        except Exception:
            self.handleError(record)


_in_memory_handler = InMemoryHandler()
_in_memory_handler.addFilter(OrderContextFilter())


def setup_logging(level: str = "INFO", json_output: bool = False) -> None:
    """
    Configure root logging.

    Args:
        level: Logging level name
        json_output: Emit one JSON object per line (production)
    """
    root = logging.getLogger()
    root.handlers.clear()

    numeric_level = getattr(logging, level.upper(), logging.INFO)
    root.setLevel(numeric_level)

    stream = logging.StreamHandler(sys.stdout)
    stream.setLevel(numeric_level)
    stream.addFilter(OrderContextFilter())
    stream.setFormatter(TradeGateFormatter(JSON_FORMAT if json_output else TEXT_FORMAT))
    root.addHandler(stream)

    _in_memory_handler.setLevel(numeric_level)
    root.addHandler(_in_memory_handler)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)


def get_in_memory_logs(level: str = "INFO", limit: int = 50) -> list[dict[str, Any]]:
    """Buffered records at or above level, oldest first."""
    numeric_level = getattr(logging, level.upper(), logging.INFO)
    matching = [r for r in _in_memory_handler.records if r["level_no"] >= numeric_level]
    return matching[-limit:]


def bind_order_id(order_id: str | None) -> None:
    current_order_id.set(order_id)


def clear_order_id() -> None:
    current_order_id.set(None)
