"""JSON logging stamped with the request id and the authenticated user id."""

import logging
import os
import uuid
from contextvars import ContextVar
from typing import Optional, Union

from pythonjsonlogger import jsonlogger


LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s %(request_id)s %(user_id)s"

# uvicorn configures its own handlers unless told otherwise; these are rerouted to root.
SERVER_LOGGERS = ("uvicorn", "uvicorn.error", "uvicorn.access")

request_id_ctx: ContextVar[Optional[str]] = ContextVar("request_id", default=None)
user_id_ctx: ContextVar[Optional[str]] = ContextVar("user_id", default=None)


class ContextFilter(logging.Filter):
    """Copy the per-request context onto every record.

    Startup and CLI records carry empty strings so the formatter never misses a field.
    """

    def filter(self, record: logging.LogRecord) -> bool:
        record.request_id = request_id_ctx.get() or ""
        record.user_id = user_id_ctx.get() or ""
        return True


def resolve_level(level: Optional[str] = None) -> str:
    name = (level or os.getenv("LOG_LEVEL") or "INFO").strip().upper()
    if not isinstance(logging.getLevelName(name), int):
        return "INFO"
    return name


def build_handler() -> logging.Handler:
    handler = logging.StreamHandler()
    handler.setFormatter(jsonlogger.JsonFormatter(LOG_FORMAT))
    handler.addFilter(ContextFilter())
    return handler


def setup_logging(level: Optional[str] = None) -> None:
    root = logging.getLogger()
    root.setLevel(resolve_level(level))
    root.handlers = [build_handler()]
    for name in SERVER_LOGGERS:
        server_logger = logging.getLogger(name)
        server_logger.handlers = []
        server_logger.propagate = True


def bind_request_id(req_id: Optional[str] = None) -> str:
    rid = req_id or uuid.uuid4().hex
    request_id_ctx.set(rid)
    return rid


def bind_user_id(user_id: Union[int, str, None]) -> None:
    user_id_ctx.set(None if user_id is None else str(user_id))
