"""Logging setup for the prompt engine.

Records are written to stdout as one JSON object per line, or as a plain line
when LOG_FORMAT=simple. Every record carries the request id and acting user
(from lib.context). Engine code attaches prompt fields through `extra`:

    logger.info("Saved prompt", extra={"prompt_key": key, "owner_id": owner, "version": 3})

Only the names in PROMPT_FIELDS are lifted out of `extra` into the output.
"""

import json
import logging
import os
import sys
import traceback
import uuid
from datetime import datetime, timezone
from typing import Any, Dict

from aura_prompts.config import get_log_level
from aura_prompts.lib.context import (
    get_current_request_id,
    get_current_user_id,
    set_current_request_id,
)

CONTEXT_FIELDS = ("request_id", "user_id")
PROMPT_FIELDS = ("prompt_key", "owner_id", "version", "error_code")


class ContextFilter(logging.Filter):
    """Fill request_id and user_id from the request context unless given."""

    def filter(self, record: logging.LogRecord) -> bool:
        if getattr(record, "request_id", None) is None:
            record.request_id = get_current_request_id()  # type: ignore[attr-defined]
        if getattr(record, "user_id", None) is None:
            record.user_id = get_current_user_id()  # type: ignore[attr-defined]
        return True


def _prompt_fields(record: logging.LogRecord) -> Dict[str, Any]:
    fields = {}
    for name in PROMPT_FIELDS:
        value = getattr(record, name, None)
        if value is not None:
            fields[name] = value if isinstance(value, (int, float, bool)) else str(value)
    return fields


def _timestamp(record: logging.LogRecord) -> datetime:
    return datetime.fromtimestamp(record.created, tz=timezone.utc)


class JsonFormatter(logging.Formatter):

    def format(self, record: logging.LogRecord) -> str:
        entry: Dict[str, Any] = {
            "timestamp": _timestamp(record).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for name in CONTEXT_FIELDS:
            entry[name] = getattr(record, name, None)
        entry.update(_prompt_fields(record))

        if record.exc_info and record.exc_info[1] is not None:
            entry["exc_info"] = "".join(traceback.format_exception(*record.exc_info))

        return json.dumps(entry, default=str)


class SimpleFormatter(logging.Formatter):
    """`2024-05-01 12:00:00 INFO     logger - message [prompt_key=..., user_id=...]`"""

    def format(self, record: logging.LogRecord) -> str:
        fields = _prompt_fields(record)
        for name in CONTEXT_FIELDS:
            value = getattr(record, name, None)
            if value:
                fields[name] = str(value)[:12]
        suffix = f" [{', '.join(f'{k}={v}' for k, v in fields.items())}]" if fields else ""

        line = (
            f"{_timestamp(record).strftime('%Y-%m-%d %H:%M:%S')} {record.levelname:<8} "
            f"{record.name} - {record.getMessage()}{suffix}"
        )
        if record.exc_info and record.exc_info[1] is not None:
            line += "\n" + "".join(traceback.format_exception(*record.exc_info))
        return line


def configure_logging() -> None:
    """Install a single stdout handler on the root logger."""
    handler = logging.StreamHandler(sys.stdout)
    if os.getenv("LOG_FORMAT", "json").lower() == "simple":
        handler.setFormatter(SimpleFormatter())
    else:
        handler.setFormatter(JsonFormatter())
    handler.addFilter(ContextFilter())

    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, get_log_level(), logging.INFO))
    root_logger.handlers.clear()
    root_logger.addHandler(handler)

    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)


def create_request_context_middleware(app) -> None:
    """Give each request an X-Request-ID (taken from the caller when sent)."""
    from starlette.middleware.base import BaseHTTPMiddleware
    from starlette.requests import Request
    from starlette.responses import Response

    class RequestContextMiddleware(BaseHTTPMiddleware):
        async def dispatch(self, request: Request, call_next) -> Response:
            request_id = request.headers.get("X-Request-ID") or uuid.uuid4().hex[:8]
            set_current_request_id(request_id)

            response = await call_next(request)
            response.headers["X-Request-ID"] = request_id
            return response

    app.add_middleware(RequestContextMiddleware)
