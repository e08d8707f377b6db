"""
Structured JSON logging with request ID propagation.
"""

import json
import logging
import sys
from datetime import UTC, datetime
from typing import Any

from .context import RequestContext, current_request

# LogRecord attributes that are not user-supplied "extra" fields
_RESERVED_ATTRS = frozenset(
    {
        "name",
        "msg",
        "args",
        "created",
        "filename",
        "funcName",
        "levelname",
        "levelno",
        "lineno",
        "module",
        "msecs",
        "pathname",
        "process",
        "processName",
        "relativeCreated",
        "stack_info",
        "exc_info",
        "exc_text",
        "thread",
        "threadName",
        "message",
        "taskName",
    }
)

# Headers bound into RequestContext by CorrelationIdMiddleware
_REQUEST_ID_HEADER = b"x-request-id"
_ORG_HEADER = b"x-org-id"
_USER_HEADER = b"x-user-id"


def _context_fields() -> dict[str, str]:
    info = current_request()
    if info is None:
        return {}
    fields = {"request_id": info.request_id}
    if info.org_id:
        fields["org_id"] = info.org_id
    if info.caller_id:
        fields["caller_id"] = info.caller_id
    return fields


class JSONFormatter(logging.Formatter):
    """
    One JSON object per line.

        {"timestamp": "2025-06-02T10:30:00.000Z", "level": "WARNING",
         "logger": "agenda.pipeline", "message": "Overlap query failed",
         "request_id": "req-abc123", "org_id": "org-1",
         "reason": "overlap_query_failed"}

    Fields passed through ``extra=`` are merged in last.
    """

    def format(self, record: logging.LogRecord) -> str:
        stamp = datetime.now(UTC).isoformat(timespec="milliseconds")
        payload: dict[str, Any] = {
            "timestamp": stamp.replace("+00:00", "Z"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            **_context_fields(),
        }
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)

        payload.update(
            (key, value) for key, value in record.__dict__.items() if key not in _RESERVED_ATTRS
        )
        return json.dumps(payload, default=str)


class HumanFormatter(logging.Formatter):
    """Single-line formatter for a terminal."""

    def format(self, record: logging.LogRecord) -> str:
        stamp = datetime.now().strftime("%Y-%m-%d %H:%M:%S")
        fields = _context_fields()
        tag = ""
        if "request_id" in fields:
            scope = f" {fields['org_id']}" if "org_id" in fields else ""
            tag = f"[{fields['request_id'][:12]}{scope}] "
        line = f"{stamp} [{record.levelname}] {record.name}: {tag}{record.getMessage()}"
        if record.exc_info:
            line = f"{line}\n{self.formatException(record.exc_info)}"
        return line


def configure_logging(level: str = "INFO", json_format: bool | None = None) -> None:
    """
    Install a single stderr handler on the root logger.

    Args:
        level: Log level name (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        json_format: Force JSON output. None picks JSON unless stderr is a tty.
    """
    if json_format is None:
        json_format = not sys.stderr.isatty()

    root = logging.getLogger()
    root.setLevel(getattr(logging, level.upper()))
    for existing in list(root.handlers):
        root.removeHandler(existing)

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(JSONFormatter() if json_format else HumanFormatter())
    root.addHandler(handler)


def _header(scope, name: bytes) -> str | None:
    for key, value in scope.get("headers", []):
        if key.lower() == name:
            try:
                return value.decode("utf-8") or None
            except UnicodeDecodeError:
                return None
    return None


class CorrelationIdMiddleware:
    """
    ASGI middleware that binds request id, org and caller for each request.

    The request id is taken from X-Request-ID (or generated) and echoed on
    the response. X-Org-Id and X-User-Id are bound as-is so log lines from
    the pipeline carry the tenant they were serving.
    """

    def __init__(self, app):
        self.app = app

    async def __call__(self, scope, receive, send):
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        ctx = RequestContext(
            request_id=_header(scope, _REQUEST_ID_HEADER),
            org_id=_header(scope, _ORG_HEADER),
            caller_id=_header(scope, _USER_HEADER),
        )
        echoed = (_REQUEST_ID_HEADER, ctx.request_id.encode("utf-8"))

        async def send_with_request_id(message):
            if message["type"] == "http.response.start":
                message = {**message, "headers": [*message.get("headers", []), echoed]}
            await send(message)

        with ctx:
            await self.app(scope, receive, send_with_request_id)
