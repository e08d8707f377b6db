"""
Request-scoped context: request id, tenant scope and caller.

Bound by CorrelationIdMiddleware for every HTTP request and read by the log
formatters, so a warning raised deep inside the pipeline still names the
request and org it was serving.
"""

import contextvars
import uuid
from dataclasses import dataclass


@dataclass(frozen=True)
class RequestInfo:
    request_id: str
    org_id: str | None = None
    caller_id: str | None = None


_current_request: contextvars.ContextVar[RequestInfo | None] = contextvars.ContextVar(
    "agenda_request", default=None
)


def current_request() -> RequestInfo | None:
    return _current_request.get()


def get_request_id() -> str | None:
    info = _current_request.get()
    return info.request_id if info else None


def generate_request_id() -> str:
    return f"req-{uuid.uuid4().hex[:16]}"


class RequestContext:
    """
    Bind request info for the duration of a block.

    Usage:
        with RequestContext(org_id="org-1") as ctx:
            logger.warning("Overlap query failed")  # carries ctx.request_id, org-1

        with RequestContext(request_id="req-abc123"):
            ...
    """

    def __init__(
        self,
        request_id: str | None = None,
        org_id: str | None = None,
        caller_id: str | None = None,
    ):
        self.info = RequestInfo(
            request_id=request_id or generate_request_id(),
            org_id=org_id,
            caller_id=caller_id,
        )
        self._token: contextvars.Token | None = None

    @property
    def request_id(self) -> str:
        return self.info.request_id

    def __enter__(self) -> "RequestContext":
        self._token = _current_request.set(self.info)
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        if self._token is not None:
            _current_request.reset(self._token)
            self._token = None
