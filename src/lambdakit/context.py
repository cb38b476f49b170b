"""Request-scoped context via ContextVar.

Provides:
- ``request_var``: The current ``Request`` for this dispatch.
- ``trace_id_var``: The correlation id logged with every record and
  returned in the trace response header.

Both are set by the dispatcher and reset after each request. Handlers
receive the request and ``next`` explicitly; these vars exist for code
further away from the chain, such as logging.

Thread safety:
    ``ContextVar`` is task-local under asyncio. No locks needed.
"""

import uuid
from contextvars import ContextVar
from typing import Any

from lambdakit.http.request import Request

request_var: ContextVar[Request] = ContextVar("lambdakit_request")
"""The current request. Set by the dispatcher before matching."""

trace_id_var: ContextVar[str] = ContextVar("lambdakit_trace_id")
"""The current trace id. Set by the dispatcher before matching."""


def get_request() -> Request:
    """Return the current request.

    Raises ``LookupError`` if called outside a request context.
    """
    return request_var.get()


def get_trace_id() -> str:
    """Return the current trace id, or ``""`` outside a request."""
    return trace_id_var.get("")


def resolve_trace_id(request: Request, trace_header: str, lambda_context: Any = None) -> str:
    """Pick the trace id for a request.

    The client's trace header wins so a caller can follow its own id
    through our logs. Then the gateway request id, then the Lambda
    invocation id, then a fresh random id.
    """
    incoming = (request.headers.get(trace_header) or "").strip()
    if incoming:
        return incoming
    if request.request_id:
        return request.request_id
    aws_request_id = getattr(lambda_context, "aws_request_id", None)
    if aws_request_id:
        return str(aws_request_id)
    return uuid.uuid4().hex
