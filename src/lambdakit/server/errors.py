"""Error handling pipeline for lambdakit requests.

Maps HTTPError exceptions and unexpected failures to structured
Response objects, using registered error handlers or the default JSON
rendering.
"""

import inspect
import logging
from collections.abc import Callable
from typing import Any

from lambdakit.errors import HTTPError
from lambdakit.http.request import Request
from lambdakit.http.response import Response, error_response
from lambdakit.log import RequestLogger
from lambdakit.middleware.protocol import to_response

logger = logging.getLogger("lambdakit.server")


async def call_error_handler(
    handler: Callable[..., Any],
    request: Request,
    exc: Exception,
) -> Response | None:
    """Invoke a user-registered error handler with introspected arguments.

    Error handlers may accept zero, one (request), or two (request, exc) args.
    Supports both sync and async error handlers.
    """
    sig = inspect.signature(handler)
    params = list(sig.parameters.values())

    if len(params) >= 2:
        result = handler(request, exc)
    elif len(params) == 1:
        result = handler(request)
    else:
        result = handler()

    if inspect.isawaitable(result):
        result = await result
    return to_response(result)


async def _custom(
    handler: Callable[..., Any] | None,
    request: Request,
    exc: Exception,
    log: RequestLogger,
) -> Response | None:
    if handler is None:
        return None
    try:
        return await call_error_handler(handler, request, exc)
    except Exception:
        log.exception("Error handler failed", extra={"handler": getattr(handler, "__name__", repr(handler))})
        return None


async def handle_http_error(
    exc: HTTPError,
    request: Request,
    error_handlers: dict[int | type, Callable[..., Any]],
    log: RequestLogger,
) -> Response:
    """Map an HTTPError to a Response using registered error handlers."""
    log.debug("%d %s %s: %s", exc.status, request.method, request.path, exc.detail)

    # Try exact exception type, then status code
    handler = error_handlers.get(type(exc)) or error_handlers.get(exc.status)
    response = await _custom(handler, request, exc, log)
    if response is not None:
        # Keep the error's status unless the handler chose its own
        if response.status == 200:
            response = response.with_status(exc.status)
        return response
    return error_response(exc)


async def handle_internal_error(
    exc: Exception,
    request: Request,
    error_handlers: dict[int | type, Callable[..., Any]],
    log: RequestLogger,
    *,
    debug: bool = False,
) -> Response:
    """Recover from an unexpected handler failure as a 500 response.

    The body carries the exception's string form; with ``debug`` the
    exception type is prefixed.
    """
    log.error(
        "Panic",
        exc_info=(type(exc), exc, exc.__traceback__),
        extra={"error": repr(exc), "method": request.method, "path": request.path},
    )

    handler = error_handlers.get(type(exc)) or error_handlers.get(500)
    response = await _custom(handler, request, exc, log)
    if response is not None:
        if response.status == 200:
            response = response.with_status(500)
        return response

    message = str(exc) or type(exc).__name__
    if debug:
        message = f"{type(exc).__name__}: {message}"
    return error_response(HTTPError(status=500, detail=message))
