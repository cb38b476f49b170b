"""Lambda handler — translates gateway events to lambdakit types.

The only component that touches raw events directly. Converts the event
dict to a typed Request, dispatches through routing and the matched
handler chain, and renders the Response back into the gateway payload.

Every exit path produces a response with exactly one trace header:
routing misses, rejected signatures, handler failures, and chains that
never answer all end up in ``_complete``.
"""

import json
import logging
from collections.abc import Callable, Mapping
from typing import Any

from lambdakit.config import AppConfig
from lambdakit.context import request_var, resolve_trace_id, trace_id_var
from lambdakit.errors import BadRequest, HTTPError, NotFound, Unimplemented
from lambdakit.http.request import Request
from lambdakit.http.response import Response, error_response
from lambdakit.log import RequestLogger
from lambdakit.middleware.protocol import Chain
from lambdakit.routing.router import Router
from lambdakit.server.errors import handle_http_error, handle_internal_error

_log = logging.getLogger("lambdakit.server")


async def handle_event(
    event: dict[str, Any],
    lambda_context: Any = None,
    *,
    router: Router,
    chains: Mapping[int, Chain],
    error_handlers: dict[int | type, Callable[..., Any]],
    config: AppConfig,
) -> dict[str, Any]:
    """Process a single gateway event through the full pipeline."""
    try:
        request = Request.from_event(event)
    except (ValueError, TypeError, AttributeError) as exc:
        # Undecodable body or a payload that isn't an HTTP API event
        request = Request(method="", path="")
        trace_id = resolve_trace_id(request, config.trace_header, lambda_context)
        log = RequestLogger(_log, {"trace_id": trace_id})
        log.error("Malformed event", extra={"error": str(exc)})
        response = error_response(BadRequest(f"malformed event: {exc}"))
        return _complete(response, trace_id, log, config).to_event()

    trace_id = resolve_trace_id(request, config.trace_header, lambda_context)
    request_token = request_var.set(request)
    trace_token = trace_id_var.set(trace_id)
    log = RequestLogger(_log, {"trace_id": trace_id})
    try:
        log.info(
            "Start",
            extra={
                "header": json.dumps(request.headers.to_dict()),
                "path": request.path,
                "query": request.raw_query,
                "method": request.method,
                "user_agent": request.user_agent,
                "source_ip": request.source_ip,
            },
        )
        response = await _dispatch(request, router, chains, error_handlers, config, log)
        return _complete(response, trace_id, log, config).to_event()
    finally:
        trace_id_var.reset(trace_token)
        request_var.reset(request_token)


async def _dispatch(
    request: Request,
    router: Router,
    chains: Mapping[int, Chain],
    error_handlers: dict[int | type, Callable[..., Any]],
    config: AppConfig,
    log: RequestLogger,
) -> Response:
    try:
        match = router.match(request.method, request.path)
        if match is None:
            raise NotFound(f"endpoint not found: {request.method} {request.path}")

        request = request.with_path_params(match.path_params)
        request_var.set(request)
        response = await chains[id(match.route)](request)
        if response is None:
            raise Unimplemented("no response from handler")
        return response
    except HTTPError as exc:
        return await handle_http_error(exc, request, error_handlers, log)
    except Exception as exc:
        return await handle_internal_error(exc, request, error_handlers, log, debug=config.debug)


def _complete(
    response: Response,
    trace_id: str,
    log: RequestLogger,
    config: AppConfig,
) -> Response:
    """Set the trace header exactly once and log the outcome."""
    response = response.without_header(config.trace_header).with_header(
        config.trace_header, trace_id
    )

    end = log.bind(status_code=response.status)
    if response.status < 400:
        end.info("End")
    elif len(response.body_bytes) < config.max_logged_body:
        body = response.body_bytes.decode("utf-8", errors="replace")
        end.error("End", extra={"body": body})
    else:
        end.error("End")
    return response
