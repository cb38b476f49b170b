"""Middleware — Protocol-based chain handlers, no inheritance required.

A chain handler is any callable matching:
    async def handler(request: Request, next: Next) -> Response | None

Built-in middleware:
    RequestVerifier -- ECDSA signature check over a canonicalized request
"""

from lambdakit.middleware.protocol import Chain, Middleware, Next
from lambdakit.middleware.verifier import RequestVerifier, create_request_verifier

__all__ = [
    "Chain",
    "Middleware",
    "Next",
    "RequestVerifier",
    "create_request_verifier",
]
