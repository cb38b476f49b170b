"""Immutable HTTP request decoded from a gateway event.

The request is received data that doesn't change: every field is frozen
at creation, the body included. Lambda hands over the whole payload at
once, so there is nothing to stream.
"""

from __future__ import annotations

import base64
import json as json_module
from dataclasses import dataclass, field, replace
from typing import Any

from lambdakit.http.headers import Headers
from lambdakit.http.query import QueryParams


@dataclass(frozen=True, slots=True)
class Request:
    """An immutable HTTP request.

    ``path`` is the raw path as received (``rawPath``) and drives routing.
    ``gateway_path`` is ``requestContext.http.path``, the path signers
    canonicalize; the two only differ when the gateway rewrites the path.
    ``raw_query`` is the undecoded query string, also signed verbatim, and
    ``query`` offers the parsed view.
    """

    method: str
    path: str
    raw_query: str = ""
    headers: Headers = field(default_factory=Headers)
    body: bytes = b""
    source_ip: str = ""
    user_agent: str = ""
    path_params: dict[str, str] = field(default_factory=dict)
    request_id: str = ""
    cookies: tuple[str, ...] = ()
    gateway_path: str = ""

    # -- Computed properties --

    @property
    def query(self) -> QueryParams:
        """Parsed query parameters."""
        return QueryParams(self.raw_query)

    @property
    def content_type(self) -> str | None:
        """The Content-Type header value."""
        return self.headers.get("content-type")

    @property
    def signed_path(self) -> str:
        """The path covered by request signatures."""
        return self.gateway_path or self.path

    @property
    def url(self) -> str:
        """Path plus query string."""
        if self.raw_query:
            return f"{self.path}?{self.raw_query}"
        return self.path

    # -- Body access --

    def text(self) -> str:
        """The body decoded as UTF-8."""
        return self.body.decode("utf-8")

    def json(self) -> Any:
        """Parse the body as JSON."""
        return json_module.loads(self.body)

    def with_path_params(self, path_params: dict[str, str]) -> Request:
        """Return a copy carrying the params extracted by the router."""
        return replace(self, path_params=path_params)

    # -- Factory --

    @classmethod
    def from_event(cls, event: dict[str, Any]) -> Request:
        """Create a Request from an API Gateway HTTP API (v2) event.

        ``requestContext.http`` carries method, path, source IP and user
        agent. ``rawPath`` wins over ``requestContext.http.path`` because
        it is what the client sent.
        """
        request_context = event.get("requestContext") or {}
        http = request_context.get("http") or {}
        headers = Headers(event.get("headers") or {})

        raw_body = event.get("body") or ""
        if event.get("isBase64Encoded"):
            body = base64.b64decode(raw_body)
        elif isinstance(raw_body, bytes):
            body = raw_body
        else:
            body = raw_body.encode("utf-8")

        return cls(
            method=(http.get("method") or event.get("httpMethod") or "GET").upper(),
            path=event.get("rawPath") or http.get("path") or "/",
            raw_query=event.get("rawQueryString") or "",
            headers=headers,
            body=body,
            source_ip=http.get("sourceIp", ""),
            user_agent=http.get("userAgent") or headers.get("user-agent") or "",
            request_id=request_context.get("requestId", ""),
            cookies=tuple(event.get("cookies") or ()),
            gateway_path=http.get("path") or "",
        )
