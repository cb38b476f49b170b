"""HTTP response with chainable .with_*() transformation API.

Each transformation returns a new Response. Immutable by convention,
built incrementally by design. ``to_event()`` renders the gateway's
response payload.
"""

from __future__ import annotations

import base64
import json as json_module
from collections.abc import Mapping
from dataclasses import dataclass, replace
from typing import Any

from lambdakit.errors import HTTPError

_TEXT_TYPES = ("text/", "application/json", "application/xml", "application/javascript")


@dataclass(frozen=True, slots=True)
class Response:
    """An HTTP response built through immutable transformations.

    Construct with a body, then chain ``.with_*()`` calls to set
    status and headers. Each call returns a new ``Response``.
    """

    body: str | bytes = ""
    status: int = 200
    content_type: str = "text/plain; charset=utf-8"
    headers: tuple[tuple[str, str], ...] = ()
    cookies: tuple[str, ...] = ()

    # -- Chainable transformations --

    def with_status(self, status: int) -> Response:
        """Return a new Response with a different status code."""
        return replace(self, status=status)

    def with_header(self, name: str, value: str) -> Response:
        """Return a new Response with an additional header."""
        return replace(self, headers=(*self.headers, (name, value)))

    def with_headers(self, headers: Mapping[str, str]) -> Response:
        """Return a new Response with additional headers."""
        new = tuple(headers.items())
        return replace(self, headers=(*self.headers, *new))

    def without_header(self, name: str) -> Response:
        """Return a new Response with every value of *name* removed."""
        name_lower = name.lower()
        kept = tuple((k, v) for k, v in self.headers if k.lower() != name_lower)
        return replace(self, headers=kept)

    def with_content_type(self, content_type: str) -> Response:
        """Return a new Response with a different content type."""
        return replace(self, content_type=content_type)

    def with_cookie(self, cookie: str) -> Response:
        """Return a new Response with an additional ``Set-Cookie`` value."""
        return replace(self, cookies=(*self.cookies, cookie))

    # -- Accessors --

    def header(self, name: str) -> str | None:
        """First value of header *name*, case-insensitive."""
        name_lower = name.lower()
        for k, v in self.headers:
            if k.lower() == name_lower:
                return v
        return None

    @property
    def body_bytes(self) -> bytes:
        """Body as bytes."""
        if isinstance(self.body, str):
            return self.body.encode("utf-8")
        return self.body

    @property
    def text(self) -> str:
        """Body as string."""
        if isinstance(self.body, bytes):
            return self.body.decode("utf-8")
        return self.body

    # -- Gateway payload --

    def to_event(self) -> dict[str, Any]:
        """Render the API Gateway HTTP API (v2) response payload.

        Headers always come out as a dict, even when empty. Repeated
        header names are joined with ``", "``. Binary bodies are base64
        encoded and flagged with ``isBase64Encoded``.
        """
        headers: dict[str, str] = {}
        has_content_type = any(k.lower() == "content-type" for k, _ in self.headers)
        if self.content_type and not has_content_type:
            headers["Content-Type"] = self.content_type
        for name, value in self.headers:
            if name in headers:
                headers[name] = f"{headers[name]}, {value}"
            else:
                headers[name] = value

        payload: dict[str, Any] = {"statusCode": self.status, "headers": headers}
        if self.cookies:
            payload["cookies"] = list(self.cookies)

        if isinstance(self.body, str):
            payload["body"] = self.body
            payload["isBase64Encoded"] = False
        elif _is_text(self.content_type):
            payload["body"] = self.body.decode("utf-8", errors="replace")
            payload["isBase64Encoded"] = False
        else:
            payload["body"] = base64.b64encode(self.body).decode("ascii")
            payload["isBase64Encoded"] = True
        return payload


def _is_text(content_type: str) -> bool:
    return content_type.startswith(_TEXT_TYPES)


# -- Construction helpers --


def json_response(data: Any, status: int = 200) -> Response:
    """A JSON response. ``data`` must be ``json.dumps``-serializable."""
    return Response(
        body=json_module.dumps(data, separators=(",", ":"), default=str),
        status=status,
        content_type="application/json",
    )


def text_response(text: str, status: int = 200) -> Response:
    """A plain-text response."""
    return Response(body=text, status=status)


def no_content() -> Response:
    """204 with an empty body."""
    return Response(status=204, content_type="")


def redirect(url: str, status: int = 302) -> Response:
    """A redirect to *url*."""
    return Response(status=status, content_type="").with_header("Location", url)


def error_response(exc: BaseException) -> Response:
    """Render an error as ``{"code": <status>, "message": <detail>}``.

    ``HTTPError`` keeps its status, detail, and extra headers. Anything
    else becomes a 500 carrying the exception's string form.
    """
    if isinstance(exc, HTTPError):
        status = exc.status
        message = exc.detail
        extra = exc.headers
    else:
        status = 500
        message = str(exc) or type(exc).__name__
        extra = ()
    response = json_response({"code": status, "message": message}, status=status)
    for name, value in extra:
        response = response.with_header(name, value)
    return response
