"""Test client for lambdakit applications.

Builds API Gateway HTTP API (v2) events, runs them through the same
``App.handle`` the Lambda runtime calls, and wraps the returned payload.
No HTTP involved.
"""

from __future__ import annotations

import base64
import json as json_module
import uuid
from dataclasses import dataclass
from typing import Any

from lambdakit.app import App
from lambdakit.http.headers import Headers


def make_event(
    method: str,
    path: str,
    *,
    query: str = "",
    headers: dict[str, str] | None = None,
    body: bytes | str | None = None,
    source_ip: str = "127.0.0.1",
    user_agent: str = "lambdakit-test",
    request_id: str | None = None,
    base64_body: bool = False,
) -> dict[str, Any]:
    """Build an API Gateway HTTP API (v2) event.

    A ``?query`` suffix on *path* is split into ``rawQueryString`` unless
    *query* is given.
    """
    if "?" in path and not query:
        path, query = path.split("?", 1)

    raw_body = body or b""
    if base64_body:
        raw = raw_body.encode("utf-8") if isinstance(raw_body, str) else raw_body
        body_field = base64.b64encode(raw).decode("ascii")
    else:
        body_field = raw_body.decode("utf-8") if isinstance(raw_body, bytes) else raw_body

    return {
        "version": "2.0",
        "routeKey": "$default",
        "rawPath": path,
        "rawQueryString": query,
        "headers": dict(headers or {}),
        "requestContext": {
            "http": {
                "method": method.upper(),
                "path": path,
                "protocol": "HTTP/1.1",
                "sourceIp": source_ip,
                "userAgent": user_agent,
            },
            "requestId": request_id if request_id is not None else uuid.uuid4().hex,
            "stage": "$default",
        },
        "body": body_field,
        "isBase64Encoded": base64_body,
    }


@dataclass(frozen=True, slots=True)
class TestResponse:
    """A gateway response payload with convenient accessors."""

    __test__ = False  # Tell pytest this is not a test class

    status: int
    headers: Headers
    raw_headers: dict[str, str]
    body: bytes

    @property
    def text(self) -> str:
        return self.body.decode("utf-8")

    def json(self) -> Any:
        return json_module.loads(self.body)

    @classmethod
    def from_event(cls, payload: dict[str, Any]) -> TestResponse:
        raw = payload.get("body") or ""
        body = base64.b64decode(raw) if payload.get("isBase64Encoded") else raw.encode("utf-8")
        return cls(
            status=payload["statusCode"],
            headers=Headers(payload["headers"]),
            raw_headers=payload["headers"],
            body=body,
        )


class TestClient:
    __test__ = False  # Tell pytest this is not a test class
    """Async test client for lambdakit applications.

    Usage::

        async with TestClient(app) as client:
            response = await client.get("/items/42")
            assert response.status == 200
    """

    __slots__ = ("app",)

    def __init__(self, app: App) -> None:
        self.app = app

    async def __aenter__(self) -> TestClient:
        self.app._ensure_frozen()
        return self

    async def __aexit__(self, *args: object) -> None:
        pass

    async def get(self, path: str, *, headers: dict[str, str] | None = None) -> TestResponse:
        """Send a GET request."""
        return await self.request("GET", path, headers=headers)

    async def post(
        self,
        path: str,
        *,
        headers: dict[str, str] | None = None,
        body: bytes | None = None,
        json: Any = None,
    ) -> TestResponse:
        """Send a POST request, JSON-encoding *json* when given."""
        merged = dict(headers or {})
        if json is not None:
            body = json_module.dumps(json).encode("utf-8")
            merged.setdefault("content-type", "application/json")
        return await self.request("POST", path, headers=merged, body=body)

    async def put(
        self,
        path: str,
        *,
        headers: dict[str, str] | None = None,
        body: bytes | None = None,
    ) -> TestResponse:
        """Send a PUT request."""
        return await self.request("PUT", path, headers=headers, body=body)

    async def delete(self, path: str, *, headers: dict[str, str] | None = None) -> TestResponse:
        """Send a DELETE request."""
        return await self.request("DELETE", path, headers=headers)

    async def request(
        self,
        method: str,
        path: str,
        *,
        headers: dict[str, str] | None = None,
        body: bytes | None = None,
        context: Any = None,
    ) -> TestResponse:
        """Send an arbitrary request through ``App.handle``."""
        event = make_event(method, path, headers=headers, body=body, base64_body=body is not None)
        payload = await self.app.handle(event, context)
        return TestResponse.from_event(payload)
