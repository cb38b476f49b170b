"""Tests for lambdakit.app — registration, freezing, and end-to-end dispatch."""

import json
from types import SimpleNamespace

import pytest

from lambdakit.app import App
from lambdakit.config import AppConfig
from lambdakit.context import get_request, get_trace_id
from lambdakit.errors import ConfigurationError, HTTPError, NotFound
from lambdakit.http.response import Response
from lambdakit.middleware import RequestVerifier
from lambdakit.security.signing import sign_request
from lambdakit.testing import TestClient, make_event


def _app(**config) -> App:
    return App(AppConfig(**config), setup_logging=False)


def _trace_values(payload_headers: dict[str, str]) -> list[str]:
    return [v for k, v in payload_headers.items() if k.lower() == "x-trace-id"]


class TestRegistration:
    def test_route_decorator(self) -> None:
        app = _app()

        @app.route("/items")
        def items(request):
            return "items"

        assert len(app._pending_routes) == 1
        assert app._pending_routes[0].methods == ("GET",)

    def test_route_with_methods_and_before(self) -> None:
        app = _app()

        async def gate(request, next):
            return await next(request)

        @app.route("/items", methods=["get", "post"], before=[gate])
        def items(request):
            return "items"

        pending = app._pending_routes[0]
        assert pending.methods == ("GET", "POST")
        assert pending.handlers == (gate, items)

    def test_route_requires_handler(self) -> None:
        with pytest.raises(ConfigurationError, match="at least one handler"):
            _app().add_route("GET", "/items")

    def test_bad_path_fails_at_registration(self) -> None:
        with pytest.raises(ConfigurationError):
            _app().get("/items/<id>", lambda request: "x")

    def test_error_decorator(self) -> None:
        app = _app()

        @app.error(404)
        def not_found():
            return "gone"

        assert 404 in app._error_handlers

    def test_frozen_rejects_changes(self) -> None:
        app = _app()
        app.get("/", lambda request: "x")
        app._ensure_frozen()
        with pytest.raises(ConfigurationError):
            app.get("/late", lambda request: "x")
        with pytest.raises(ConfigurationError):
            app.use(lambda request, next: next(request))

    def test_routes_property_freezes(self) -> None:
        app = _app()
        app.get("/a", lambda request: "a")
        app.post("/b", lambda request: "b")
        assert {r.path for r in app.routes} == {"/a", "/b"}
        assert app._frozen is True

    def test_use_prefixes_every_chain(self) -> None:
        app = _app()

        async def gate(request, next):
            return await next(request)

        def terminal(request):
            return "x"

        app.use(gate)
        app.get("/a", terminal)
        assert app.routes[0].handlers == (gate, terminal)


class TestDispatch:
    @pytest.mark.anyio
    async def test_path_params_and_json(self) -> None:
        app = _app()

        @app.route("/items/{id:int}")
        async def get_item(request):
            return {"id": int(request.path_params["id"])}

        async with TestClient(app) as client:
            response = await client.get("/items/42")
        assert response.status == 200
        assert response.json() == {"id": 42}
        assert response.headers["content-type"] == "application/json"

    @pytest.mark.anyio
    async def test_not_found_invokes_no_handler(self) -> None:
        app = _app()
        calls: list[str] = []

        def terminal(request):
            calls.append("x")
            return "x"

        app.use(lambda request, next: next(request))
        app.get("/items", terminal)
        async with TestClient(app) as client:
            response = await client.get("/nope")
        assert response.status == 404
        assert response.json() == {"code": 404, "message": "endpoint not found: GET /nope"}
        assert calls == []
        assert _trace_values(response.raw_headers)

    @pytest.mark.anyio
    async def test_method_mismatch_is_404(self) -> None:
        app = _app()
        app.post("/items", lambda request: "created")
        async with TestClient(app) as client:
            response = await client.get("/items")
        assert response.status == 404
        assert response.json()["message"] == "endpoint not found: GET /items"

    @pytest.mark.anyio
    async def test_any_method(self) -> None:
        app = _app()
        app.any("/hook", lambda request: request.method)
        async with TestClient(app) as client:
            assert (await client.delete("/hook")).text == "DELETE"
            assert (await client.put("/hook", body=b"x")).text == "PUT"

    @pytest.mark.anyio
    async def test_panic_becomes_500(self, logs: pytest.LogCaptureFixture) -> None:
        app = _app()

        def boom(request):
            raise RuntimeError("boom")

        app.get("/boom", boom)
        async with TestClient(app) as client:
            response = await client.get("/boom", headers={"X-Trace-Id": "t-9"})
        assert response.status == 500
        assert response.json() == {"code": 500, "message": "boom"}
        assert _trace_values(response.raw_headers) == ["t-9"]
        panic = next(r for r in logs.records if r.getMessage() == "Panic")
        assert panic.exc_info is not None
        assert panic.trace_id == "t-9"

    @pytest.mark.anyio
    async def test_debug_includes_exception_type(self) -> None:
        app = _app(debug=True)

        def boom(request):
            raise KeyError("k")

        app.get("/boom", boom)
        async with TestClient(app) as client:
            response = await client.get("/boom")
        assert response.json()["message"] == "KeyError: 'k'"

    @pytest.mark.anyio
    async def test_no_response_is_501(self) -> None:
        app = _app()

        async def passthrough(request, next):
            return await next(request)

        app.get("/empty", passthrough)
        app.get("/none", lambda request: None)
        async with TestClient(app) as client:
            for path in ("/empty", "/none"):
                response = await client.get(path)
                assert response.status == 501
                assert response.json() == {"code": 501, "message": "no response from handler"}

    @pytest.mark.anyio
    async def test_http_error_raised_by_handler(self) -> None:
        app = _app()

        def missing(request):
            raise NotFound("no such item")

        app.get("/items/{id}", missing)
        async with TestClient(app) as client:
            response = await client.get("/items/1")
        assert response.status == 404
        assert response.json()["message"] == "no such item"

    @pytest.mark.anyio
    async def test_post_json_body(self) -> None:
        app = _app()
        app.post("/echo", lambda request: (request.json(), 201))
        async with TestClient(app) as client:
            response = await client.post("/echo", json={"a": [1, 2]})
        assert response.status == 201
        assert response.json() == {"a": [1, 2]}

    @pytest.mark.anyio
    async def test_context_visible_in_handler(self) -> None:
        app = _app()

        def whoami(request):
            return {"path": get_request().path, "trace": get_trace_id()}

        app.get("/me", whoami)
        async with TestClient(app) as client:
            response = await client.get("/me", headers={"X-Trace-Id": "abc"})
        assert response.json() == {"path": "/me", "trace": "abc"}
        assert get_trace_id() == ""

    @pytest.mark.anyio
    async def test_malformed_event_is_400(self) -> None:
        app = _app()
        app.get("/", lambda request: "x")
        event = make_event("POST", "/")
        event["body"] = "abc"
        event["isBase64Encoded"] = True
        payload = await app.handle(event)
        assert payload["statusCode"] == 400
        assert _trace_values(payload["headers"])


class TestTraceHeader:
    @pytest.mark.anyio
    async def test_echoes_client_trace_id(self) -> None:
        app = _app()
        app.get("/", lambda request: "x")
        async with TestClient(app) as client:
            response = await client.get("/", headers={"x-trace-id": "client-1"})
        assert _trace_values(response.raw_headers) == ["client-1"]

    @pytest.mark.anyio
    async def test_falls_back_to_gateway_request_id(self) -> None:
        app = _app()
        app.get("/", lambda request: "x")
        payload = await app.handle(make_event("GET", "/", request_id="gw-1"))
        assert _trace_values(payload["headers"]) == ["gw-1"]

    @pytest.mark.anyio
    async def test_falls_back_to_lambda_request_id(self) -> None:
        app = _app()
        app.get("/", lambda request: "x")
        event = make_event("GET", "/", request_id="")
        payload = await app.handle(event, SimpleNamespace(aws_request_id="lambda-1"))
        assert _trace_values(payload["headers"]) == ["lambda-1"]

    @pytest.mark.anyio
    async def test_handler_trace_header_replaced(self) -> None:
        app = _app()
        app.get("/", lambda request: Response("x").with_header("X-Trace-Id", "mine"))
        async with TestClient(app) as client:
            response = await client.get("/", headers={"X-Trace-Id": "t-1"})
        assert _trace_values(response.raw_headers) == ["t-1"]

    @pytest.mark.anyio
    async def test_custom_trace_header(self) -> None:
        app = _app(trace_header="X-Request-Id")
        app.get("/", lambda request: "x")
        async with TestClient(app) as client:
            response = await client.get("/", headers={"X-Request-Id": "r-1"})
        assert response.headers["x-request-id"] == "r-1"
        assert "x-trace-id" not in response.headers


class TestErrorHandlers:
    @pytest.mark.anyio
    async def test_by_status(self) -> None:
        app = _app()

        @app.error(404)
        def not_found(request):
            return f"nothing at {request.path}"

        async with TestClient(app) as client:
            response = await client.get("/missing")
        assert response.status == 404
        assert response.text == "nothing at /missing"

    @pytest.mark.anyio
    async def test_by_exception_type(self) -> None:
        app = _app()

        @app.error(ValueError)
        async def bad_value(request, exc):
            return {"error": str(exc)}, 422

        def parse(request):
            raise ValueError("not a number")

        app.get("/parse", parse)
        async with TestClient(app) as client:
            response = await client.get("/parse")
        assert response.status == 422
        assert response.json() == {"error": "not a number"}

    @pytest.mark.anyio
    async def test_failing_error_handler_falls_back(self) -> None:
        app = _app()

        @app.error(500)
        def broken():
            raise RuntimeError("handler broke")

        def boom(request):
            raise RuntimeError("boom")

        app.get("/boom", boom)
        async with TestClient(app) as client:
            response = await client.get("/boom")
        assert response.status == 500
        assert response.json()["message"] == "boom"

    @pytest.mark.anyio
    async def test_custom_http_error_type(self) -> None:
        app = _app()

        def teapot(request):
            raise HTTPError(status=418, detail="short and stout")

        app.get("/tea", teapot)
        async with TestClient(app) as client:
            response = await client.get("/tea")
        assert response.status == 418
        assert response.json() == {"code": 418, "message": "short and stout"}


class TestSignedEndToEnd:
    @pytest.mark.anyio
    async def test_signed_request_succeeds(self, private_key, public_key) -> None:
        app = _app()
        app.use(RequestVerifier(public_key))

        @app.route("/items/{id:int}")
        async def get_item(request):
            return {"id": int(request.path_params["id"])}

        headers = sign_request(private_key, "GET", "/items/42", "v=1", {"X-Trace-Id": "t-42"})
        async with TestClient(app) as client:
            response = await client.get("/items/42?v=1", headers=headers)
        assert response.status == 200
        assert response.json() == {"id": 42}
        assert _trace_values(response.raw_headers) == ["t-42"]

    @pytest.mark.anyio
    async def test_tampered_request_rejected(self, private_key, public_key) -> None:
        app = _app()
        app.use(RequestVerifier(public_key))
        calls: list[str] = []

        def get_item(request):
            calls.append(request.path)
            return "x"

        app.get("/items/{id}", get_item)
        headers = sign_request(private_key, "GET", "/items/42", "", {"X-Trace-Id": "t"})
        async with TestClient(app) as client:
            response = await client.get("/items/43", headers=headers)
        assert response.status == 406
        assert response.json() == {"code": 406, "message": "invalid signature"}
        assert calls == []
        assert _trace_values(response.raw_headers) == ["t"]

    @pytest.mark.anyio
    async def test_oversized_timestamp_rejected_not_crashed(self, public_key) -> None:
        app = _app()
        app.use(RequestVerifier(public_key))
        app.get("/items", lambda request: "x")
        headers = {"X-Timestamp": "1" + "0" * 400, "X-Signature": "AAAA", "X-Trace-Id": "t"}
        async with TestClient(app) as client:
            response = await client.get("/items", headers=headers)
        assert response.status == 406
        assert response.json() == {"code": 406, "message": "malformed X-Timestamp header"}
        assert _trace_values(response.raw_headers) == ["t"]

    @pytest.mark.anyio
    async def test_unsigned_request_rejected(self, public_key) -> None:
        app = _app()
        app.get("/items", RequestVerifier(public_key), lambda request: "x")
        async with TestClient(app) as client:
            response = await client.get("/items")
        assert response.status == 406


class TestEndLog:
    @pytest.mark.anyio
    async def test_success_logs_info(self, logs: pytest.LogCaptureFixture) -> None:
        app = _app()
        app.get("/", lambda request: "x")
        async with TestClient(app) as client:
            await client.get("/?a=1", headers={"X-Trace-Id": "t"})
        start = next(r for r in logs.records if r.getMessage() == "Start")
        assert start.path == "/"
        assert start.query == "a=1"
        assert json.loads(start.header)["x-trace-id"] == "t"
        end = next(r for r in logs.records if r.getMessage() == "End")
        assert end.levelname == "INFO"
        assert end.status_code == 200

    @pytest.mark.anyio
    async def test_error_logs_small_body(self, logs: pytest.LogCaptureFixture) -> None:
        app = _app()
        async with TestClient(app) as client:
            await client.get("/missing")
        end = next(r for r in logs.records if r.getMessage() == "End")
        assert end.levelname == "ERROR"
        assert end.status_code == 404
        assert "endpoint not found" in end.body

    @pytest.mark.anyio
    async def test_error_omits_large_body(self, logs: pytest.LogCaptureFixture) -> None:
        app = _app(max_logged_body=10)
        async with TestClient(app) as client:
            await client.get("/missing")
        end = next(r for r in logs.records if r.getMessage() == "End")
        assert not hasattr(end, "body")


class TestLambdaEntryPoint:
    def test_sync_call(self) -> None:
        app = _app()
        app.get("/ping", lambda request: "pong")
        payload = app(make_event("GET", "/ping"), None)
        assert payload["statusCode"] == 200
        assert payload["body"] == "pong"
        assert payload["isBase64Encoded"] is False


class TestEndLogBound:
    @pytest.mark.anyio
    async def test_bound_counts_bytes(self, logs: pytest.LogCaptureFixture) -> None:
        app = _app(max_logged_body=40)

        @app.error(404)
        def not_found():
            return "é" * 30

        async with TestClient(app) as client:
            response = await client.get("/missing")
        assert len(response.text) == 30
        assert len(response.body) == 60
        end = next(r for r in logs.records if r.getMessage() == "End")
        assert not hasattr(end, "body")
