"""Lambdakit — route API Gateway events to verified handler chains.

Binds an HTTP-triggered AWS Lambda function to a compiled route table,
checks ECDSA request signatures, recovers from handler failures, and
tags every response with a trace id. Ships an async S3 bucket wrapper.

Basic usage::

    from lambdakit import App, RequestVerifier, load_public_key

    app = App()
    app.use(RequestVerifier(load_public_key(PEM)))

    @app.route("/items/{id:int}")
    async def get_item(request):
        return {"id": int(request.path_params["id"])}

    # Lambda handler setting: "module.app"

Object storage::

    from lambdakit.storage import S3Bucket, S3Config

    bucket = S3Bucket(S3Config(bucket="uploads"))
    await bucket.put("a/b", b"...")
"""

__version__ = "0.1.0"
__all__ = [
    "App",
    "AppConfig",
    "BadRequest",
    "ConfigurationError",
    "HTTPError",
    "LambdakitError",
    "Middleware",
    "Next",
    "NotAcceptable",
    "NotFound",
    "Request",
    "RequestVerifier",
    "Response",
    "Unimplemented",
    "VerifierConfig",
    "get_request",
    "get_trace_id",
    "json_response",
    "load_public_key",
    "sign_request",
    "text_response",
]


def __getattr__(name: str) -> object:
    """Lazy imports for public API.

    Keeps ``import lambdakit`` fast on cold starts while providing a
    clean top-level API.
    """
    if name == "App":
        from lambdakit.app import App

        return App

    if name in ("AppConfig", "VerifierConfig"):
        from lambdakit import config as _config

        return getattr(_config, name)

    if name == "Request":
        from lambdakit.http.request import Request

        return Request

    if name in ("Response", "json_response", "text_response"):
        from lambdakit.http import response as _resp

        return getattr(_resp, name)

    if name in ("Middleware", "Next"):
        from lambdakit.middleware import protocol as _mw

        return getattr(_mw, name)

    if name == "RequestVerifier":
        from lambdakit.middleware.verifier import RequestVerifier

        return RequestVerifier

    if name in ("load_public_key", "sign_request"):
        from lambdakit.security import signing as _signing

        return getattr(_signing, name)

    if name in ("get_request", "get_trace_id"):
        from lambdakit import context as _ctx

        return getattr(_ctx, name)

    if name in (
        "BadRequest",
        "ConfigurationError",
        "HTTPError",
        "LambdakitError",
        "NotAcceptable",
        "NotFound",
        "Unimplemented",
    ):
        from lambdakit import errors as _errors

        return getattr(_errors, name)

    msg = f"module {__name__!r} has no attribute {name!r}"
    raise AttributeError(msg)
