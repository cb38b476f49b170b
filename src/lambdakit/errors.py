"""Lambdakit exception hierarchy.

Shared across the router, handler chain, verifier, and storage wrapper so
every module raises and catches the same types.
"""

from dataclasses import dataclass


class LambdakitError(Exception):
    """Base for all lambdakit-specific errors."""


class ConfigurationError(LambdakitError):
    """Raised when app, route, or verifier configuration is invalid.

    Typically caught during ``App._freeze()`` or at import time.
    """


@dataclass(frozen=True, slots=True)
class HTTPError(LambdakitError):
    """An error that maps directly to an HTTP status code.

    Raised by handlers or returned as a response by middleware. The
    dispatcher renders it into a structured JSON response.
    """

    status: int
    detail: str = ""
    headers: tuple[tuple[str, str], ...] = ()

    def __str__(self) -> str:
        if self.detail:
            return f"{self.status}: {self.detail}"
        return str(self.status)


class BadRequest(HTTPError):  # noqa: N818
    """400 — malformed request, e.g. an undecodable signature header."""

    def __init__(self, detail: str = "Bad Request") -> None:
        super().__init__(status=400, detail=detail)


class Unauthorized(HTTPError):  # noqa: N818
    """401 — credentials are required but missing."""

    def __init__(self, detail: str = "Unauthorized") -> None:
        super().__init__(status=401, detail=detail)


class NotFound(HTTPError):  # noqa: N818
    """404 — no route matched, or a stored object is absent."""

    def __init__(self, detail: str = "Not Found") -> None:
        super().__init__(status=404, detail=detail)


class NotAcceptable(HTTPError):  # noqa: N818
    """406 — stale timestamp or signature mismatch."""

    def __init__(self, detail: str = "Not Acceptable") -> None:
        super().__init__(status=406, detail=detail)


class InternalServerError(HTTPError):  # noqa: N818
    """500 — a handler failed unexpectedly."""

    def __init__(self, detail: str = "Internal Server Error") -> None:
        super().__init__(status=500, detail=detail)


class Unimplemented(HTTPError):  # noqa: N818
    """501 — the matched handler chain produced no response."""

    def __init__(self, detail: str = "Not Implemented") -> None:
        super().__init__(status=501, detail=detail)


# -- Storage --


class StorageError(LambdakitError):
    """A storage call failed.

    ``operation`` names the failing service call (``s3.GetObject``) so the
    message reads like ``s3.GetObject: <cause>``.
    """

    def __init__(self, operation: str, message: str) -> None:
        super().__init__(f"{operation}: {message}")
        self.operation = operation
        self.message = message


class ObjectNotFound(StorageError):  # noqa: N818
    """The requested object does not exist."""

    def __init__(self, operation: str, key: str) -> None:
        super().__init__(operation, f"object not found: {key}")
        self.key = key


class PartialDeleteError(StorageError):
    """A batch delete left some objects behind."""

    def __init__(self, operation: str, remaining: tuple[str, ...]) -> None:
        super().__init__(operation, f"some ids cannot be deleted: {list(remaining)}")
        self.remaining = remaining


class WaitTimeout(StorageError):  # noqa: N818
    """A bounded consistency wait expired."""
