"""Handler protocol, Next type alias, and the explicit handler chain.

A chain handler is any callable matching::

    async def my_handler(request: Request, next: Next) -> Response | None: ...

No base class required. The framework checks the shape, not the lineage.
Terminal handlers that never delegate may take just ``request``.

``next`` is an explicit continuation bound to the rest of the chain. It
returns ``None`` when called past the last handler, which the dispatcher
reports as "no response from handler".
"""

from collections.abc import Awaitable, Callable, Sequence
from typing import Any, Protocol

from lambdakit._internal.invoke import invoke, wants_next
from lambdakit._internal.types import Handler
from lambdakit.http.request import Request
from lambdakit.http.response import Response, json_response, text_response

# The rest of the chain, as seen by one handler
type Next = Callable[[Request], Awaitable[Response | None]]


class Middleware(Protocol):
    """Protocol for chain handlers that delegate.

    Accepts both functions and callable objects::

        # Function handler
        async def timing(request: Request, next: Next) -> Response | None:
            start = time.monotonic()
            response = await next(request)
            elapsed = time.monotonic() - start
            return response and response.with_header("X-Time", f"{elapsed:.3f}")

        # Class handler
        class RequestVerifier:
            async def __call__(self, request: Request, next: Next) -> Response | None:
                ...
    """

    async def __call__(self, request: Request, next: Next) -> Response | None: ...


async def _end_of_chain(request: Request) -> None:  # noqa: ARG001
    return None


def to_response(result: Any) -> Response | None:
    """Normalize a handler return value.

    ``Response`` passes through, ``None`` stays ``None``, ``str`` becomes
    text, ``dict``/``list`` become JSON, ``(value, status)`` sets the status.
    """
    if result is None or isinstance(result, Response):
        return result
    if isinstance(result, tuple) and len(result) == 2 and isinstance(result[1], int):
        inner = to_response(result[0])
        return inner.with_status(result[1]) if inner is not None else None
    if isinstance(result, str):
        return text_response(result)
    if isinstance(result, (dict, list)):
        return json_response(result)
    if isinstance(result, bytes):
        return Response(body=result, content_type="application/octet-stream")
    msg = f"Handler returned unsupported type {type(result).__name__}"
    raise TypeError(msg)


class Chain:
    """An ordered handler chain bound to one route.

    Each handler receives an explicit ``next`` for the remainder of the
    chain instead of finding it in ambient request state. The chain is
    immutable and holds no per-request data, so one instance serves
    concurrent requests.
    """

    __slots__ = ("_handlers", "_wants_next")

    def __init__(self, handlers: Sequence[Handler]) -> None:
        self._handlers: tuple[Handler, ...] = tuple(handlers)
        self._wants_next: tuple[bool, ...] = tuple(wants_next(h) for h in self._handlers)

    def __len__(self) -> int:
        return len(self._handlers)

    @property
    def handlers(self) -> tuple[Handler, ...]:
        return self._handlers

    async def __call__(self, request: Request) -> Response | None:
        return await self._step(0)(request)

    def _step(self, index: int) -> Next:
        if index >= len(self._handlers):
            return _end_of_chain

        handler = self._handlers[index]
        takes_next = self._wants_next[index]

        async def run(req: Request) -> Response | None:
            if takes_next:
                result = await invoke(handler, req, self._step(index + 1))
            else:
                result = await invoke(handler, req)
            return to_response(result)

        return run
