"""Lambdakit application class.

Mutable during setup (route registration, app-wide handlers, error
renderers). Frozen on the first invocation, after which the route table
is shared read-only by every dispatch the Lambda runtime makes.
"""

import threading
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from typing import Any

import anyio

from lambdakit._internal.types import ErrorHandler, Handler
from lambdakit.config import AppConfig
from lambdakit.errors import ConfigurationError
from lambdakit.log import configure_logging
from lambdakit.middleware.protocol import Chain
from lambdakit.routing.route import Route
from lambdakit.routing.router import ANY_METHOD, Router, parse_path
from lambdakit.server.handler import handle_event


@dataclass(slots=True)
class _PendingRoute:
    """A route waiting to be compiled."""

    path: str
    methods: tuple[str, ...]
    handlers: tuple[Handler, ...]
    name: str | None


class App:
    """The lambdakit application: route table plus dispatcher.

    Usage::

        app = App()
        app.use(RequestVerifier(public_key))

        @app.route("/items/{id:int}")
        async def get_item(request):
            return {"id": request.path_params["id"]}

        handler = app  # Lambda handler: "module.app"

    Thread safety:
        Setup is single-threaded (decorators at import time). The freeze
        transition uses a Lock + double-check so exactly one thread
        compiles the table, even if the host calls in concurrently.
    """

    __slots__ = (
        "_chains",
        "_error_handlers",
        "_freeze_lock",
        "_frozen",
        "_middleware_list",
        "_pending_routes",
        "_router",
        "config",
    )

    def __init__(self, config: AppConfig | None = None, *, setup_logging: bool = True) -> None:
        self.config: AppConfig = config or AppConfig()
        self._pending_routes: list[_PendingRoute] = []
        self._middleware_list: list[Handler] = []
        self._error_handlers: dict[int | type, ErrorHandler] = {}
        self._frozen: bool = False
        self._freeze_lock: threading.Lock = threading.Lock()

        # Compiled state, set during _freeze()
        self._router: Router | None = None
        self._chains: dict[int, Chain] = {}

        if setup_logging:
            configure_logging(self.config.log_level, self.config.log_format)

    # -- Route registration --

    def add_route(
        self,
        methods: str | Sequence[str],
        path: str,
        *handlers: Handler,
        name: str | None = None,
    ) -> None:
        """Register a handler chain for *methods* on *path*.

        Handlers run in order; each receives ``next`` for the rest of the
        chain. App-wide handlers from ``use()`` run before these.
        """
        self._check_not_frozen()
        if not handlers:
            msg = f"Route {path!r} needs at least one handler."
            raise ConfigurationError(msg)
        parse_path(path)  # fail at import time, not on the first request
        if isinstance(methods, str):
            methods = (methods,)
        normalized = tuple(m.upper() for m in methods)
        self._pending_routes.append(_PendingRoute(path, normalized, tuple(handlers), name))

    def route(
        self,
        path: str,
        *,
        methods: Sequence[str] | None = None,
        name: str | None = None,
        before: Sequence[Handler] = (),
    ) -> Callable[[Handler], Handler]:
        """Register a terminal handler via decorator.

        Args:
            path: URL path pattern. Use ``{param}`` for path parameters.
            methods: HTTP methods. Defaults to ``["GET"]``.
            name: Optional route name.
            before: Route-specific handlers to run ahead of this one.
        """

        def decorator(func: Handler) -> Handler:
            self.add_route(methods or ("GET",), path, *before, func, name=name)
            return func

        return decorator

    def get(self, path: str, *handlers: Handler, name: str | None = None) -> None:
        self.add_route("GET", path, *handlers, name=name)

    def post(self, path: str, *handlers: Handler, name: str | None = None) -> None:
        self.add_route("POST", path, *handlers, name=name)

    def put(self, path: str, *handlers: Handler, name: str | None = None) -> None:
        self.add_route("PUT", path, *handlers, name=name)

    def patch(self, path: str, *handlers: Handler, name: str | None = None) -> None:
        self.add_route("PATCH", path, *handlers, name=name)

    def delete(self, path: str, *handlers: Handler, name: str | None = None) -> None:
        self.add_route("DELETE", path, *handlers, name=name)

    def any(self, path: str, *handlers: Handler, name: str | None = None) -> None:
        """Register a chain that answers every method on *path*."""
        self.add_route(ANY_METHOD, path, *handlers, name=name)

    # -- App-wide handlers --

    def use(self, handler: Handler) -> None:
        """Prefix every route's chain with *handler* (e.g. a verifier)."""
        self._check_not_frozen()
        self._middleware_list.append(handler)

    def error(
        self,
        code_or_exception: int | type[Exception],
    ) -> Callable[[ErrorHandler], ErrorHandler]:
        """Register an error renderer via decorator."""

        def decorator(func: ErrorHandler) -> ErrorHandler:
            self._check_not_frozen()
            self._error_handlers[code_or_exception] = func
            return func

        return decorator

    # -- Introspection --

    @property
    def routes(self) -> list[Route]:
        """Compiled routes. Freezes the app."""
        self._ensure_frozen()
        assert self._router is not None
        return self._router.routes

    # -- Lambda interface --

    def __call__(self, event: dict[str, Any], context: Any = None) -> dict[str, Any]:
        """Synchronous Lambda entry point.

        Point the function's handler setting at the app instance. Each
        invocation runs the async pipeline to completion on a fresh
        event loop; nothing outlives the invocation.
        """
        return anyio.run(self.handle, event, context)

    async def handle(self, event: dict[str, Any], context: Any = None) -> dict[str, Any]:
        """Dispatch one gateway event and return the gateway response payload."""
        self._ensure_frozen()
        assert self._router is not None
        return await handle_event(
            event,
            context,
            router=self._router,
            chains=self._chains,
            error_handlers=self._error_handlers,
            config=self.config,
        )

    # -- Freeze --

    def _ensure_frozen(self) -> None:
        """Thread-safe freeze with double-check locking."""
        if self._frozen:
            return
        with self._freeze_lock:
            if self._frozen:
                return
            self._freeze()

    def _freeze(self) -> None:
        """Compile the app into its frozen runtime state.

        MUST only be called while holding _freeze_lock.
        """
        prefix = tuple(self._middleware_list)
        router = Router()
        chains: dict[int, Chain] = {}
        for pending in self._pending_routes:
            route = Route(
                path=pending.path,
                methods=frozenset(pending.methods),
                handlers=prefix + pending.handlers,
                name=pending.name,
            )
            router.add(route)
            chains[id(route)] = Chain(route.handlers)
        router.compile()

        self._router = router
        self._chains = chains
        self._frozen = True

    def _check_not_frozen(self) -> None:
        if self._frozen:
            msg = (
                "Cannot modify the app after it has started serving requests. "
                "Register routes and handlers at import time."
            )
            raise ConfigurationError(msg)
