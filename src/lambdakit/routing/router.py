"""Compiled router with trie-based path matching.

Routes are registered during setup and compiled into an immutable
lookup structure when the app freezes. After ``compile()`` the table is
only read, so one router can serve concurrent dispatches without locks.
"""

import re
from dataclasses import dataclass, field

from lambdakit.errors import ConfigurationError
from lambdakit.routing.params import CONVERTERS
from lambdakit.routing.route import PathSegment, Route, RouteMatch

ANY_METHOD = "*"


def parse_path(path: str) -> list[PathSegment]:
    """Parse a route pattern into segments.

    Examples::

        "/items"             -> [PathSegment("items")]
        "/items/{id}"        -> [PathSegment("items"), PathSegment("{id}", is_param=True, ...)]
        "/items/{id:int}"    -> [..., PathSegment("{id:int}", is_param=True, param_type="int")]
        "/files/{key:path}"  -> [..., PathSegment("{key:path}", is_param=True, param_type="path")]

    Raises ``ConfigurationError`` for ``<param>`` placeholders and
    unknown converters.
    """
    segments: list[PathSegment] = []
    parts = [p for p in path.strip("/").split("/") if p]
    for index, part in enumerate(parts):
        if part.startswith("<") and part.endswith(">"):
            msg = f"Route {path!r} uses <param> syntax; use {{param}} instead."
            raise ConfigurationError(msg)
        if not (part.startswith("{") and part.endswith("}")):
            segments.append(PathSegment(value=part))
            continue

        name, _, param_type = part[1:-1].partition(":")
        param_type = param_type or "str"
        if param_type not in CONVERTERS:
            msg = f"Route {path!r} uses unknown converter {param_type!r}."
            raise ConfigurationError(msg)
        if param_type == "path" and index != len(parts) - 1:
            msg = f"Route {path!r}: a {{name:path}} segment must come last."
            raise ConfigurationError(msg)
        segments.append(
            PathSegment(value=part, is_param=True, param_name=name, param_type=param_type)
        )
    return segments


@dataclass(slots=True)
class _Node:
    """A node in the route trie. Mutable during compilation only."""

    static: dict[str, "_Node"] = field(default_factory=dict)
    params: list["_ParamEdge"] = field(default_factory=list)
    catch_all: "_CatchAll | None" = None
    routes: dict[str, Route] = field(default_factory=dict)


@dataclass(slots=True)
class _ParamEdge:
    name: str
    param_type: str
    regex: re.Pattern[str]
    node: _Node


@dataclass(slots=True)
class _CatchAll:
    name: str
    routes: dict[str, Route] = field(default_factory=dict)


def _lookup(routes: dict[str, Route], method: str) -> Route | None:
    return routes.get(method) or routes.get(ANY_METHOD)


def _param_edge(node: _Node, name: str, param_type: str) -> _ParamEdge:
    """Reuse the edge with this name and converter, or add a new one."""
    for edge in node.params:
        if edge.name == name and edge.param_type == param_type:
            return edge
    edge = _ParamEdge(
        name=name,
        param_type=param_type,
        regex=re.compile(f"^{CONVERTERS[param_type]}$"),
        node=_Node(),
    )
    node.params.append(edge)
    return edge


class Router:
    """Compiled router with trie-based path matching.

    Usage::

        router = Router()
        router.add(Route("/items/{id:int}", frozenset({"GET"}), (verify, get_item)))
        router.compile()
        match = router.match("GET", "/items/42")
    """

    __slots__ = ("_compiled", "_root")

    def __init__(self) -> None:
        self._root = _Node()
        self._compiled = False

    @property
    def compiled(self) -> bool:
        return self._compiled

    def add(self, route: Route) -> None:
        """Add a route. Must be called before compile()."""
        if self._compiled:
            msg = "Cannot add routes after compilation."
            raise ConfigurationError(msg)

        node = self._root
        for seg in parse_path(route.path):
            if seg.param_type == "path" and seg.is_param:
                name = seg.param_name or "path"
                if node.catch_all is None:
                    node.catch_all = _CatchAll(name=name)
                elif node.catch_all.name != name:
                    msg = (
                        f"Route {route.path!r}: catch-all {{{name}:path}} conflicts with "
                        f"{{{node.catch_all.name}:path}} at the same position."
                    )
                    raise ConfigurationError(msg)
                for method in route.methods:
                    node.catch_all.routes[method] = route
                return

            if seg.is_param:
                node = _param_edge(node, seg.param_name or "", seg.param_type).node
            else:
                node = node.static.setdefault(seg.value, _Node())

        for method in route.methods:
            node.routes[method] = route

    @property
    def routes(self) -> list[Route]:
        """All registered routes, each listed once."""
        seen: set[int] = set()
        result: list[Route] = []
        stack = [self._root]
        while stack:
            node = stack.pop()
            candidates = list(node.routes.values())
            if node.catch_all is not None:
                candidates.extend(node.catch_all.routes.values())
            for route in candidates:
                if id(route) not in seen:
                    seen.add(id(route))
                    result.append(route)
            stack.extend(node.static.values())
            stack.extend(edge.node for edge in node.params)
        return result

    def compile(self) -> None:
        """Freeze the router. No more routes can be added."""
        self._compiled = True

    def match(self, method: str, path: str) -> RouteMatch | None:
        """Match a request method and path against the compiled routes.

        Returns ``None`` when no route serves this (method, path) pair.
        A path that exists under a different method is also ``None``:
        there is no partial match.
        """
        parts = [p for p in path.strip("/").split("/") if p]
        return self._match(self._root, parts, 0, {}, method.upper())

    def _match(
        self,
        node: _Node,
        parts: list[str],
        index: int,
        params: dict[str, str],
        method: str,
    ) -> RouteMatch | None:
        if index == len(parts):
            route = _lookup(node.routes, method)
            return RouteMatch(route=route, path_params=params) if route else None

        part = parts[index]

        # Static beats param beats catch-all
        child = node.static.get(part)
        if child is not None:
            found = self._match(child, parts, index + 1, params, method)
            if found is not None:
                return found

        # Param edges in registration order
        for edge in node.params:
            if not edge.regex.match(part):
                continue
            found = self._match(
                edge.node, parts, index + 1, {**params, edge.name: part}, method
            )
            if found is not None:
                return found

        if node.catch_all is not None:
            route = _lookup(node.catch_all.routes, method)
            if route is not None:
                remaining = "/".join(parts[index:])
                return RouteMatch(route=route, path_params={**params, node.catch_all.name: remaining})

        return None
