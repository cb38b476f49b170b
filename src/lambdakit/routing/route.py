"""Route and RouteMatch frozen dataclasses."""

from dataclasses import dataclass

from lambdakit._internal.types import Handler


@dataclass(frozen=True, slots=True)
class PathSegment:
    """A parsed segment of a route path.

    Static:  ``/items``     (is_param=False)
    Param:   ``/{id}``      (is_param=True, param_name="id")
    Typed:   ``/{id:int}``  (is_param=True, param_name="id", param_type="int")
    """

    value: str
    is_param: bool = False
    param_name: str | None = None
    param_type: str = "str"


@dataclass(frozen=True, slots=True)
class Route:
    """A frozen route definition.

    ``handlers`` is the ordered chain run for a match: middleware such as
    the request verifier first, the terminal handler last.
    """

    path: str
    methods: frozenset[str]
    handlers: tuple[Handler, ...]
    name: str | None = None


@dataclass(frozen=True, slots=True)
class RouteMatch:
    """Result of a successful route match."""

    route: Route
    path_params: dict[str, str]
