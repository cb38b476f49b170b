"""Shared type aliases used across lambdakit modules."""

from collections.abc import Callable
from typing import Any, TypeAlias

# Chain handler: ``(request, next)`` or ``(request)``, sync or async
Handler: TypeAlias = Callable[..., Any]

# Error renderer: receives (request, error?) and returns a response value
ErrorHandler: TypeAlias = Callable[..., Any]
