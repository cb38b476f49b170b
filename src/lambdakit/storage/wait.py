"""Bounded polling until an eventually consistent condition holds."""

from collections.abc import Awaitable, Callable

import anyio

from lambdakit.errors import WaitTimeout


async def wait_until(
    predicate: Callable[[], Awaitable[bool]],
    *,
    timeout: float,
    interval: float = 0.2,
    operation: str = "wait_until",
) -> None:
    """Await *predicate* every *interval* seconds until it returns True.

    Raises ``WaitTimeout`` once *timeout* seconds have passed. Errors
    raised by the predicate propagate unchanged.

    Example::

        async def ready() -> bool:
            return not await bucket.exists(key)

        await wait_until(ready, timeout=5.0)
    """
    with anyio.move_on_after(timeout):
        while not await predicate():
            await anyio.sleep(interval)
        return
    raise WaitTimeout(operation, f"condition not met within {timeout:g}s")
