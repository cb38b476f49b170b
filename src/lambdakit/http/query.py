"""Parsed view of a request's query string.

The gateway hands over ``rawQueryString`` undecoded; ``Request`` keeps
that string for signing and builds this view on demand. Pairs keep the
order they were sent in.
"""

from collections.abc import Iterator, Mapping
from urllib.parse import parse_qsl


class QueryParams(Mapping[str, str]):
    """Ordered ``name=value`` pairs from a raw query string.

    ``params["a"]`` is the first value sent for ``a``; ``get_list("a")``
    returns every one. Blank values are kept, so ``?flag`` is present.
    """

    __slots__ = ("_pairs", "raw")

    def __init__(self, raw: str = "") -> None:
        self.raw = raw
        self._pairs: tuple[tuple[str, str], ...] = tuple(parse_qsl(raw, keep_blank_values=True))

    def __getitem__(self, key: str) -> str:
        for name, value in self._pairs:
            if name == key:
                return value
        raise KeyError(key)

    def __iter__(self) -> Iterator[str]:
        return iter(dict.fromkeys(name for name, _ in self._pairs))

    def __len__(self) -> int:
        return len(dict.fromkeys(name for name, _ in self._pairs))

    def __repr__(self) -> str:
        return f"QueryParams({self.raw!r})"

    def get_list(self, key: str) -> list[str]:
        """Every value sent for *key*, in order."""
        return [value for name, value in self._pairs if name == key]
