"""Immutable, case-insensitive HTTP headers.

Implements ``Mapping[str, str]``. Gateway events deliver headers as a
``dict``; names are matched case-insensitively regardless of how the
gateway (or a test) spelled them.
"""

from collections.abc import Iterable, Iterator, Mapping

TRACE_ID = "X-Trace-Id"
TIMESTAMP = "X-Timestamp"
SIGNATURE = "X-Signature"
APP_ID = "X-App-Id"
CLIENT_ID = "X-Client-Id"
CONTENT_TYPE = "Content-Type"
AUTHORIZATION = "Authorization"


class Headers(Mapping[str, str]):
    """Immutable, case-insensitive HTTP headers.

    ``__getitem__`` returns the first matching value.
    ``get_list`` returns every value for a header.
    """

    __slots__ = ("_pairs",)

    def __init__(self, source: Mapping[str, str] | Iterable[tuple[str, str]] | None = None) -> None:
        if source is None:
            pairs: tuple[tuple[str, str], ...] = ()
        elif isinstance(source, Mapping):
            pairs = tuple((str(k), str(v)) for k, v in source.items())
        else:
            pairs = tuple((str(k), str(v)) for k, v in source)
        object.__setattr__(self, "_pairs", pairs)

    def __getitem__(self, key: str) -> str:
        key_lower = key.lower()
        for name, value in self._pairs:
            if name.lower() == key_lower:
                return value
        raise KeyError(key)

    def __contains__(self, key: object) -> bool:
        if not isinstance(key, str):
            return False
        key_lower = key.lower()
        return any(name.lower() == key_lower for name, _ in self._pairs)

    def __iter__(self) -> Iterator[str]:
        seen: set[str] = set()
        for name, _ in self._pairs:
            key = name.lower()
            if key not in seen:
                seen.add(key)
                yield key

    def __len__(self) -> int:
        return len(set(self))

    def __repr__(self) -> str:
        items = ", ".join(f"{k!r}: {self[k]!r}" for k in self)
        return f"Headers({{{items}}})"

    def get(self, key: str, default: str | None = None) -> str | None:  # type: ignore[override]
        """Return the first value for *key*, or *default* if missing."""
        try:
            return self[key]
        except KeyError:
            return default

    def get_list(self, key: str) -> list[str]:
        """Return all values for *key*."""
        key_lower = key.lower()
        return [value for name, value in self._pairs if name.lower() == key_lower]

    def to_dict(self) -> dict[str, str]:
        """Lowercased names to first values, for logging."""
        return {key: self[key] for key in self}
