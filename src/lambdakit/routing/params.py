"""Path parameter converters for route segments like ``{id:int}``."""

# Regex fragment matched against a single path segment, per converter.
# ``path`` is a catch-all and never compiled into a segment regex.
CONVERTERS: dict[str, str] = {
    "str": r"[^/]+",
    "int": r"\d+",
    "float": r"\d+(?:\.\d+)?",
    "path": r".+",
}
