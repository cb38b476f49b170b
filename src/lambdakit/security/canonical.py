"""Canonicalization profiles — the bytes a request signature covers.

A profile fixes which request fields enter the canonical signing string,
in which order, and which hash turns it into the signed digest. Signer
and verifier must apply the same profile; any drift makes every
signature fail as a mismatch rather than an error.

The canonical string is the plain concatenation, with no separators, of::

    method + path + raw_query + header_1 + ... + header_n

where missing headers contribute the empty string.
"""

import hashlib
from collections.abc import Mapping
from dataclasses import dataclass

from cryptography.hazmat.primitives import hashes

from lambdakit.errors import ConfigurationError
from lambdakit.http.headers import (
    APP_ID,
    AUTHORIZATION,
    CLIENT_ID,
    CONTENT_TYPE,
    TIMESTAMP,
    TRACE_ID,
    Headers,
)

_HASHES: dict[str, type[hashes.HashAlgorithm]] = {
    "sha256": hashes.SHA256,
    "md5": hashes.MD5,
}


@dataclass(frozen=True, slots=True)
class CanonicalizationProfile:
    """Ordered header set plus hash function for one signing scheme."""

    name: str
    headers: tuple[str, ...]
    hash_name: str = "sha256"

    def __post_init__(self) -> None:
        if self.hash_name not in _HASHES:
            supported = ", ".join(sorted(_HASHES))
            msg = f"Profile {self.name!r}: unsupported hash {self.hash_name!r} (use one of {supported})."
            raise ConfigurationError(msg)
        if TIMESTAMP not in self.headers:
            msg = f"Profile {self.name!r} must cover the {TIMESTAMP} header."
            raise ConfigurationError(msg)

    @property
    def algorithm(self) -> hashes.HashAlgorithm:
        """The ``cryptography`` hash instance for prehashed ECDSA."""
        return _HASHES[self.hash_name]()

    def canonical_string(
        self,
        method: str,
        path: str,
        raw_query: str,
        headers: Mapping[str, str],
    ) -> bytes:
        """Build the canonical signing string for one request."""
        if not isinstance(headers, Headers):
            headers = Headers(headers)
        parts = [method, path, raw_query]
        parts.extend(headers.get(name) or "" for name in self.headers)
        return "".join(parts).encode("utf-8")

    def digest(
        self,
        method: str,
        path: str,
        raw_query: str,
        headers: Mapping[str, str],
    ) -> bytes:
        """Hash the canonical signing string with the profile's hash."""
        data = self.canonical_string(method, path, raw_query, headers)
        return hashlib.new(self.hash_name, data).digest()


TRACE_PROFILE = CanonicalizationProfile(
    name="trace-sha256",
    headers=(TRACE_ID, TIMESTAMP),
)
"""Trace id + timestamp, SHA-256. The default for new deployments."""

CLIENT_PROFILE = CanonicalizationProfile(
    name="client-sha256",
    headers=(CONTENT_TYPE, APP_ID, CLIENT_ID, TIMESTAMP, AUTHORIZATION),
)
"""Content type, app id, client id, timestamp, authorization; SHA-256."""

LEGACY_TRACE_PROFILE = CanonicalizationProfile(
    name="trace-md5",
    headers=(TRACE_ID, TIMESTAMP),
    hash_name="md5",
)
"""Trace id + timestamp with MD5. Compatibility with old signers only."""

PROFILES: dict[str, CanonicalizationProfile] = {
    p.name: p for p in (TRACE_PROFILE, CLIENT_PROFILE, LEGACY_TRACE_PROFILE)
}


def get_profile(name: str) -> CanonicalizationProfile:
    """Look up a built-in profile by name."""
    try:
        return PROFILES[name]
    except KeyError:
        known = ", ".join(sorted(PROFILES))
        msg = f"Unknown canonicalization profile {name!r} (known: {known})."
        raise ConfigurationError(msg) from None
