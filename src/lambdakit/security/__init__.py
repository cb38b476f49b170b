"""Request signing — canonicalization profiles and ECDSA primitives."""

from lambdakit.security.canonical import (
    CLIENT_PROFILE,
    LEGACY_TRACE_PROFILE,
    PROFILES,
    TRACE_PROFILE,
    CanonicalizationProfile,
    get_profile,
)
from lambdakit.security.signing import (
    check_timestamp,
    decode_signature,
    load_public_key,
    sign_request,
    verify_digest,
)

__all__ = [
    "CLIENT_PROFILE",
    "LEGACY_TRACE_PROFILE",
    "PROFILES",
    "TRACE_PROFILE",
    "CanonicalizationProfile",
    "check_timestamp",
    "decode_signature",
    "get_profile",
    "load_public_key",
    "sign_request",
    "verify_digest",
]
