"""ECDSA request signing and verification primitives.

Pure functions over request fields, used by ``RequestVerifier`` on the
server side and by clients (and tests) on the signing side. The
signature is ASN.1/DER-encoded ECDSA over the profile digest, carried in
the ``X-Signature`` header as base64 or hex.
"""

import base64
import binascii
import time
from collections.abc import Mapping

from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import ec
from cryptography.hazmat.primitives.asymmetric.utils import Prehashed

from lambdakit.errors import BadRequest, ConfigurationError, NotAcceptable
from lambdakit.http.headers import SIGNATURE, TIMESTAMP, Headers
from lambdakit.security.canonical import TRACE_PROFILE, CanonicalizationProfile

ENCODINGS = ("base64", "hex")


def check_timestamp(headers: Headers, max_clock_skew: float, *, now: float | None = None) -> int:
    """Validate the ``X-Timestamp`` header and return it.

    The value is integer Unix seconds. Raises ``NotAcceptable`` when it
    is missing, malformed, or further than *max_clock_skew* seconds from
    *now* in either direction.
    """
    raw = headers.get(TIMESTAMP)
    if not raw:
        raise NotAcceptable(f"missing {TIMESTAMP} header")
    try:
        timestamp = int(raw.strip())
    except ValueError:
        raise NotAcceptable(f"malformed {TIMESTAMP} header") from None

    current = time.time() if now is None else now
    try:
        skew = abs(current - timestamp)
    except OverflowError:
        raise NotAcceptable(f"malformed {TIMESTAMP} header") from None
    if skew > max_clock_skew:
        raise NotAcceptable(f"{TIMESTAMP} outside the allowed clock skew")
    return timestamp


def decode_signature(headers: Headers, encoding: str = "base64") -> bytes:
    """Decode the ``X-Signature`` header into raw DER bytes.

    Raises ``BadRequest`` when it is missing or cannot be decoded.
    """
    raw = headers.get(SIGNATURE)
    if not raw:
        raise BadRequest(f"missing {SIGNATURE} header")
    try:
        if encoding == "hex":
            sign = bytes.fromhex(raw.strip())
        else:
            sign = base64.b64decode(raw.strip(), validate=True)
    except (ValueError, binascii.Error):
        raise BadRequest(f"malformed {SIGNATURE} header") from None
    if not sign:
        raise BadRequest(f"empty {SIGNATURE} header")
    return sign


def encode_signature(sign: bytes, encoding: str = "base64") -> str:
    if encoding == "hex":
        return sign.hex()
    return base64.b64encode(sign).decode("ascii")


def verify_digest(
    public_key: ec.EllipticCurvePublicKey,
    digest: bytes,
    sign: bytes,
    profile: CanonicalizationProfile,
) -> bool:
    """True if *sign* is a valid DER ECDSA signature over *digest*."""
    try:
        public_key.verify(sign, digest, ec.ECDSA(Prehashed(profile.algorithm)))
    except (InvalidSignature, ValueError):
        return False
    return True


def sign_request(
    private_key: ec.EllipticCurvePrivateKey,
    method: str,
    path: str,
    raw_query: str = "",
    headers: Mapping[str, str] | None = None,
    *,
    profile: CanonicalizationProfile = TRACE_PROFILE,
    timestamp: int | None = None,
    encoding: str = "base64",
) -> dict[str, str]:
    """Sign a request and return its headers with timestamp and signature set.

    The input *headers* are copied, never mutated. An existing
    ``X-Timestamp`` is kept unless *timestamp* is given.
    """
    if encoding not in ENCODINGS:
        msg = f"Unsupported signature encoding {encoding!r}."
        raise ConfigurationError(msg)

    signed = {k: v for k, v in (headers or {}).items() if k.lower() != SIGNATURE.lower()}
    if timestamp is not None or TIMESTAMP not in Headers(signed):
        signed = {k: v for k, v in signed.items() if k.lower() != TIMESTAMP.lower()}
        signed[TIMESTAMP] = str(int(time.time()) if timestamp is None else timestamp)

    digest = profile.digest(method, path, raw_query, signed)
    sign = private_key.sign(digest, ec.ECDSA(Prehashed(profile.algorithm)))
    signed[SIGNATURE] = encode_signature(sign, encoding)
    return signed


def load_public_key(pem: str | bytes) -> ec.EllipticCurvePublicKey:
    """Load a PEM-encoded EC public key.

    Raises ``ConfigurationError`` for malformed PEM or non-EC keys.
    """
    data = pem.encode("ascii") if isinstance(pem, str) else pem
    try:
        key = serialization.load_pem_public_key(data)
    except ValueError as exc:
        msg = f"Invalid public key: {exc}"
        raise ConfigurationError(msg) from exc
    if not isinstance(key, ec.EllipticCurvePublicKey):
        msg = "Request verification requires an EC public key."
        raise ConfigurationError(msg)
    return key
