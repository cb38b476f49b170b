"""Request verifier middleware — ECDSA signature over a canonical request.

Placed first in a handler chain (or app-wide via ``app.use``). Rejects
stale or unsigned requests and requests whose signature does not match
the locally recomputed digest; forwards everything else to ``next``.

Rejections are ordinary structured responses, never exceptions: a bad
signature is an expected outcome of talking to the internet.

Usage::

    from lambdakit.middleware import RequestVerifier
    from lambdakit.security import CLIENT_PROFILE, load_public_key

    verify = RequestVerifier(load_public_key(PEM))
    app.use(verify)

    # or per route, with another profile
    app.get("/items/{id}", RequestVerifier(key, VerifierConfig(profile=CLIENT_PROFILE)), get_item)
"""

import logging

from cryptography.hazmat.primitives.asymmetric import ec

from lambdakit.config import VerifierConfig
from lambdakit.context import get_trace_id
from lambdakit.errors import HTTPError, NotAcceptable
from lambdakit.http.request import Request
from lambdakit.http.response import Response, error_response
from lambdakit.log import RequestLogger
from lambdakit.middleware.protocol import Next
from lambdakit.security.signing import check_timestamp, decode_signature, verify_digest

_log = logging.getLogger("lambdakit.security")


class RequestVerifier:
    """Verify the ``X-Signature`` header against a canonical request digest.

    Steps, in order; the first failure ends the request:

    1. ``X-Timestamp`` present, integer, within ``max_clock_skew``
       (406 otherwise). Checked before the signature is decoded.
    2. ``X-Signature`` present and decodable (400 otherwise).
    3. Canonical string and digest per the configured profile.
    4. ECDSA verification with the public key (406 on mismatch).

    Stateless: one instance serves every request.
    """

    __slots__ = ("config", "public_key")

    def __init__(
        self,
        public_key: ec.EllipticCurvePublicKey,
        config: VerifierConfig | None = None,
    ) -> None:
        self.public_key = public_key
        self.config = config or VerifierConfig()

    def verify(self, request: Request, *, now: float | None = None) -> None:
        """Raise the ``HTTPError`` describing why *request* is not authentic."""
        check_timestamp(request.headers, self.config.max_clock_skew, now=now)
        sign = decode_signature(request.headers, self.config.signature_encoding)
        profile = self.config.profile
        digest = profile.digest(
            request.method, request.signed_path, request.raw_query, request.headers
        )
        if not verify_digest(self.public_key, digest, sign, profile):
            raise NotAcceptable("invalid signature")

    async def __call__(self, request: Request, next: Next) -> Response | None:
        try:
            self.verify(request)
        except HTTPError as exc:
            RequestLogger(_log, {"trace_id": get_trace_id()}).info(
                "Rejected",
                extra={
                    "status_code": exc.status,
                    "reason": exc.detail,
                    "profile": self.config.profile.name,
                },
            )
            return error_response(exc)
        return await next(request)


def create_request_verifier(
    public_key: ec.EllipticCurvePublicKey,
    config: VerifierConfig | None = None,
) -> RequestVerifier:
    """Functional spelling of ``RequestVerifier(public_key, config)``."""
    return RequestVerifier(public_key, config)
