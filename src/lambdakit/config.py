"""Application configuration.

Frozen dataclasses — immutable after creation, IDE-autocompletable,
no string-key dict lookups. Lambda functions are configured through
environment variables, so each config has a ``from_env`` loader.
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass
from enum import StrEnum

from lambdakit.errors import ConfigurationError
from lambdakit.http.headers import TRACE_ID
from lambdakit.security.canonical import TRACE_PROFILE, CanonicalizationProfile, get_profile
from lambdakit.security.signing import ENCODINGS

_ENV_PREFIX = "LAMBDAKIT_"
_LOG_LEVELS = ("debug", "info", "warning", "error", "critical")
_LOG_FORMATS = ("json", "text")
_TRUE = ("1", "true", "yes", "on")


def _env(environ: Mapping[str, str], name: str) -> str | None:
    value = environ.get(_ENV_PREFIX + name)
    return value if value else None


def _float(environ: Mapping[str, str], name: str, default: float) -> float:
    raw = _env(environ, name)
    if raw is None:
        return default
    try:
        return float(raw)
    except ValueError:
        msg = f"{_ENV_PREFIX}{name} must be a number, got {raw!r}"
        raise ConfigurationError(msg) from None


@dataclass(frozen=True, slots=True)
class AppConfig:
    """Dispatcher configuration. Immutable after creation.

    All fields have sensible defaults. Override what you need::

        config = AppConfig(log_level="debug", max_logged_body=4096)
    """

    # Logging
    log_level: str = "info"
    log_format: str = "json"
    max_logged_body: int = 1024  # Error bodies this size or larger are not logged

    # Response
    trace_header: str = TRACE_ID
    debug: bool = False  # 500 bodies include the exception type

    def __post_init__(self) -> None:
        if self.log_level.lower() not in _LOG_LEVELS:
            msg = f"log_level must be one of {_LOG_LEVELS}, got {self.log_level!r}"
            raise ConfigurationError(msg)
        if self.log_format not in _LOG_FORMATS:
            msg = f"log_format must be one of {_LOG_FORMATS}, got {self.log_format!r}"
            raise ConfigurationError(msg)
        if self.max_logged_body < 0:
            msg = "max_logged_body must not be negative"
            raise ConfigurationError(msg)

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> AppConfig:
        """Read ``LAMBDAKIT_LOG_LEVEL``, ``LAMBDAKIT_LOG_FORMAT``,
        ``LAMBDAKIT_MAX_LOGGED_BODY``, ``LAMBDAKIT_TRACE_HEADER`` and
        ``LAMBDAKIT_DEBUG``; unset variables keep the defaults.
        """
        environ = os.environ if environ is None else environ
        defaults = cls()
        return cls(
            log_level=_env(environ, "LOG_LEVEL") or defaults.log_level,
            log_format=_env(environ, "LOG_FORMAT") or defaults.log_format,
            max_logged_body=int(_float(environ, "MAX_LOGGED_BODY", defaults.max_logged_body)),
            trace_header=_env(environ, "TRACE_HEADER") or defaults.trace_header,
            debug=(_env(environ, "DEBUG") or "").lower() in _TRUE,
        )


@dataclass(frozen=True, slots=True)
class VerifierConfig:
    """Request verifier settings.

    ``max_clock_skew`` is the tolerated distance, in seconds, between the
    request's ``X-Timestamp`` and the local clock, in either direction.
    """

    profile: CanonicalizationProfile = TRACE_PROFILE
    max_clock_skew: float = 300.0
    signature_encoding: str = "base64"

    def __post_init__(self) -> None:
        if self.max_clock_skew <= 0:
            msg = "max_clock_skew must be positive"
            raise ConfigurationError(msg)
        if self.signature_encoding not in ENCODINGS:
            msg = f"signature_encoding must be one of {ENCODINGS}, got {self.signature_encoding!r}"
            raise ConfigurationError(msg)

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> VerifierConfig:
        """Read ``LAMBDAKIT_SIGNING_PROFILE``, ``LAMBDAKIT_MAX_CLOCK_SKEW`` and
        ``LAMBDAKIT_SIGNATURE_ENCODING``.
        """
        environ = os.environ if environ is None else environ
        defaults = cls()
        profile_name = _env(environ, "SIGNING_PROFILE")
        return cls(
            profile=get_profile(profile_name) if profile_name else defaults.profile,
            max_clock_skew=_float(environ, "MAX_CLOCK_SKEW", defaults.max_clock_skew),
            signature_encoding=_env(environ, "SIGNATURE_ENCODING") or defaults.signature_encoding,
        )


class S3ACL(StrEnum):
    """Canned S3 object ACLs."""

    PRIVATE = "private"
    PUBLIC_READ = "public-read"
    PUBLIC_READ_WRITE = "public-read-write"
    AWS_EXEC_READ = "aws-exec-read"
    AUTHENTICATED_READ = "authenticated-read"
    BUCKET_OWNER_READ = "bucket-owner-read"
    BUCKET_OWNER_FULL_CONTROL = "bucket-owner-full-control"


@dataclass(frozen=True, slots=True)
class S3Config:
    """Object storage settings for one bucket.

    ``wait_timeout`` bounds how long ``delete`` and ``batch_delete``
    poll for the object to disappear.
    """

    bucket: str
    acl: S3ACL = S3ACL.PRIVATE
    cache_control: str = "public, max-age=14400"
    wait_timeout: float = 5.0
    wait_interval: float = 0.2
    region: str | None = None
    endpoint_url: str | None = None

    def __post_init__(self) -> None:
        if not self.bucket:
            msg = "S3Config.bucket is required"
            raise ConfigurationError(msg)
        if self.wait_timeout <= 0 or self.wait_interval <= 0:
            msg = "wait_timeout and wait_interval must be positive"
            raise ConfigurationError(msg)

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> S3Config:
        """Read ``LAMBDAKIT_S3_BUCKET`` (required), ``LAMBDAKIT_S3_ACL``,
        ``LAMBDAKIT_S3_CACHE_CONTROL``, ``LAMBDAKIT_S3_WAIT_TIMEOUT`` and
        ``LAMBDAKIT_S3_ENDPOINT_URL``. The region falls back to ``AWS_REGION``.
        """
        environ = os.environ if environ is None else environ
        acl = _env(environ, "S3_ACL")
        try:
            parsed_acl = S3ACL(acl) if acl else S3ACL.PRIVATE
        except ValueError:
            msg = f"{_ENV_PREFIX}S3_ACL: unknown ACL {acl!r}"
            raise ConfigurationError(msg) from None
        return cls(
            bucket=_env(environ, "S3_BUCKET") or "",
            acl=parsed_acl,
            cache_control=_env(environ, "S3_CACHE_CONTROL") or "public, max-age=14400",
            wait_timeout=_float(environ, "S3_WAIT_TIMEOUT", 5.0),
            region=environ.get("AWS_REGION") or None,
            endpoint_url=_env(environ, "S3_ENDPOINT_URL"),
        )
