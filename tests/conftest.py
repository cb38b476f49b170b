"""Shared fixtures: signing keys and an in-memory S3 client."""

import io
import logging
from typing import Any

import pytest
from botocore.exceptions import ClientError
from cryptography.hazmat.primitives.asymmetric import ec


@pytest.fixture
def anyio_backend() -> str:
    return "asyncio"


@pytest.fixture
def private_key() -> ec.EllipticCurvePrivateKey:
    return ec.generate_private_key(ec.SECP256R1())


@pytest.fixture
def public_key(private_key: ec.EllipticCurvePrivateKey) -> ec.EllipticCurvePublicKey:
    return private_key.public_key()


def _client_error(code: str, operation: str, message: str = "") -> ClientError:
    return ClientError({"Error": {"Code": code, "Message": message or code}}, operation)


class FakeS3Client:
    """Dict-backed stand-in for a boto3 S3 client.

    ``undeletable`` keys are reported under ``Errors`` by delete_objects.
    ``sticky`` keys stay visible to head_object after deletion.
    """

    def __init__(self) -> None:
        self.objects: dict[tuple[str, str], dict[str, Any]] = {}
        self.calls: list[tuple[str, dict[str, Any]]] = []
        self.undeletable: set[str] = set()
        self.sticky: set[str] = set()
        self.fail_with: str | None = None

    def _record(self, name: str, params: dict[str, Any]) -> None:
        self.calls.append((name, params))
        if self.fail_with is not None:
            raise _client_error(self.fail_with, name)

    def put_object(self, Bucket: str, Key: str, Body: bytes, **params: Any) -> dict[str, Any]:
        self._record("PutObject", {"Bucket": Bucket, "Key": Key, **params})
        self.objects[(Bucket, Key)] = {"Body": Body, **params}
        return {}

    def get_object(self, Bucket: str, Key: str) -> dict[str, Any]:
        self._record("GetObject", {"Bucket": Bucket, "Key": Key})
        stored = self.objects.get((Bucket, Key))
        if stored is None:
            raise _client_error("NoSuchKey", "GetObject")
        return {"Body": io.BytesIO(stored["Body"])}

    def head_object(self, Bucket: str, Key: str) -> dict[str, Any]:
        self._record("HeadObject", {"Bucket": Bucket, "Key": Key})
        stored = self.objects.get((Bucket, Key))
        if stored is None and Key not in self.sticky:
            raise _client_error("404", "HeadObject", "Not Found")
        return {"Metadata": dict((stored or {}).get("Metadata") or {})}

    def delete_object(self, Bucket: str, Key: str) -> dict[str, Any]:
        self._record("DeleteObject", {"Bucket": Bucket, "Key": Key})
        self.objects.pop((Bucket, Key), None)
        return {}

    def delete_objects(self, Bucket: str, Delete: dict[str, Any]) -> dict[str, Any]:
        self._record("DeleteObjects", {"Bucket": Bucket, "Delete": Delete})
        deleted, errors = [], []
        for item in Delete["Objects"]:
            key = item["Key"]
            if key in self.undeletable:
                errors.append({"Key": key, "Code": "AccessDenied", "Message": "Access Denied"})
                continue
            self.objects.pop((Bucket, key), None)
            deleted.append({"Key": key})
        return {"Deleted": deleted, "Errors": errors}


@pytest.fixture
def s3_client() -> FakeS3Client:
    return FakeS3Client()


@pytest.fixture
def logs(caplog: pytest.LogCaptureFixture, monkeypatch: pytest.MonkeyPatch) -> pytest.LogCaptureFixture:
    """caplog that also sees ``lambdakit`` records after configure_logging ran."""
    monkeypatch.setattr(logging.getLogger("lambdakit"), "propagate", True)
    caplog.set_level(logging.DEBUG, logger="lambdakit")
    return caplog
