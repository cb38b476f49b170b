"""Async wrapper around one S3 bucket.

Runs every blocking boto3 call in a worker thread via
``anyio.to_thread``, so storage access never blocks the dispatch loop.

Errors come back typed where the caller can act on them
(``ObjectNotFound``, ``PartialDeleteError``, ``WaitTimeout``); anything
else is wrapped in ``StorageError`` carrying the failing call's name.
"""

import functools
import logging
from collections.abc import Callable, Iterable, Mapping
from typing import Any

import anyio
import boto3
import magic
from botocore.exceptions import BotoCoreError, ClientError

from lambdakit.config import S3Config
from lambdakit.errors import ObjectNotFound, PartialDeleteError, StorageError
from lambdakit.storage.wait import wait_until

logger = logging.getLogger("lambdakit.storage")

# S3 rejects DeleteObjects requests with more keys than this
_MAX_DELETE_BATCH = 1000

_NOT_FOUND_CODES = frozenset({"404", "NoSuchKey", "NotFound"})


def _run_sync(func: Callable[..., Any], *args: Any, **kwargs: Any) -> Any:
    """Run blocking call in anyio worker thread."""
    return anyio.to_thread.run_sync(functools.partial(func, *args, **kwargs))


def _is_not_found(exc: ClientError) -> bool:
    return exc.response.get("Error", {}).get("Code", "") in _NOT_FOUND_CODES


def detect_content_type(content: bytes) -> str:
    """Sniff the MIME type from the leading bytes of *content*."""
    return magic.from_buffer(content[:2048], mime=True) or "application/octet-stream"


class S3Bucket:
    """CRUD on the objects of one bucket.

    Usage::

        bucket = S3Bucket(S3Config(bucket="uploads"))
        await bucket.put("avatars/42", data, {"owner": "42"})
        data = await bucket.get("avatars/42")
        await bucket.delete("avatars/42")  # returns once the key is gone
    """

    __slots__ = ("_client", "config")

    def __init__(self, config: S3Config, client: Any = None) -> None:
        self.config = config
        self._client = client or boto3.client(
            "s3",
            region_name=config.region,
            endpoint_url=config.endpoint_url,
        )

    @property
    def bucket(self) -> str:
        return self.config.bucket

    async def _call(self, operation: str, **params: Any) -> dict[str, Any]:
        """Invoke a client method named after the S3 operation.

        ``operation`` is the API name (``PutObject``); the boto3 method is
        its snake_case form.
        """
        method = getattr(self._client, _snake(operation))
        try:
            return await _run_sync(method, Bucket=self.bucket, **params)
        except ClientError as exc:
            if _is_not_found(exc) and "Key" in params:
                raise ObjectNotFound(f"s3.{operation}", params["Key"]) from exc
            raise StorageError(f"s3.{operation}", str(exc)) from exc
        except BotoCoreError as exc:
            raise StorageError(f"s3.{operation}", str(exc)) from exc

    async def put(
        self,
        id: str,
        content: bytes,
        metadata: Mapping[str, str] | None = None,
        content_type: str | None = None,
    ) -> None:
        """Store *content* under *id*, replacing any existing object."""
        await self._call(
            "PutObject",
            Key=id,
            Body=content,
            ACL=str(self.config.acl),
            CacheControl=self.config.cache_control,
            ContentType=content_type or detect_content_type(content),
            Metadata=dict(metadata or {}),
        )

    async def get(self, id: str) -> bytes:
        """Return the object's content. Raises ``ObjectNotFound``."""
        output = await self._call("GetObject", Key=id)
        body = output["Body"]
        try:
            return await _run_sync(body.read)
        except (BotoCoreError, OSError) as exc:
            raise StorageError("s3.GetObject.Body.read", str(exc)) from exc
        finally:
            body.close()

    async def exists(self, id: str) -> bool:
        """True if *id* exists; transport errors still raise."""
        try:
            await self._call("HeadObject", Key=id)
        except ObjectNotFound:
            return False
        return True

    async def get_metadata(self, id: str) -> dict[str, str]:
        """User metadata stored with the object. Raises ``ObjectNotFound``."""
        output = await self._call("HeadObject", Key=id)
        return dict(output.get("Metadata") or {})

    async def delete(self, id: str) -> None:
        """Delete *id* and return once it is confirmed absent.

        Deleting a missing key succeeds. Raises ``WaitTimeout`` when the
        key is still visible after ``config.wait_timeout`` seconds.
        """
        await self._call("DeleteObject", Key=id)
        await self._wait_absent([id], "s3.DeleteObject.wait")

    async def batch_delete(self, ids: Iterable[str]) -> None:
        """Delete every key in *ids* and wait until all are absent.

        An empty *ids* is a no-op. Keys the service does not report as
        deleted raise ``PartialDeleteError`` naming them.
        """
        keys = list(dict.fromkeys(ids))
        if not keys:
            return

        deleted: set[str] = set()
        for start in range(0, len(keys), _MAX_DELETE_BATCH):
            batch = keys[start : start + _MAX_DELETE_BATCH]
            output = await self._call(
                "DeleteObjects",
                Delete={"Objects": [{"Key": key} for key in batch], "Quiet": False},
            )
            deleted.update(item["Key"] for item in output.get("Deleted") or ())
            for error in output.get("Errors") or ():
                logger.warning(
                    "Delete failed",
                    extra={
                        "bucket": self.bucket,
                        "key": error.get("Key"),
                        "code": error.get("Code"),
                        "reason": error.get("Message"),
                    },
                )

        remaining = tuple(key for key in keys if key not in deleted)
        if remaining:
            raise PartialDeleteError("s3.DeleteObjects", remaining)

        await self._wait_absent(keys, "s3.DeleteObjects.wait")

    async def _wait_absent(self, keys: list[str], operation: str) -> None:
        pending = list(keys)

        async def all_gone() -> bool:
            while pending:
                if await self.exists(pending[0]):
                    return False
                pending.pop(0)
            return True

        await wait_until(
            all_gone,
            timeout=self.config.wait_timeout,
            interval=self.config.wait_interval,
            operation=operation,
        )


def _snake(operation: str) -> str:
    out = [operation[0].lower()]
    for char in operation[1:]:
        if char.isupper():
            out.append("_")
        out.append(char.lower())
    return "".join(out)
