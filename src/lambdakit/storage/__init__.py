"""Object storage — async S3 bucket wrapper and consistency waits."""

from lambdakit.config import S3ACL, S3Config
from lambdakit.storage.s3 import S3Bucket, detect_content_type
from lambdakit.storage.wait import wait_until

__all__ = [
    "S3ACL",
    "S3Bucket",
    "S3Config",
    "detect_content_type",
    "wait_until",
]
