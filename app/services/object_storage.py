"""S3-compatible object storage for transferred file bytes.

Objects are written once: uploads are conditional on the key being free, so
a second send can never replace bytes another transfer record points at.
"""

from __future__ import annotations

import logging
from functools import lru_cache
from typing import Any, Protocol
from urllib.parse import quote

import boto3

from app.config import settings

logger = logging.getLogger(__name__)

_MISSING_BUCKET_CODES = frozenset({"404", "NoSuchBucket"})
_MISSING_KEY_CODES = frozenset({"404", "NoSuchKey", "NotFound"})
_KEY_TAKEN_CODES = frozenset({"412", "PreconditionFailed", "ConditionalRequestConflict"})


class ObjectStorageError(Exception):
    """Object store unreachable or rejected the request."""


class ObjectExistsError(ObjectStorageError):
    """A write-once upload targeted a key that is already taken."""


class StorageService(Protocol):
    def upload(
        self, key: str, data: bytes, content_type: str | None, overwrite: bool = False
    ) -> None: ...
    def public_url(self, key: str) -> str: ...
    def exists(self, key: str) -> bool: ...
    def delete(self, key: str) -> None: ...


def _client_error_code(exc: Exception) -> str:
    error = (getattr(exc, "response", None) or {}).get("Error") or {}
    return str(error.get("Code", ""))


class S3StorageService:
    """Transfer bucket on S3, MinIO or R2."""

    def __init__(
        self,
        bucket_name: str,
        endpoint_url: str,
        access_key: str | None,
        secret_key: str | None,
        region: str,
        public_base_url: str | None = None,
        client: Any | None = None,
    ) -> None:
        self.bucket_name = bucket_name
        self.region = region
        self.url_base = f"{(public_base_url or endpoint_url).rstrip('/')}/{bucket_name}"
        self.client = client or boto3.client(
            "s3",
            endpoint_url=endpoint_url,
            aws_access_key_id=access_key,
            aws_secret_access_key=secret_key,
            region_name=region,
        )

    def ensure_bucket(self) -> None:
        """Create the transfer bucket unless it is already there."""
        try:
            self.client.head_bucket(Bucket=self.bucket_name)
            return
        except Exception as exc:
            if _client_error_code(exc) not in _MISSING_BUCKET_CODES:
                raise ObjectStorageError(
                    f"Unable to check bucket {self.bucket_name}"
                ) from exc

        params: dict[str, Any] = {"Bucket": self.bucket_name}
        if self.region and self.region != "us-east-1":
            params["CreateBucketConfiguration"] = {"LocationConstraint": self.region}
        self.client.create_bucket(**params)
        logger.info("storage_bucket_created bucket=%s", self.bucket_name)

    def upload(
        self, key: str, data: bytes, content_type: str | None, overwrite: bool = False
    ) -> None:
        params: dict[str, Any] = {"Bucket": self.bucket_name, "Key": key, "Body": data}
        if content_type:
            params["ContentType"] = content_type
        if not overwrite:
            params["IfNoneMatch"] = "*"
        try:
            self.client.put_object(**params)
        except Exception as exc:
            if _client_error_code(exc) in _KEY_TAKEN_CODES:
                raise ObjectExistsError(f"Object already exists: {key}") from exc
            raise ObjectStorageError(f"Failed to upload object: {exc}") from exc

    def public_url(self, key: str) -> str:
        return f"{self.url_base}/{quote(key)}"

    def exists(self, key: str) -> bool:
        try:
            self.client.head_object(Bucket=self.bucket_name, Key=key)
        except Exception as exc:
            if _client_error_code(exc) in _MISSING_KEY_CODES:
                return False
            raise ObjectStorageError(f"Failed to check object: {key}") from exc
        return True

    def delete(self, key: str) -> None:
        # S3 deletes are idempotent; a missing key is not an error.
        try:
            self.client.delete_object(Bucket=self.bucket_name, Key=key)
        except Exception as exc:
            raise ObjectStorageError(f"Failed to delete object: {key}") from exc


@lru_cache(maxsize=1)
def get_s3_storage() -> S3StorageService:
    return S3StorageService(
        bucket_name=settings.s3_bucket_name,
        endpoint_url=settings.s3_endpoint_url,
        access_key=settings.s3_access_key,
        secret_key=settings.s3_secret_key,
        region=settings.s3_region,
        public_base_url=settings.s3_public_base_url,
    )


def ensure_storage_bucket() -> None:
    get_s3_storage().ensure_bucket()
