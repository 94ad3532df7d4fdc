"""S3 storage backend via boto3. Imported only when STORAGE_BACKEND=s3 (avoids boto3 in local mode)."""
from __future__ import annotations

from typing import BinaryIO, Iterable

from botocore.exceptions import ClientError

from variantstore.services.storage.base import (
    ACL_PRIVATE,
    DEFAULT_SIGN_EXPIRES_S,
    ObjectNotFoundError,
    ObjectOptions,
    StorageError,
    StorageService,
    UnsupportedOperationError,
    content_type_for,
    join_url,
)

_NOT_FOUND_CODES = ("404", "NoSuchKey", "NotFound")
# DeleteObjects accepts at most 1000 keys per request
_DELETE_BATCH_SIZE = 1000
_PRESIGN_OPERATIONS = {
    "GET": "get_object",
    "PUT": "put_object",
    "HEAD": "head_object",
    "DELETE": "delete_object",
}


def _get_client(region: str, endpoint_url: str | None = None):
    import boto3
    return boto3.client("s3", region_name=region, endpoint_url=endpoint_url)


def _error_code(e: ClientError) -> str | None:
    resp = getattr(e, "response", None)
    return resp.get("Error", {}).get("Code") if isinstance(resp, dict) else None


class S3Storage(StorageService):
    """S3 backend: uploads use the configured canned ACL unless overridden per call."""

    def __init__(
        self,
        bucket: str | None,
        endpoint: str | None = None,
        acl: str = ACL_PRIVATE,
        region: str = "us-east-1",
        endpoint_url: str | None = None,
    ) -> None:
        if not bucket:
            raise ValueError("S3 storage requires s3_bucket to be set")
        self._bucket = bucket
        self._endpoint = endpoint or f"https://{bucket}.s3.{region}.amazonaws.com"
        self._acl = acl
        self._client = _get_client(region, endpoint_url)

    def _extra_args(self, key: str, options: ObjectOptions | None) -> dict:
        acl = options.acl if options is not None and options.acl else self._acl
        return {
            "ACL": acl,
            "ContentType": content_type_for(key, options),
            "StorageClass": "INTELLIGENT_TIERING",
        }

    def upload(self, key: str, reader: BinaryIO, options: ObjectOptions | None = None) -> None:
        self._client.upload_fileobj(reader, self._bucket, key, ExtraArgs=self._extra_args(key, options))

    def download(self, key: str) -> BinaryIO:
        try:
            resp = self._client.get_object(Bucket=self._bucket, Key=key)
        except ClientError as e:
            if _error_code(e) in _NOT_FOUND_CODES:
                raise ObjectNotFoundError(key) from e
            raise
        return resp["Body"]

    def copy(self, src: str, dst: str, options: ObjectOptions | None = None) -> None:
        try:
            self._client.copy_object(
                Bucket=self._bucket,
                Key=dst,
                CopySource={"Bucket": self._bucket, "Key": src},
                MetadataDirective="REPLACE",
                **self._extra_args(dst, options),
            )
        except ClientError as e:
            if _error_code(e) in _NOT_FOUND_CODES:
                raise ObjectNotFoundError(src) from e
            raise

    def delete(self, key: str) -> None:
        try:
            self._client.delete_object(Bucket=self._bucket, Key=key)
        except ClientError as e:
            if _error_code(e) in _NOT_FOUND_CODES:
                return
            raise

    def delete_batch(self, keys: Iterable[str]) -> None:
        keys = list(keys)
        for i in range(0, len(keys), _DELETE_BATCH_SIZE):
            self._delete_objects(keys[i:i + _DELETE_BATCH_SIZE])

    def delete_prefixed(self, prefix: str) -> None:
        paginator = self._client.get_paginator("list_objects_v2")
        for page in paginator.paginate(Bucket=self._bucket, Prefix=prefix):
            contents = page.get("Contents") or []
            if not contents:
                return
            self._delete_objects([obj["Key"] for obj in contents])

    def exists(self, key: str) -> bool:
        try:
            self._client.head_object(Bucket=self._bucket, Key=key)
        except ClientError as e:
            if _error_code(e) in _NOT_FOUND_CODES:
                return False
            raise
        return True

    def url(self, key: str) -> str:
        return join_url(self._endpoint, key)

    def sign_url(self, key: str, method: str = "GET", expires_in: int = 0) -> tuple[str, dict[str, str]]:
        operation = _PRESIGN_OPERATIONS.get(method.upper())
        if operation is None:
            raise UnsupportedOperationError(f"Presigning {method} is not supported")
        url = self._client.generate_presigned_url(
            operation,
            Params={"Bucket": self._bucket, "Key": key},
            ExpiresIn=expires_in or DEFAULT_SIGN_EXPIRES_S,
        )
        return url, {}

    def _delete_objects(self, keys: list[str]) -> None:
        if not keys:
            return
        resp = self._client.delete_objects(
            Bucket=self._bucket,
            Delete={"Objects": [{"Key": k} for k in keys], "Quiet": True},
        )
        for err in resp.get("Errors") or []:
            if err.get("Code") in _NOT_FOUND_CODES:
                continue
            raise StorageError(f"Failed to delete {err.get('Key')}: {err.get('Code')} {err.get('Message', '')}".rstrip())
