"""Google Cloud Storage backend. Imported only when STORAGE_BACKEND=gcs."""
from __future__ import annotations

from datetime import timedelta
from typing import BinaryIO, Iterable

from google.api_core.exceptions import NotFound

from variantstore.services.storage.base import (
    ACL_PRIVATE,
    ACL_PUBLIC_READ,
    DEFAULT_SIGN_EXPIRES_S,
    SIGN_METHODS,
    ObjectNotFoundError,
    ObjectOptions,
    StorageService,
    UnsupportedOperationError,
    content_type_for,
    join_url,
)

# Generic ACL classes -> GCS predefined ACLs
_PREDEFINED_ACL = {
    ACL_PRIVATE: "private",
    ACL_PUBLIC_READ: "publicRead",
}


def _get_client():
    from google.cloud import storage
    return storage.Client()


class GCSStorage(StorageService):
    """GCS backend: one client shared by all callers; batch delete is a loop (no SDK batch)."""

    def __init__(self, bucket: str | None, endpoint: str | None = None, client=None) -> None:
        if not bucket:
            raise ValueError("GCS storage requires gcs_bucket to be set")
        self._client = client if client is not None else _get_client()
        self._bucket = self._client.bucket(bucket)
        self._endpoint = endpoint or f"https://storage.googleapis.com/{bucket}"

    def upload(self, key: str, reader: BinaryIO, options: ObjectOptions | None = None) -> None:
        blob = self._bucket.blob(key)
        predefined_acl = None
        if options is not None and options.acl:
            predefined_acl = _PREDEFINED_ACL.get(options.acl)
        blob.upload_from_file(
            reader,
            content_type=content_type_for(key, options),
            predefined_acl=predefined_acl,
        )

    def download(self, key: str) -> BinaryIO:
        blob = self._bucket.blob(key)
        # Readers fetch lazily; load metadata first so a missing object fails here
        try:
            blob.reload()
        except NotFound as e:
            raise ObjectNotFoundError(key) from e
        return blob.open("rb")

    def copy(self, src: str, dst: str, options: ObjectOptions | None = None) -> None:
        try:
            self._bucket.copy_blob(self._bucket.blob(src), self._bucket, dst)
        except NotFound as e:
            raise ObjectNotFoundError(src) from e
        if options is not None and options.acl in _PREDEFINED_ACL:
            blob = self._bucket.blob(dst)
            if options.acl == ACL_PUBLIC_READ:
                blob.make_public()
            else:
                blob.make_private()

    def delete(self, key: str) -> None:
        try:
            self._bucket.blob(key).delete()
        except NotFound:
            return

    def delete_batch(self, keys: Iterable[str]) -> None:
        for key in keys:
            self.delete(key)

    def delete_prefixed(self, prefix: str) -> None:
        # list_blobs pages through results transparently
        for blob in self._client.list_blobs(self._bucket, prefix=prefix):
            try:
                blob.delete()
            except NotFound:
                continue

    def exists(self, key: str) -> bool:
        return self._bucket.blob(key).exists()

    def url(self, key: str) -> str:
        return join_url(self._endpoint, key)

    def sign_url(self, key: str, method: str = "GET", expires_in: int = 0) -> tuple[str, dict[str, str]]:
        method = method.upper()
        if method not in SIGN_METHODS:
            raise UnsupportedOperationError(f"Presigning {method} is not supported")
        url = self._bucket.blob(key).generate_signed_url(
            version="v4",
            expiration=timedelta(seconds=expires_in or DEFAULT_SIGN_EXPIRES_S),
            method=method,
        )
        return url, {}
