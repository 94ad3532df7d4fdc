"""Storage service interface: upload/download/copy/delete, existence, URLs. Implementations: disk, S3, GCS, null."""
from __future__ import annotations

import mimetypes
import posixpath
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import BinaryIO, Iterable
from urllib.parse import quote, urlsplit, urlunsplit

ACL_PRIVATE = "private"
ACL_PUBLIC_READ = "public-read"

# Presign TTL used when the caller passes 0
DEFAULT_SIGN_EXPIRES_S = 900

SIGN_METHODS = ("GET", "PUT", "HEAD", "DELETE")

_CUSTOM_MIME_TYPES = {
    ".heic": "image/heic",
    ".webp": "image/webp",
}


class StorageError(OSError):
    """Backend or IO failure reported by a storage driver."""


class ObjectNotFoundError(StorageError, FileNotFoundError):
    """Object does not exist in the backend."""

    def __init__(self, key: str) -> None:
        super().__init__(f"Object not found: {key}")
        self.key = key


class UnsupportedOperationError(NotImplementedError):
    """Capability not offered by the backend; caller must fall back."""


@dataclass(frozen=True)
class ObjectOptions:
    """Per-call delivery options for upload and copy. Drivers ignore fields they do not support."""

    acl: str | None = None
    content_type: str | None = None


def mime_type_by_extension(ext: str) -> str:
    """Return mime type for an extension like '.png'; '' if unknown."""
    ext = ext.lower()
    if ext in _CUSTOM_MIME_TYPES:
        return _CUSTOM_MIME_TYPES[ext]
    return mimetypes.guess_type(f"file{ext}")[0] or ""


def content_type_for(key: str, options: ObjectOptions | None = None) -> str:
    """Explicit content type wins; else guess from the key's extension."""
    if options is not None and options.content_type:
        return options.content_type
    return mime_type_by_extension(posixpath.splitext(key)[1]) or "application/octet-stream"


def join_url(endpoint: str, key: str) -> str:
    """Join endpoint path and key: join_url('http://h/disk', 'a/b.png') -> 'http://h/disk/a/b.png'."""
    parts = urlsplit(endpoint)
    path = posixpath.normpath(posixpath.join(parts.path or "/", key.lstrip("/")))
    if not path.startswith("/"):
        path = "/" + path
    return urlunsplit((parts.scheme, parts.netloc, quote(path, safe="/"), parts.query, parts.fragment))


class StorageService(ABC):
    """Uniform object storage contract. Keys are opaque, path-like strings."""

    @abstractmethod
    def upload(self, key: str, reader: BinaryIO, options: ObjectOptions | None = None) -> None:
        """Create or overwrite the object at key, creating intermediate structure as needed."""
        ...

    @abstractmethod
    def download(self, key: str) -> BinaryIO:
        """Return a readable stream the caller must close. Raise ObjectNotFoundError if missing."""
        ...

    @abstractmethod
    def copy(self, src: str, dst: str, options: ObjectOptions | None = None) -> None:
        """Copy src to dst. Raise ObjectNotFoundError if src is missing."""
        ...

    @abstractmethod
    def delete(self, key: str) -> None:
        """Delete key. Deleting a missing key is not an error."""
        ...

    @abstractmethod
    def delete_batch(self, keys: Iterable[str]) -> None:
        """Best-effort delete of many keys; raise the first error encountered."""
        ...

    @abstractmethod
    def delete_prefixed(self, prefix: str) -> None:
        """Delete every key starting with the literal prefix. Zero matches is success."""
        ...

    @abstractmethod
    def exists(self, key: str) -> bool:
        """True/False when known; raise when existence cannot be determined."""
        ...

    @abstractmethod
    def url(self, key: str) -> str:
        """Deliverable URL for key. Pure, never fails."""
        ...

    def sign_url(self, key: str, method: str = "GET", expires_in: int = 0) -> tuple[str, dict[str, str]]:
        """Backend-native presigned URL plus headers the client must send."""
        raise UnsupportedOperationError("sign_url is not supported by this backend")
