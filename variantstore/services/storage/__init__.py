"""Storage service factory: local (disk), S3, GCS or null. Cloud SDKs are imported only for their backend."""
from variantstore.core.config import Settings, get_settings
from variantstore.services.storage.base import (
    ACL_PRIVATE,
    ACL_PUBLIC_READ,
    ObjectNotFoundError,
    ObjectOptions,
    StorageError,
    StorageService,
    UnsupportedOperationError,
)
from variantstore.services.storage.local import DiskStorage
from variantstore.services.storage.null import NullStorage


def get_storage_service(settings: Settings | None = None) -> StorageService:
    """Return the configured storage service. Avoids importing boto3/google-cloud when backend is local."""
    settings = settings or get_settings()
    backend = settings.storage_backend
    if backend == "local":
        return DiskStorage(settings.local_storage_dir, settings.local_storage_endpoint)
    if backend == "s3":
        from variantstore.services.storage.s3 import S3Storage
        return S3Storage(
            settings.s3_bucket,
            endpoint=settings.s3_endpoint,
            acl=settings.s3_acl,
            region=settings.aws_region,
            endpoint_url=settings.s3_endpoint_url,
        )
    if backend == "gcs":
        from variantstore.services.storage.gcs import GCSStorage
        return GCSStorage(settings.gcs_bucket, endpoint=settings.gcs_endpoint)
    if backend == "null":
        return NullStorage()
    raise ValueError(f"Unknown storage backend: {backend}")


__all__ = [
    "ACL_PRIVATE",
    "ACL_PUBLIC_READ",
    "DiskStorage",
    "NullStorage",
    "ObjectNotFoundError",
    "ObjectOptions",
    "StorageError",
    "StorageService",
    "UnsupportedOperationError",
    "get_storage_service",
]
