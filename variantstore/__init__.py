"""Object storage over disk/S3/GCS with on-demand image variants and signed redirect URLs."""
from variantstore.api.serving import ServerOptions, ServingServer, redirect_url
from variantstore.core.security import (
    HmacURLSigner,
    SignatureError,
    SignatureExpiredError,
    SignatureInvalidError,
    SignatureMissingError,
)
from variantstore.services.storage import (
    ACL_PRIVATE,
    ACL_PUBLIC_READ,
    DiskStorage,
    NullStorage,
    ObjectNotFoundError,
    ObjectOptions,
    StorageError,
    StorageService,
    UnsupportedOperationError,
    get_storage_service,
)
from variantstore.services.store import Storage
from variantstore.services.variants import (
    PillowTransformer,
    TransformError,
    Transformer,
    Variant,
    VariantEngine,
    VariantOptions,
    VariantOptionsError,
)

__version__ = "0.1.0"

__all__ = [
    "ACL_PRIVATE",
    "ACL_PUBLIC_READ",
    "DiskStorage",
    "HmacURLSigner",
    "NullStorage",
    "ObjectNotFoundError",
    "ObjectOptions",
    "PillowTransformer",
    "ServerOptions",
    "ServingServer",
    "SignatureError",
    "SignatureExpiredError",
    "SignatureInvalidError",
    "SignatureMissingError",
    "Storage",
    "StorageError",
    "StorageService",
    "TransformError",
    "Transformer",
    "UnsupportedOperationError",
    "Variant",
    "VariantEngine",
    "VariantOptions",
    "VariantOptionsError",
    "get_storage_service",
    "redirect_url",
]
