"""Variant engine: content-addressed keys for (origin, options) and on-demand generation.

A variant is generated at most once per key as observed by the backend's
existence check. There is no lock: concurrent callers for the same key may
both generate and upload, which converges because the key and the bytes are
deterministic.
"""
from __future__ import annotations

import hashlib
import io
import logging
import posixpath
import time

from variantstore.core.metrics import record_variant_error, record_variant_generated, record_variant_hit
from variantstore.services.storage.base import ObjectOptions, StorageService
from variantstore.services.variants.options import VariantOptions
from variantstore.services.variants.transformer import PillowTransformer, Transformer

logger = logging.getLogger(__name__)

VARIANTS_PREFIX = "variants"

_CONTENT_TYPES = {
    "jpeg": "image/jpeg",
    "png": "image/png",
    "webp": "image/webp",
}


class InvalidOriginKeyError(ValueError):
    """Origin key whose directory climbs above the storage root."""


def variant_key(origin_key: str, options: VariantOptions) -> str:
    """variants/<dir of origin>/<stem>-<md5 of canonical options>.<format>

    Raises InvalidOriginKeyError when the origin directory normalizes to a
    path starting with '..'; derived keys always stay under variants/.
    """
    directory, filename = posixpath.split(origin_key)
    directory = posixpath.normpath(directory.lstrip("/") or ".")
    if directory == ".." or directory.startswith("../"):
        raise InvalidOriginKeyError(f"origin key escapes the key space: {origin_key}")
    stem = posixpath.splitext(filename)[0]
    digest = hashlib.md5(options.canonical_bytes(origin_key), usedforsecurity=False).hexdigest()
    name = f"{stem}-{digest}.{options.resolved_format(origin_key)}"
    return posixpath.normpath(posixpath.join(VARIANTS_PREFIX, directory, name))


class Variant:
    def __init__(
        self,
        service: StorageService,
        origin_key: str,
        options: VariantOptions,
        transformer: Transformer,
        upload_options: ObjectOptions | None = None,
    ) -> None:
        self._service = service
        self.origin_key = origin_key
        self.options = options
        self._transformer = transformer
        self._upload_options = upload_options

    @property
    def key(self) -> str:
        return variant_key(self.origin_key, self.options)

    @property
    def format(self) -> str:
        return self.options.resolved_format(self.origin_key)

    def url(self) -> str:
        return self._service.url(self.key)

    def process(self) -> str:
        """Ensure the variant exists in storage and return its key.

        Raises whatever the backend or transformer raised; the key is only
        returned once the upload succeeded.
        """
        key = self.key
        try:
            if self._service.exists(key):
                logger.debug("variant hit %s", key)
                record_variant_hit()
                return key

            start = time.perf_counter()
            buf = io.BytesIO()
            with self._service.download(self.origin_key) as source:
                self._transformer.transform(self.options, self.format, source, buf)
            buf.seek(0)
            self._service.upload(key, buf, self._object_options())
        except Exception:
            record_variant_error()
            logger.warning("variant generation failed origin=%s key=%s", self.origin_key, key, exc_info=True)
            raise
        elapsed = time.perf_counter() - start
        record_variant_generated(elapsed)
        logger.info("variant generated origin=%s key=%s bytes=%d %.2fms", self.origin_key, key, buf.getbuffer().nbytes, elapsed * 1000)
        return key

    def _object_options(self) -> ObjectOptions:
        acl = self._upload_options.acl if self._upload_options is not None else None
        return ObjectOptions(acl=acl, content_type=_CONTENT_TYPES.get(self.format, "image/jpeg"))


class VariantEngine:
    """Creates variants bound to a storage service; default transformer is Pillow."""

    def __init__(self, transformer: Transformer | None = None, upload_options: ObjectOptions | None = None) -> None:
        self.transformer = transformer or PillowTransformer()
        self.upload_options = upload_options

    def variant(self, service: StorageService, origin_key: str, options: VariantOptions) -> Variant:
        return Variant(service, origin_key, options, self.transformer, self.upload_options)

    def materialize(self, service: StorageService, origin_key: str, options: VariantOptions) -> str:
        return self.variant(service, origin_key, options).process()
