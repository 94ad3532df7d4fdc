"""Null storage: accepts everything, stores nothing. For tests and dry runs."""
import io
from typing import BinaryIO, Iterable

from variantstore.services.storage.base import ObjectOptions, StorageService


class NullStorage(StorageService):
    def upload(self, key: str, reader: BinaryIO, options: ObjectOptions | None = None) -> None:
        return None

    def download(self, key: str) -> BinaryIO:
        return io.BytesIO()

    def copy(self, src: str, dst: str, options: ObjectOptions | None = None) -> None:
        return None

    def delete(self, key: str) -> None:
        return None

    def delete_batch(self, keys: Iterable[str]) -> None:
        return None

    def delete_prefixed(self, prefix: str) -> None:
        return None

    def exists(self, key: str) -> bool:
        return False

    def url(self, key: str) -> str:
        return ""
