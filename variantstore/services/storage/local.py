"""Local (disk) storage: objects are files under a root directory, served by the disk route."""
from __future__ import annotations

import os
import shutil
from pathlib import Path
from typing import BinaryIO, Iterable

from variantstore.services.storage.base import (
    ObjectNotFoundError,
    ObjectOptions,
    StorageError,
    StorageService,
    join_url,
)


class DiskStorage(StorageService):
    """Disk storage: ACL/content-type options are ignored; sign_url is unsupported."""

    def __init__(self, root: str | Path, endpoint: str) -> None:
        self._root = Path(root)
        self._endpoint = endpoint

    @property
    def root(self) -> Path:
        return self._root

    def upload(self, key: str, reader: BinaryIO, options: ObjectOptions | None = None) -> None:
        path = self._make_path_for(key)
        with open(path, "wb") as out:
            shutil.copyfileobj(reader, out)

    def download(self, key: str) -> BinaryIO:
        try:
            return open(self._path_for(key), "rb")
        except (FileNotFoundError, IsADirectoryError, NotADirectoryError) as e:
            raise ObjectNotFoundError(key) from e

    def copy(self, src: str, dst: str, options: ObjectOptions | None = None) -> None:
        with self.download(src) as f:
            path = self._make_path_for(dst)
            with open(path, "wb") as out:
                shutil.copyfileobj(f, out)

    def delete(self, key: str) -> None:
        self._path_for(key).unlink(missing_ok=True)

    def delete_batch(self, keys: Iterable[str]) -> None:
        for key in keys:
            self.delete(key)

    def delete_prefixed(self, prefix: str) -> None:
        # Only the subtree the prefix points into can hold matches
        prefix = prefix.lstrip("/")
        head, _, _ = prefix.rpartition("/")
        root = self._root.resolve()
        start = self._path_for(head) if head else root
        if not start.is_dir():
            return
        for dirpath, _, filenames in os.walk(start):
            for name in filenames:
                path = Path(dirpath) / name
                key = path.relative_to(root).as_posix()
                if key.startswith(prefix):
                    path.unlink(missing_ok=True)

    def exists(self, key: str) -> bool:
        # Directories are not objects: agrees with download()
        return self._path_for(key).is_file()

    def url(self, key: str) -> str:
        return join_url(self._endpoint, key)

    def _path_for(self, key: str) -> Path:
        root = self._root.resolve()
        path = (root / key.lstrip("/")).resolve()
        if path != root and root not in path.parents:
            raise StorageError(f"Key escapes storage root: {key}")
        return path

    def _make_path_for(self, key: str) -> Path:
        path = self._path_for(key)
        path.parent.mkdir(parents=True, exist_ok=True)
        return path
