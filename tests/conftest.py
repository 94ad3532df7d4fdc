"""Pytest fixtures: disk-backed store with counting spies, app settings, ASGI test client."""
import io

import pytest
from httpx import ASGITransport, AsyncClient
from PIL import Image

from variantstore.core.config import Settings
from variantstore.main import create_app
from variantstore.services.storage import DiskStorage
from variantstore.services.store import Storage
from variantstore.services.variants import PillowTransformer, VariantEngine

SERVING_ENDPOINT = "http://test/storage/redirect"
DISK_ENDPOINT = "http://test/disk"
ADMIN_TOKEN = "admin-test-token"


def make_png(size: tuple[int, int] = (64, 48), color: tuple[int, int, int] = (200, 30, 30)) -> bytes:
    buf = io.BytesIO()
    Image.new("RGB", size, color).save(buf, format="PNG")
    return buf.getvalue()


class CountingTransformer(PillowTransformer):
    """Pillow transformer that counts invocations."""

    def __init__(self) -> None:
        self.calls = 0

    def transform(self, options, fmt, source, dest) -> None:
        self.calls += 1
        super().transform(options, fmt, source, dest)


class CountingDiskStorage(DiskStorage):
    """Disk storage that records uploaded keys."""

    def __init__(self, root, endpoint) -> None:
        super().__init__(root, endpoint)
        self.uploads: list[str] = []

    def upload(self, key, reader, options=None) -> None:
        self.uploads.append(key)
        super().upload(key, reader, options)


@pytest.fixture
def disk(tmp_path) -> CountingDiskStorage:
    return CountingDiskStorage(tmp_path / "storage", DISK_ENDPOINT)


@pytest.fixture
def transformer() -> CountingTransformer:
    return CountingTransformer()


@pytest.fixture
def store(disk, transformer) -> Storage:
    return Storage(disk, VariantEngine(transformer))


@pytest.fixture
def sample_png(disk) -> bytes:
    """sample.jpg key holding PNG bytes is fine: Pillow sniffs the content."""
    data = make_png()
    disk.upload("sample.jpg", io.BytesIO(data))
    disk.upload("images/photo.png", io.BytesIO(data))
    disk.uploads.clear()
    return data


@pytest.fixture
def settings(tmp_path) -> Settings:
    return Settings(
        _env_file=None,
        serving_endpoint=SERVING_ENDPOINT,
        local_storage_dir=str(tmp_path / "storage"),
        local_storage_endpoint=DISK_ENDPOINT,
        admin_token=ADMIN_TOKEN,
        signing_key=None,
        metrics_secret=None,
    )


@pytest.fixture
async def client(store, settings):
    app = create_app(store, settings)
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac


@pytest.fixture
def signed_settings(settings) -> Settings:
    return settings.model_copy(update={"signing_key": "serving-secret", "signing_expires_seconds": 3600})


@pytest.fixture
def signed_app(store, signed_settings):
    return create_app(store, signed_settings)


@pytest.fixture
async def signed_client(signed_app):
    async with AsyncClient(
        transport=ASGITransport(app=signed_app),
        base_url="http://test",
    ) as ac:
        yield ac
