"""App surface: object routes behind the admin token, health, metrics, request headers, log redaction."""
from botocore.exceptions import ClientError
from httpx import ASGITransport, AsyncClient

from variantstore.core.logging_redaction import redact_for_log, redact_query
from variantstore.main import create_app
from variantstore.services.storage import DiskStorage
from variantstore.services.store import Storage

from conftest import ADMIN_TOKEN, DISK_ENDPOINT, make_png

AUTH = {"Authorization": f"Bearer {ADMIN_TOKEN}"}


def _client(app) -> AsyncClient:
    return AsyncClient(transport=ASGITransport(app=app), base_url="http://test")


# ----- objects -----


async def test_put_object(client, disk):
    data = make_png()
    r = await client.put("/objects/images/new.png", content=data, headers={**AUTH, "Content-Type": "image/png"})
    assert r.status_code == 201
    assert r.json() == {"key": "images/new.png", "url": f"{DISK_ENDPOINT}/images/new.png"}
    with disk.download("images/new.png") as f:
        assert f.read() == data

    r = await client.get("/disk/images/new.png")
    assert r.status_code == 200
    assert r.content == data


async def test_put_then_serve_variant(client, transformer):
    await client.put("/objects/up.png", content=make_png((40, 40)), headers=AUTH)
    r = await client.get("/storage/redirect", params={"key": "up.png", "size": "10"})
    assert r.status_code == 302
    assert transformer.calls == 1


async def test_delete_object(client, disk, sample_png):
    r = await client.delete("/objects/sample.jpg", headers=AUTH)
    assert r.status_code == 204
    assert not disk.exists("sample.jpg")
    # Idempotent
    r = await client.delete("/objects/sample.jpg", headers=AUTH)
    assert r.status_code == 204


async def test_delete_prefix(client, disk, sample_png):
    await client.get("/storage/redirect", params={"key": "images/photo.png", "size": "8"})
    await client.get("/storage/redirect", params={"key": "images/photo.png", "size": "9"})
    r = await client.delete("/objects/variants/images", params={"prefix": "true"}, headers=AUTH)
    assert r.status_code == 204
    assert not [p for p in (disk.root / "variants").rglob("*") if p.is_file()]
    assert disk.exists("images/photo.png")
    assert disk.exists("sample.jpg")


async def test_object_routes_require_token(client, sample_png):
    r = await client.put("/objects/x.png", content=b"x")
    assert r.status_code == 401
    r = await client.delete("/objects/sample.jpg", headers={"Authorization": "Bearer wrong"})
    assert r.status_code == 401
    r = await client.post("/objects/sample.jpg/signed-url", headers={"Authorization": ADMIN_TOKEN})
    assert r.status_code == 401


async def test_object_routes_disabled_without_token(store, settings, disk, sample_png):
    app = create_app(store, settings.model_copy(update={"admin_token": None}))
    async with _client(app) as ac:
        r = await ac.delete("/objects/sample.jpg", headers=AUTH)
    assert r.status_code == 403
    assert disk.exists("sample.jpg")


async def test_signed_url_unsupported_on_disk(client):
    r = await client.post("/objects/a.png/signed-url", headers=AUTH)
    assert r.status_code == 501


async def test_signed_url_from_backend(tmp_path, settings):
    class PresigningDisk(DiskStorage):
        def sign_url(self, key, method="GET", expires_in=0):
            return f"https://signed.example/{key}?m={method}", {"Content-Type": "image/png"}

    app = create_app(Storage(PresigningDisk(tmp_path / "s", DISK_ENDPOINT)), settings)
    async with _client(app) as ac:
        r = await ac.post("/objects/a.png/signed-url", params={"method": "put", "expires_in": 60}, headers=AUTH)
    assert r.status_code == 200
    body = r.json()
    assert body["url"] == "https://signed.example/a.png?m=put"
    assert body["method"] == "PUT"
    assert body["headers"] == {"Content-Type": "image/png"}
    assert body["expires_at"]


def _access_denied(*args, **kwargs):
    raise ClientError({"Error": {"Code": "AccessDenied", "Message": "Access Denied"}}, "PutObject")


async def test_backend_sdk_errors_are_500(client, disk, monkeypatch):
    monkeypatch.setattr(disk, "upload", _access_denied)
    monkeypatch.setattr(disk, "delete", _access_denied)
    monkeypatch.setattr(disk, "delete_prefixed", _access_denied)
    monkeypatch.setattr(disk, "sign_url", _access_denied)

    r = await client.put("/objects/a.png", content=b"x", headers=AUTH)
    assert r.status_code == 500
    assert r.json() == {"detail": "Upload failed"}
    assert r.headers["X-Request-ID"]

    r = await client.delete("/objects/a.png", headers=AUTH)
    assert r.status_code == 500
    assert r.json() == {"detail": "Delete failed"}

    r = await client.delete("/objects/a", params={"prefix": "true"}, headers=AUTH)
    assert r.status_code == 500

    r = await client.post("/objects/a.png/signed-url", headers=AUTH)
    assert r.status_code == 500
    assert r.json() == {"detail": "Signing failed"}


# ----- health, metrics, headers -----


async def test_healthz(client):
    r = await client.get("/healthz")
    assert r.status_code == 200
    assert r.json() == {"status": "ok"}
    assert r.headers["X-Request-ID"]
    assert r.headers["X-Content-Type-Options"] == "nosniff"


async def test_request_id_on_redirects(client, sample_png):
    r = await client.get("/storage/redirect", params={"key": "sample.jpg"})
    assert r.status_code == 302
    assert r.headers["X-Request-ID"]


async def test_metrics(client, sample_png):
    await client.get("/storage/redirect", params={"key": "sample.jpg", "size": "12"})
    r = await client.get("/metrics")
    assert r.status_code == 200
    assert "variant_materialize_total" in r.text
    assert "http_requests_total" in r.text


async def test_metrics_secret(store, settings):
    app = create_app(store, settings.model_copy(update={"metrics_secret": "m"}))
    async with _client(app) as ac:
        assert (await ac.get("/metrics")).status_code == 401
        assert (await ac.get("/metrics", headers={"X-Metrics-Secret": "nope"})).status_code == 401
        assert (await ac.get("/metrics", headers={"X-Metrics-Secret": "m"})).status_code == 200


# ----- log redaction -----


def test_redact_query_hides_signatures():
    out = redact_query("http://h/storage/redirect?key=a.png&signature=deadbeef&X-Amz-Signature=abc")
    assert "deadbeef" not in out
    assert "abc" not in out
    assert "key=a.png" in out
    assert redact_query("http://h/p") == "http://h/p"


def test_redact_for_log():
    out = redact_for_log({
        "authorization": "Bearer t",
        "nested": {"signing_key": "s", "path": "/a"},
        "digest": "a" * 64,
        "items": ["Bearer x", "ok"],
    })
    assert out == {
        "authorization": "[REDACTED]",
        "nested": {"signing_key": "[REDACTED]", "path": "/a"},
        "digest": "[REDACTED]",
        "items": ["[REDACTED]", "ok"],
    }
