"""HMAC URL signer: sign/validate, expiry, tampering, canonical query order."""
from urllib.parse import parse_qs, urlsplit

import pytest

from variantstore.core.security import (
    HmacURLSigner,
    SignatureExpiredError,
    SignatureInvalidError,
    SignatureMissingError,
    canonical_query,
)

URL = "http://example.com/storage/redirect?size=100&key=images%2Fa.png"


class FakeClock:
    def __init__(self, now: float = 1_000_000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now


def _query(url: str) -> dict[str, list[str]]:
    return parse_qs(urlsplit(url).query)


def test_canonical_query_sorts_by_key_and_keeps_value_order():
    assert canonical_query([("b", "2"), ("a", "x/y"), ("b", "1")]) == "a=x%2Fy&b=2&b=1"


def test_sign_without_expiry():
    signer = HmacURLSigner("secret")
    signed = signer.sign(URL)
    q = _query(signed)
    assert "expires" not in q
    assert len(q["signature"][0]) == 64
    assert signed.startswith("http://example.com/storage/redirect?key=images%2Fa.png&signature=")
    signer.validate(signed)


def test_sign_with_expiry_uses_clock():
    clock = FakeClock()
    signer = HmacURLSigner(b"secret", clock=clock)
    signed = signer.sign(URL, expires_in=60)
    assert _query(signed)["expires"] == [str(int(clock.now) + 60)]
    signer.validate(signed)


def test_expired_url_rejected():
    clock = FakeClock()
    signer = HmacURLSigner("secret", clock=clock)
    signed = signer.sign(URL, expires_in=60)
    clock.now += 59
    signer.validate(signed)
    clock.now += 1
    with pytest.raises(SignatureExpiredError):
        signer.validate(signed)


def test_expiry_is_checked_before_signature():
    clock = FakeClock()
    signer = HmacURLSigner("secret", clock=clock)
    with pytest.raises(SignatureExpiredError):
        signer.validate(f"{URL}&expires={int(clock.now) - 1}")


def test_malformed_expires_is_invalid():
    signer = HmacURLSigner("secret")
    with pytest.raises(SignatureInvalidError):
        signer.validate(f"{URL}&expires=soon&signature=abc")


def test_missing_signature():
    signer = HmacURLSigner("secret")
    with pytest.raises(SignatureMissingError):
        signer.validate(URL)
    with pytest.raises(SignatureMissingError):
        signer.validate(URL + "&signature=")


@pytest.mark.parametrize(
    "old,new",
    [
        ("size=100", "size=101"),
        ("key=images%2Fa.png", "key=images%2Fb.png"),
        ("example.com", "example.org"),
    ],
)
def test_tampered_url_rejected(old, new):
    signer = HmacURLSigner("secret")
    signed = signer.sign(URL)
    with pytest.raises(SignatureInvalidError):
        signer.validate(signed.replace(old, new))


def test_added_parameter_rejected():
    signer = HmacURLSigner("secret")
    with pytest.raises(SignatureInvalidError):
        signer.validate(signer.sign(URL) + "&quality=5")


def test_extended_expiry_rejected():
    clock = FakeClock()
    signer = HmacURLSigner("secret", clock=clock)
    signed = signer.sign(URL, expires_in=60)
    expires = _query(signed)["expires"][0]
    with pytest.raises(SignatureInvalidError):
        signer.validate(signed.replace(f"expires={expires}", f"expires={int(expires) + 3600}"))


def test_wrong_key_rejected():
    signed = HmacURLSigner("secret").sign(URL)
    with pytest.raises(SignatureInvalidError):
        HmacURLSigner("other").validate(signed)


def test_parameter_order_does_not_matter():
    signer = HmacURLSigner("secret")
    signed = signer.sign(URL)
    sig = _query(signed)["signature"][0]
    signer.validate(f"http://example.com/storage/redirect?signature={sig}&size=100&key=images%2Fa.png")


def test_resigning_replaces_signature_and_expiry():
    clock = FakeClock()
    signer = HmacURLSigner("secret", clock=clock)
    first = signer.sign(URL, expires_in=10)
    clock.now += 100
    second = signer.sign(first, expires_in=10)
    q = _query(second)
    assert len(q["signature"]) == 1
    assert q["expires"] == [str(int(clock.now) + 10)]
    signer.validate(second)


def test_empty_key_rejected():
    with pytest.raises(ValueError):
        HmacURLSigner("")
