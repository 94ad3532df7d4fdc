"""HMAC-signed serving URLs with optional expiry.

The signature covers the whole URL with its query canonicalized (sorted by key,
percent-encoded), so signer and validator agree regardless of the order the
client sends parameters in.
"""
import hashlib
import hmac
import time
from typing import Callable
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

SIGNATURE_PARAM = "signature"
EXPIRES_PARAM = "expires"


class SignatureError(ValueError):
    """Signed URL failed validation."""

    reason = "invalid"


class SignatureExpiredError(SignatureError):
    reason = "expired"


class SignatureMissingError(SignatureError):
    reason = "missing"


class SignatureInvalidError(SignatureError):
    reason = "invalid"


def canonical_query(pairs: list[tuple[str, str]]) -> str:
    """Percent-encode pairs ordered by key; values of one key keep their order."""
    return urlencode(sorted(pairs, key=lambda kv: kv[0]))


def _with_query(parts, pairs: list[tuple[str, str]]) -> str:
    return urlunsplit((parts.scheme, parts.netloc, parts.path, canonical_query(pairs), parts.fragment))


class HmacURLSigner:
    """Sign and validate URLs with HMAC-SHA256 over the canonical URL."""

    def __init__(self, key: bytes | str, clock: Callable[[], float] = time.time) -> None:
        if isinstance(key, str):
            key = key.encode()
        if not key:
            raise ValueError("signing key must not be empty")
        self._key = key
        self._clock = clock

    def _hash(self, s: str) -> str:
        return hmac.new(self._key, s.encode(), hashlib.sha256).hexdigest()

    def sign(self, url: str, expires_in: int = 0) -> str:
        """Append expires (when expires_in != 0) and signature to url."""
        parts = urlsplit(url)
        pairs = [(k, v) for k, v in parse_qsl(parts.query, keep_blank_values=True) if k != SIGNATURE_PARAM]
        if expires_in:
            pairs = [(k, v) for k, v in pairs if k != EXPIRES_PARAM]
            pairs.append((EXPIRES_PARAM, str(int(self._clock() + expires_in))))
        signature = self._hash(_with_query(parts, pairs))
        pairs.append((SIGNATURE_PARAM, signature))
        return _with_query(parts, pairs)

    def validate(self, signed_url: str) -> None:
        """Raise SignatureExpiredError, SignatureMissingError or SignatureInvalidError; return None if valid."""
        parts = urlsplit(signed_url)
        pairs = parse_qsl(parts.query, keep_blank_values=True)
        query = dict(pairs)

        if EXPIRES_PARAM in query:
            try:
                expires = int(query[EXPIRES_PARAM])
            except ValueError:
                raise SignatureInvalidError("invalid expires") from None
            if expires <= self._clock():
                raise SignatureExpiredError("expired")

        signature = query.get(SIGNATURE_PARAM)
        if not signature:
            raise SignatureMissingError("missing signature")

        unsigned = [(k, v) for k, v in pairs if k != SIGNATURE_PARAM]
        expected = self._hash(_with_query(parts, unsigned))
        if not hmac.compare_digest(signature.encode(), expected.encode()):
            raise SignatureInvalidError("invalid signature")
