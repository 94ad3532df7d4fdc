"""Redact sensitive data from structured logs. Never log signing keys, URL signatures, or cloud credentials."""
import re
from typing import Any
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

# Keys (case-insensitive) that must be redacted in dicts
REDACT_KEYS = frozenset({
    "password", "token", "secret", "authorization", "cookie",
    "signature", "signing_key", "api_key", "credential",
    "x-amz-signature", "x-goog-signature",
})


def _redact_key(key: str) -> bool:
    k = key.lower()
    return any(r in k for r in REDACT_KEYS)


def redact_for_log(obj: Any) -> Any:
    """Return a copy of obj safe for logging: sensitive keys replaced with '[REDACTED]'."""
    if obj is None:
        return None
    if isinstance(obj, dict):
        return {
            k: "[REDACTED]" if _redact_key(k) else redact_for_log(v)
            for k, v in obj.items()
        }
    if isinstance(obj, (list, tuple)):
        return type(obj)(redact_for_log(x) for x in obj)
    if isinstance(obj, str) and _looks_like_secret(obj):
        return "[REDACTED]"
    return obj


def redact_query(url: str) -> str:
    """Replace values of sensitive query parameters in a URL (signed serving or presigned backend URLs)."""
    parts = urlsplit(url)
    if not parts.query:
        return url
    pairs = [
        (k, "[REDACTED]" if _redact_key(k) else v)
        for k, v in parse_qsl(parts.query, keep_blank_values=True)
    ]
    return urlunsplit((parts.scheme, parts.netloc, parts.path, urlencode(pairs), parts.fragment))


def _looks_like_secret(s: str) -> bool:
    """Heuristic: bearer token or long hex digest (HMAC-SHA256)."""
    if s.lower().startswith("bearer "):
        return True
    if re.fullmatch(r"[0-9a-f]{64}", s):
        return True
    return False
