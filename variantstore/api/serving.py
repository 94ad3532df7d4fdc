"""Serving: redirect endpoint resolving key (+ variant options) to a delivery URL, signed serving URLs, disk route.

GET <path>?key=...[&size=..][&resize_to_fill=WxH][&format=..][&quality=..][&expires=..][&signature=..]
  400  bad signature, bad options, missing key
  500  variant generation failed
  302  Location = origin URL (no options) or variant URL
"""
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Callable
from urllib.parse import parse_qsl, urlsplit, urlunsplit

from fastapi import APIRouter, Request
from fastapi.responses import PlainTextResponse, RedirectResponse, Response
from starlette.staticfiles import StaticFiles

from variantstore.core.metrics import record_signature_rejected, record_signed_url_mint
from variantstore.core.security import HmacURLSigner, SignatureError, canonical_query
from variantstore.services.store import Storage
from variantstore.services.variants.options import RESERVED_QUERY_KEYS, VariantOptions, VariantOptionsError
from variantstore.services.variants.variant import InvalidOriginKeyError

logger = logging.getLogger(__name__)


def _identity(key: str) -> str:
    return key


def _build_url(endpoint: str, key: str, options: VariantOptions | None) -> str:
    parts = urlsplit(endpoint)
    pairs = parse_qsl(parts.query, keep_blank_values=True)
    pairs.append(("key", key))
    if options is not None:
        for k, v in options.to_query().items():
            if isinstance(v, tuple):
                pairs.extend((k, x) for x in v)
            else:
                pairs.append((k, v))
    return urlunsplit((parts.scheme, parts.netloc, parts.path, canonical_query(pairs), parts.fragment))


def redirect_url(endpoint: str, key: str, options: VariantOptions | None = None) -> str:
    """Unsigned serving URL: redirect_url('http://example.com', 'a.png', o) -> 'http://example.com?key=a.png&size=..'."""
    return _build_url(endpoint, key, options)


@dataclass
class ServerOptions:
    # Applied to keys when building URLs / parsing requests (default: unchanged)
    key_encoder: Callable[[str], str] | None = None
    key_decoder: Callable[[str], str] | None = None
    # Resolves origin/variant keys to delivery URLs (default: store.service.url)
    url_resolver: Callable[[str], str] | None = None
    # Signs serving URLs so clients cannot change options; None disables checks
    signing_key: bytes | str | None = None
    # Default TTL (seconds) of signed serving URLs; 0 = never expires
    signing_expires: int = 0


class ServingServer:
    def __init__(
        self,
        endpoint: str,
        store: Storage,
        options: ServerOptions | None = None,
        path: str | None = None,
    ) -> None:
        options = options or ServerOptions()
        self.endpoint = endpoint
        self.path = path or urlsplit(endpoint).path or "/"
        self._store = store
        self._key_encoder = options.key_encoder or _identity
        self._key_decoder = options.key_decoder or _identity
        self._url_resolver = options.url_resolver or store.service.url
        self._signer = HmacURLSigner(options.signing_key) if options.signing_key else None
        self._signing_expires = options.signing_expires

    def router(self) -> APIRouter:
        router = APIRouter(tags=["serving"])
        router.add_api_route(self.path, self.handle, methods=["GET"], response_class=Response)
        return router

    def handle(self, request: Request) -> Response:
        """Sync endpoint: FastAPI runs it in the threadpool, backend calls block."""
        if self._signer is not None:
            full_url = f"{self.endpoint}?{request.url.query}"
            try:
                self._signer.validate(full_url)
            except SignatureError as e:
                record_signature_rejected(e.reason)
                return PlainTextResponse(str(e), status_code=400)

        stripped = [(k, v) for k, v in request.query_params.multi_items() if k not in RESERVED_QUERY_KEYS]
        try:
            options = VariantOptions.parse(stripped)
        except VariantOptionsError as e:
            return PlainTextResponse(str(e), status_code=400)

        key = request.query_params.get("key")
        if not key:
            return PlainTextResponse("missing key", status_code=400)
        try:
            key = self._key_decoder(key)
        except ValueError as e:
            return PlainTextResponse(f"invalid key: {e}", status_code=400)

        if options.is_empty():
            return RedirectResponse(self._url_resolver(key), status_code=302)

        try:
            variant_key = self._store.materialize(key, options)
        except InvalidOriginKeyError as e:
            return PlainTextResponse(f"invalid key: {e}", status_code=400)
        except Exception as e:
            # Reason goes to the client as-is; details were logged by the variant
            return PlainTextResponse(str(e) or type(e).__name__, status_code=500)
        return RedirectResponse(self._url_resolver(variant_key), status_code=302)

    def url(self, key: str, options: VariantOptions | None = None, expires_in: int | None = None) -> str:
        """Serving URL for key + options; signed when a signing key is configured.

        expires_in overrides the server default TTL (0 = never expires).
        """
        url = _build_url(self.endpoint, self._key_encoder(key), options)
        if self._signer is None:
            return url
        expires = self._signing_expires if expires_in is None else expires_in
        record_signed_url_mint("serving")
        return self._signer.sign(url, expires)


def disk_app(directory: str | Path) -> StaticFiles:
    """Static app serving origin bytes from the disk backend's root (unauthenticated)."""
    Path(directory).mkdir(parents=True, exist_ok=True)
    return StaticFiles(directory=directory)
