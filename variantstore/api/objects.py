"""Objects: raw upload (PUT body), delete, backend presigned URLs. Guarded by ADMIN_TOKEN."""
import asyncio
import io
import logging
from datetime import datetime, timezone, timedelta

from fastapi import APIRouter, Depends, Header, HTTPException, Request, status

from variantstore.api.schemas import ObjectResponse, SignedUrlResponse
from variantstore.core.deps import get_store, require_admin_token
from variantstore.core.metrics import record_signed_url_mint
from variantstore.services.storage.base import DEFAULT_SIGN_EXPIRES_S, ObjectOptions, UnsupportedOperationError
from variantstore.services.store import Storage

router = APIRouter(prefix="/objects", tags=["objects"])
logger = logging.getLogger(__name__)


@router.put("/{key:path}", response_model=ObjectResponse, status_code=201, dependencies=[Depends(require_admin_token)])
async def upload_object(
    key: str,
    request: Request,
    x_object_acl: str | None = Header(None),
    store: Storage = Depends(get_store),
):
    # PUT body = raw object bytes
    content = await request.body()
    options = ObjectOptions(acl=x_object_acl, content_type=request.headers.get("content-type"))
    try:
        await asyncio.to_thread(store.service.upload, key, io.BytesIO(content), options)
    except Exception:
        logger.exception("upload failed key=%s", key)
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Upload failed")
    return ObjectResponse(key=key, url=store.service.url(key))


@router.delete("/{key:path}", status_code=204, dependencies=[Depends(require_admin_token)])
async def delete_object(
    key: str,
    prefix: bool = False,
    store: Storage = Depends(get_store),
):
    """Delete one key (idempotent), or every key under it with ?prefix=true."""
    delete = store.service.delete_prefixed if prefix else store.service.delete
    try:
        await asyncio.to_thread(delete, key)
    except Exception:
        logger.exception("delete failed key=%s prefix=%s", key, prefix)
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Delete failed")
    return None


@router.post("/{key:path}/signed-url", response_model=SignedUrlResponse, dependencies=[Depends(require_admin_token)])
async def create_signed_url(
    key: str,
    method: str = "GET",
    expires_in: int = 0,
    store: Storage = Depends(get_store),
):
    try:
        url, headers = await asyncio.to_thread(store.service.sign_url, key, method, expires_in)
    except UnsupportedOperationError as e:
        raise HTTPException(status_code=status.HTTP_501_NOT_IMPLEMENTED, detail=str(e))
    except Exception:
        logger.exception("signing failed key=%s method=%s", key, method)
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Signing failed")
    record_signed_url_mint("backend")
    ttl = expires_in or DEFAULT_SIGN_EXPIRES_S
    return SignedUrlResponse(
        url=url,
        method=method.upper(),
        headers=headers,
        expires_at=datetime.now(timezone.utc) + timedelta(seconds=ttl),
    )
