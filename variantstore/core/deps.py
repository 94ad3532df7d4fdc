"""FastAPI dependencies: app settings, storage facade, metrics guard, admin token."""
import hmac

from fastapi import Depends, Header, HTTPException, Request, status

from variantstore.core.config import Settings, get_settings
from variantstore.services.storage import ObjectOptions, get_storage_service
from variantstore.services.store import Storage
from variantstore.services.variants import VariantEngine


def build_store(settings: Settings | None = None) -> Storage:
    """Storage facade for the configured backend; variants get VARIANT_ACL when set."""
    settings = settings or get_settings()
    upload_options = ObjectOptions(acl=settings.variant_acl) if settings.variant_acl else None
    return Storage(get_storage_service(settings), VariantEngine(upload_options=upload_options))


def app_settings(request: Request) -> Settings:
    """Settings the app was created with (falls back to env settings)."""
    return getattr(request.app.state, "settings", None) or get_settings()


def get_store(request: Request) -> Storage:
    """Store bound to the app by create_app."""
    return request.app.state.store


def require_metrics_access(
    settings: Settings = Depends(app_settings),
    x_metrics_secret: str | None = Header(None, alias="X-Metrics-Secret"),
) -> None:
    """Allow /metrics if METRICS_SECRET is unset (local) or the X-Metrics-Secret header matches."""
    if settings.metrics_secret and x_metrics_secret != settings.metrics_secret:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or missing X-Metrics-Secret",
        )


def require_admin_token(
    settings: Settings = Depends(app_settings),
    authorization: str | None = Header(None),
) -> None:
    """Bearer ADMIN_TOKEN required; routes are disabled (403) when no token is configured."""
    if not settings.admin_token:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Object routes are disabled")
    expected = f"Bearer {settings.admin_token}"
    if authorization is None or not hmac.compare_digest(authorization.encode(), expected.encode()):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid or missing admin token")
