"""FastAPI app: request logging, security headers, serving redirect, disk route, object routes."""
import logging

from fastapi import Depends, FastAPI
from fastapi.responses import Response

from variantstore.api.objects import router as objects_router
from variantstore.api.serving import ServerOptions, ServingServer, disk_app
from variantstore.core.config import Settings, get_settings
from variantstore.core.deps import build_store, require_metrics_access
from variantstore.core.metrics import get_metrics
from variantstore.core.request_logging import RequestLoggingMiddleware
from variantstore.services.storage import DiskStorage
from variantstore.services.store import Storage


def _configure_logging(settings: Settings) -> None:
    logging.basicConfig(level=logging.DEBUG if settings.debug else logging.INFO)
    if settings.log_json:
        request_logger = logging.getLogger("variantstore.request")
        for h in request_logger.handlers[:]:
            request_logger.removeHandler(h)
        h = logging.StreamHandler()
        h.setFormatter(logging.Formatter("%(message)s"))
        request_logger.addHandler(h)
        request_logger.setLevel(logging.INFO)
        request_logger.propagate = False


def create_app(store: Storage | None = None, settings: Settings | None = None) -> FastAPI:
    """Build the app around an explicit store; default store comes from settings."""
    settings = settings or get_settings()
    _configure_logging(settings)
    store = store or build_store(settings)

    app = FastAPI(title=settings.app_name, debug=settings.debug)
    app.state.settings = settings
    app.state.store = store
    app.add_middleware(RequestLoggingMiddleware)

    @app.middleware("http")
    async def security_headers(request, call_next):
        response = await call_next(request)
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
        return response

    server = ServingServer(
        settings.serving_endpoint,
        store,
        ServerOptions(
            signing_key=settings.signing_key,
            signing_expires=settings.signing_expires_seconds,
        ),
    )
    app.state.server = server
    app.include_router(server.router())
    app.include_router(objects_router)

    # Origin bytes straight from disk, outside the signed serving protocol
    if isinstance(store.service, DiskStorage):
        app.mount(settings.disk_route, disk_app(store.service.root), name="disk")

    @app.get("/healthz")
    async def healthz():
        """Liveness: no auth, no backend calls."""
        return {"status": "ok"}

    @app.get("/metrics", response_class=Response)
    async def metrics(_: None = Depends(require_metrics_access)):
        """Prometheus metrics. Guard with METRICS_SECRET + X-Metrics-Secret header in prod."""
        body, content_type = get_metrics()
        return Response(content=body, media_type=content_type)

    return app


def run() -> None:
    """Console entry point: serve create_app() with uvicorn."""
    import uvicorn

    settings = get_settings()
    uvicorn.run("variantstore.main:create_app", factory=True, host=settings.host, port=settings.port)
