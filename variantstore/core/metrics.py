"""Prometheus metrics: request count by route/status, latency, variant materialization, signatures."""
from prometheus_client import Counter, Histogram, generate_latest, CONTENT_TYPE_LATEST

REQUEST_COUNT = Counter(
    "http_requests_total",
    "Total requests",
    ["method", "path", "status_class"],
)
REQUEST_LATENCY = Histogram(
    "http_request_duration_seconds",
    "Request latency",
    ["method", "path"],
    buckets=(0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0),
)
VARIANT_MATERIALIZE_TOTAL = Counter(
    "variant_materialize_total",
    "Variant materializations",
    ["result"],  # hit | generated | error
)
VARIANT_TRANSFORM_LATENCY = Histogram(
    "variant_transform_duration_seconds",
    "Download + transform + upload time of generated variants",
    buckets=(0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0),
)
SIGNATURE_REJECTED_TOTAL = Counter(
    "serving_signature_rejected_total",
    "Serving requests rejected by signature validation",
    ["reason"],  # expired | missing | invalid
)
SIGNED_URL_MINT_TOTAL = Counter(
    "signed_url_mint_total",
    "Signed URL mints",
    ["kind"],  # serving | backend
)


def _status_class(status: int) -> str:
    if status < 200:
        return "1xx"
    if status < 300:
        return "2xx"
    if status < 400:
        return "3xx"
    if status < 500:
        return "4xx"
    return "5xx"


def record_request(method: str, path: str, status_code: int, latency_seconds: float, disk_route: str = "/disk") -> None:
    path = path or "/"
    # Normalize path to avoid high cardinality (e.g. /disk/a/b.png -> /disk/{key})
    if path.startswith(disk_route.rstrip("/") + "/"):
        path = disk_route.rstrip("/") + "/{key}"
    elif path.startswith("/objects/"):
        path = "/objects/{key}"
    sc = _status_class(status_code)
    REQUEST_COUNT.labels(method=method, path=path, status_class=sc).inc()
    REQUEST_LATENCY.labels(method=method, path=path).observe(latency_seconds)


def record_variant_hit() -> None:
    VARIANT_MATERIALIZE_TOTAL.labels(result="hit").inc()


def record_variant_generated(latency_seconds: float) -> None:
    VARIANT_MATERIALIZE_TOTAL.labels(result="generated").inc()
    VARIANT_TRANSFORM_LATENCY.observe(latency_seconds)


def record_variant_error() -> None:
    VARIANT_MATERIALIZE_TOTAL.labels(result="error").inc()


def record_signature_rejected(reason: str) -> None:
    SIGNATURE_REJECTED_TOTAL.labels(reason=reason).inc()


def record_signed_url_mint(kind: str = "serving") -> None:
    SIGNED_URL_MINT_TOTAL.labels(kind=kind).inc()


def get_metrics() -> tuple[bytes, str]:
    return generate_latest(), CONTENT_TYPE_LATEST
