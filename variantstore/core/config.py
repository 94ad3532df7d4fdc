"""Application settings."""
from pydantic_settings import BaseSettings
from functools import lru_cache


class Settings(BaseSettings):
    """App config from env."""

    app_name: str = "Variant Storage"
    debug: bool = False
    # Structured logging: set LOG_JSON=1 for one-JSON-object-per-line (CloudWatch, etc.)
    log_json: bool = False
    host: str = "127.0.0.1"
    port: int = 8080
    # If set, /metrics requires the X-Metrics-Secret header
    metrics_secret: str | None = None
    # Bearer token for /objects routes; unset disables them
    admin_token: str | None = None

    # Storage: local (disk), s3, gcs or null. Default local so no cloud account is required.
    storage_backend: str = "local"  # local | s3 | gcs | null
    local_storage_dir: str = "./storage"
    # Public URL prefix of the disk route below
    local_storage_endpoint: str = "http://localhost:8080/disk"
    # Unauthenticated static route for origin bytes (local backend only)
    disk_route: str = "/disk"

    # S3 (only used when storage_backend=s3)
    s3_bucket: str | None = None
    aws_region: str = "us-east-1"
    # Delivery endpoint joined with the key (bucket website, CloudFront, ...)
    s3_endpoint: str | None = None
    # API endpoint override for S3 compatible stores (MinIO, R2)
    s3_endpoint_url: str | None = None
    s3_acl: str = "private"

    # GCS (only used when storage_backend=gcs)
    gcs_bucket: str | None = None
    gcs_endpoint: str | None = None

    # Serving: public URL of the redirect endpoint; its path is the route path
    serving_endpoint: str = "http://localhost:8080/storage/redirect"
    # Signing key for serving URLs; unset disables signature checks
    signing_key: str | None = None
    # Default TTL for signed serving URLs; 0 = never expires
    signing_expires_seconds: int = 0

    # ACL applied to generated variants: private | public-read (unset = backend default)
    variant_acl: str | None = None

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"


@lru_cache
def get_settings() -> Settings:
    return Settings()
