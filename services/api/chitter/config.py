"""
Configuration management using Pydantic BaseSettings.
All values can be overridden via environment variables or a .env file.
"""
from typing import Optional

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # ── TiDB (MySQL-protocol compatible) ───────────────────────────────────
    tidb_host: str = "tidb"
    tidb_port: int = 4000
    tidb_user: str = "root"
    tidb_password: str = ""
    tidb_database: str = "chitter"
    # Full SQLAlchemy URL; takes precedence over the tidb_* parts when set
    database_url: Optional[str] = None

    @property
    def db_url(self) -> str:
        if self.database_url:
            return self.database_url
        return (
            f"mysql+aiomysql://{self.tidb_user}:{self.tidb_password}"
            f"@{self.tidb_host}:{self.tidb_port}/{self.tidb_database}"
        )

    # ── Store guard ────────────────────────────────────────────────────────
    store_timeout_seconds: float = 5.0
    store_retry_backoff_seconds: float = 0.2   # single retry, reads only

    # ── Redis (feed page cache) ────────────────────────────────────────────
    redis_host: str = "redis"
    redis_port: int = 6379
    feed_cache_enabled: bool = True
    feed_cache_ttl: int = 60             # seconds per cached page

    # ── MinIO (S3-compatible) ──────────────────────────────────────────────
    blob_storage_enabled: bool = True
    minio_endpoint: str = "minio:9000"
    minio_access_key: str = "minioadmin"
    minio_secret_key: str = "minioadmin"
    minio_bucket: str = "chitter-media"
    minio_use_ssl: bool = False
    # Base URL clients use to fetch uploaded objects
    media_public_url: str = "http://localhost:9000"

    # ── Reverse geocoding ──────────────────────────────────────────────────
    geocoding_url: str = "https://maps.googleapis.com/maps/api/geocode/json"
    geocoding_api_key: str = ""
    geocoding_timeout: float = 2.0

    # ── Auth ───────────────────────────────────────────────────────────────
    jwt_secret: str = ""
    jwt_algorithm: str = "HS256"
    jwt_expiry_seconds: int = 60 * 60 * 24 * 7     # 7 days

    # ── Feed / chits ───────────────────────────────────────────────────────
    feed_page_size: int = 20
    feed_max_page_size: int = 100
    chit_max_length: int = 280

    # ── Observability ──────────────────────────────────────────────────────
    tracing_enabled: bool = True
    otel_exporter_otlp_endpoint: str = "http://jaeger:4317"
    service_name: str = "chitter-api"
    environment: str = "development"

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"


settings = Settings()
