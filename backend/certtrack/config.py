"""Application configuration using Pydantic Settings."""

from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import computed_field
from pydantic_settings import BaseSettings, SettingsConfigDict
from sqlalchemy.engine import URL, make_url


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # Application
    app_name: str = "CertTrack"
    environment: Literal["development", "staging", "production"] = "development"
    debug: bool = False
    log_level: str = "INFO"

    # Remote relational store
    # A full URL (e.g. Neon with ?sslmode=require) takes precedence over the parts
    database_url_override: str | None = None
    postgres_host: str = "localhost"
    postgres_port: int = 5432
    postgres_user: str = "certtrack"
    postgres_password: str = ""
    postgres_db: str = "certtrack"

    # Upper bound for any single remote call, in seconds
    remote_timeout_seconds: float = 15.0

    # Identity provider (GoTrue-compatible REST API)
    auth_url: str = "http://localhost:54321/auth/v1"
    auth_api_key: str = ""

    # AWS S3 (document blobs)
    aws_access_key_id: str | None = None
    aws_secret_access_key: str | None = None
    aws_s3_bucket: str = "documents"
    aws_s3_region: str = "us-east-2"
    aws_s3_endpoint_url: str | None = None  # Set for MinIO/LocalStack (e.g. http://localhost:9000)
    storage_public_base_url: str | None = None  # Defaults to the bucket's virtual-hosted URL
    signed_url_ttl_seconds: int = 60

    # Local document collection
    local_documents_path: Path = Path.home() / ".certtrack" / "local-documents-storage.json"

    # Checkout service
    checkout_api_url: str = "http://localhost:3001"

    def _override_url(self) -> URL | None:
        if not self.database_url_override:
            return None
        # Heroku-style postgres:// is not a dialect name SQLAlchemy knows
        return make_url(self.database_url_override.replace("postgres://", "postgresql://", 1))

    def _postgres_url(self, drivername: str) -> URL:
        url = self._override_url()
        if url is None:
            return URL.create(
                drivername,
                username=self.postgres_user,
                password=self.postgres_password or None,
                host=self.postgres_host,
                port=self.postgres_port,
                database=self.postgres_db,
            )
        if url.get_backend_name() != "postgresql":
            return url
        # libpq options such as sslmode are not URL parameters for asyncpg
        return url.set(drivername=drivername, query={})

    @computed_field
    @property
    def database_url(self) -> str:
        """Async (asyncpg) database URL used by the session factory and online migrations."""
        return self._postgres_url("postgresql+asyncpg").render_as_string(hide_password=False)

    @computed_field
    @property
    def database_url_sync(self) -> str:
        """Driverless database URL for rendering offline migration SQL."""
        return self._postgres_url("postgresql").render_as_string(hide_password=False)

    @computed_field
    @property
    def database_requires_ssl(self) -> bool:
        """True when the override URL asks for TLS; passed to asyncpg through connect_args."""
        url = self._override_url()
        if url is None:
            return False
        return "require" in (url.query.get("sslmode"), url.query.get("ssl"))


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


def sanitize_error(error: Exception, *, generic_message: str = "An internal error occurred.") -> str:
    """
    Return a user-safe error message.

    Outside development only the generic message is shown, so driver and
    network details never reach a store's error field.
    """
    if get_settings().environment == "development":
        return str(error) or generic_message
    return generic_message
