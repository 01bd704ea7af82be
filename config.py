"""
Configuration management for the FluxInkVerse backend.
Centralized configuration with environment variables.
"""
from typing import Optional
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field


class SecurityError(Exception):
    """Security configuration error."""
    pass


class Settings(BaseSettings):
    """Application settings with environment variable support."""

    # Environment
    environment: str = Field(default="development", validation_alias="ENVIRONMENT")

    # Supabase configuration
    supabase_url: str = Field(..., validation_alias="SUPABASE_URL")
    supabase_anon_key: str = Field(..., validation_alias="SUPABASE_ANON_KEY")
    supabase_service_role_key: Optional[str] = Field(None, validation_alias="SUPABASE_SERVICE_ROLE_KEY")
    # Local JWT verification; falls back to GoTrue lookups when unset
    supabase_jwt_secret: Optional[str] = Field(None, validation_alias="SUPABASE_JWT_SECRET")

    # Xendit (QRIS) configuration
    xendit_secret_key: Optional[str] = Field(None, validation_alias="XENDIT_SECRET_KEY")
    xendit_callback_token: Optional[str] = Field(None, validation_alias="XENDIT_CALLBACK_TOKEN")
    xendit_api_base: str = Field(default="https://api.xendit.co", validation_alias="XENDIT_API_BASE")
    xendit_api_version: str = Field(default="2022-07-31", validation_alias="XENDIT_API_VERSION")
    xendit_timeout: float = Field(default=15.0, validation_alias="XENDIT_TIMEOUT")

    # Premium pricing (IDR)
    premium_price: int = Field(default=10000, validation_alias="PREMIUM_PRICE")
    min_payment_amount: int = Field(default=1000, validation_alias="MIN_PAYMENT_AMOUNT")

    # Application configuration
    app_name: str = Field(default="FluxInkVerse", validation_alias="APP_NAME")
    app_version: str = Field(default="0.3.0", validation_alias="APP_VERSION")
    debug: bool = Field(default=False, validation_alias="DEBUG")
    site_url: str = Field(default="http://localhost:3000", validation_alias="SITE_URL")

    # CORS configuration
    cors_origins: list = Field(
        default=[
            "http://localhost:3000",
            "http://localhost:3001",
        ],
        validation_alias="ALLOWED_ORIGINS"
    )

    # Storage configuration
    covers_bucket: str = Field(default="covers", validation_alias="COVERS_BUCKET")
    avatars_bucket: str = Field(default="avatars", validation_alias="AVATARS_BUCKET")
    pages_bucket: str = Field(default="manga_pages", validation_alias="PAGES_BUCKET")
    max_avatar_size: int = Field(default=5 * 1024 * 1024, validation_alias="MAX_AVATAR_SIZE")  # 5MB
    max_cover_size: int = Field(default=10 * 1024 * 1024, validation_alias="MAX_COVER_SIZE")  # 10MB

    # Catalog behaviour
    volume_size: int = Field(default=10, validation_alias="VOLUME_SIZE")
    popular_limit: int = Field(default=6, validation_alias="POPULAR_LIMIT")
    recent_payments_limit: int = Field(default=5, validation_alias="RECENT_PAYMENTS_LIMIT")

    # Supabase Auth HTTP timeout (seconds)
    auth_timeout: float = Field(default=10.0, validation_alias="AUTH_TIMEOUT")

    # Per-query timeout for table reads and writes (seconds)
    db_query_timeout: float = Field(default=10.0, validation_alias="DB_QUERY_TIMEOUT")

    # Only honour X-Forwarded-For / X-Real-IP when running behind a trusted proxy
    trust_proxy_headers: bool = Field(default=False, validation_alias="TRUST_PROXY_HEADERS")

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.environment.lower() == "production"

    def validate_production_security(self) -> None:
        """Validate production security configuration."""
        if not self.is_production():
            return

        security_errors = []

        if self.debug:
            security_errors.append("DEBUG must be False in production")

        if not self.supabase_service_role_key:
            security_errors.append("SUPABASE_SERVICE_ROLE_KEY is required in production")

        if not self.xendit_callback_token:
            security_errors.append("XENDIT_CALLBACK_TOKEN is required in production")

        if security_errors:
            error_msg = "Production security validation failed:\n" + "\n".join(f"- {error}" for error in security_errors)
            raise SecurityError(error_msg)

    @property
    def get_service_key(self) -> str:
        """Get the service key for Supabase operations that bypass RLS."""
        if self.supabase_service_role_key:
            return self.supabase_service_role_key
        raise ValueError("No Supabase service key configured. Set SUPABASE_SERVICE_ROLE_KEY environment variable")

    @property
    def public_storage_base(self) -> str:
        """Base URL for objects in public Storage buckets."""
        return f"{self.supabase_url.rstrip('/')}/storage/v1/object/public"


# Global settings instance
settings = Settings()
