"""Application settings and configuration.

This module defines all configuration options for the CivicTrack application.
Settings are loaded from environment variables with sensible defaults.
"""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    Settings can be overridden via environment variables or .env files.
    """

    # Application metadata
    app_name: str = Field(default="CivicTrack", alias="APP_NAME")
    app_version: str = Field(default="0.1.0", alias="APP_VERSION")
    debug: bool = Field(default=False, alias="DEBUG")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    # Security and authentication
    secret_key: str = Field(alias="SECRET_KEY")
    jwt_algorithm: str = Field(default="HS256", alias="JWT_ALGORITHM")
    access_token_expire_minutes: int = Field(
        default=60 * 24 * 7,
        alias="ACCESS_TOKEN_EXPIRE_MINUTES",
    )

    # Database configuration
    database_url: str = Field(default="sqlite:///./civictrack.db", alias="DATABASE_URL")
    sql_debug: bool = Field(default=False, alias="SQL_DEBUG")

    # Moderation
    spam_threshold: int = Field(default=3, ge=1, alias="SPAM_THRESHOLD")

    # Geo discovery (meters)
    default_search_radius_m: float = Field(default=5000.0, gt=0, alias="DEFAULT_SEARCH_RADIUS_M")
    max_search_radius_m: float = Field(default=50000.0, gt=0, alias="MAX_SEARCH_RADIUS_M")
    search_timeout_seconds: float = Field(default=5.0, gt=0, alias="SEARCH_TIMEOUT_SECONDS")

    # Pagination
    default_page_limit: int = Field(default=10, ge=1, alias="DEFAULT_PAGE_LIMIT")
    admin_page_limit: int = Field(default=20, ge=1, alias="ADMIN_PAGE_LIMIT")
    max_page_limit: int = Field(default=100, ge=1, alias="MAX_PAGE_LIMIT")

    # Media
    max_images_per_issue: int = Field(default=5, ge=0, alias="MAX_IMAGES_PER_ISSUE")
    max_image_bytes: int = Field(default=2 * 1024 * 1024, alias="MAX_IMAGE_BYTES")
    allowed_image_types: list[str] = Field(
        default=["image/jpeg", "image/jpg", "image/png"],
        alias="ALLOWED_IMAGE_TYPES",
    )
    media_root: str = Field(default="./media/issues", alias="MEDIA_ROOT")
    media_base_url: str = Field(default="/media/issues", alias="MEDIA_BASE_URL")

    # CORS configuration for web frontend access
    cors_origins: list[str] = Field(
        default=["*"],
        alias="CORS_ORIGINS",
    )
    cors_allow_credentials: bool = Field(default=False, alias="CORS_ALLOW_CREDENTIALS")
    cors_allow_methods: list[str] = Field(
        default=["GET", "POST", "PATCH", "DELETE", "OPTIONS"],
        alias="CORS_ALLOW_METHODS",
    )
    cors_allow_headers: list[str] = Field(
        default=["*"],
        alias="CORS_ALLOW_HEADERS",
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        validate_assignment=True,
        extra="ignore",
    )


settings = Settings()  # type: ignore[call-arg]
