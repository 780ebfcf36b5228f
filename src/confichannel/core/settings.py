"""Application settings and configuration.

This module defines all configuration options for the ConfiChannel relay.
Settings are loaded from environment variables with sensible defaults.
"""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    Settings can be overridden via environment variables or .env files.
    """

    # Application metadata
    app_name: str = Field(default="ConfiChannel", alias="APP_NAME")
    app_version: str = Field(default="0.6.0", alias="APP_VERSION")

    # Security and authentication
    secret_key: str = Field(alias="SECRET_KEY")
    debug: bool = Field(default=False, alias="DEBUG")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    # Database configuration
    database_url: str = Field(default="sqlite:///./confichannel.db", alias="DATABASE_URL")
    sql_debug: bool = Field(default=False, alias="SQL_DEBUG")
    run_startup_migrations: bool = Field(default=True, alias="RUN_STARTUP_MIGRATIONS")

    # Device token settings
    jwt_algorithm: str = Field(default="HS256", alias="JWT_ALGORITHM")
    device_token_expire_seconds: int = Field(
        default=60 * 60 * 24 * 90,
        alias="DEVICE_TOKEN_EXPIRE_SECONDS",
    )
    # Tokens expiring sooner than this are reissued on the next request
    device_token_refresh_seconds: int = Field(
        default=60 * 60 * 24 * 30,
        alias="DEVICE_TOKEN_REFRESH_SECONDS",
    )

    # Tier limits
    max_channels_without_subscription: int = Field(
        default=10, alias="MAX_CHANNELS_WITHOUT_SUBSCRIPTION"
    )
    max_channels_with_subscription: int = Field(
        default=1000, alias="MAX_CHANNELS_WITH_SUBSCRIPTION"
    )
    max_message_size_without_subscription: int = Field(
        default=40_024, alias="MAX_MESSAGE_SIZE_WITHOUT_SUBSCRIPTION"
    )
    max_message_size_with_subscription: int = Field(
        default=4_000_024, alias="MAX_MESSAGE_SIZE_WITH_SUBSCRIPTION"
    )
    max_invites_per_channel: int = Field(default=100, alias="MAX_INVITES_PER_CHANNEL")
    max_unidirectional_devices: int = Field(default=100, alias="MAX_UNIDIRECTIONAL_DEVICES")
    subscription_grace_seconds: int = Field(default=180, alias="SUBSCRIPTION_GRACE_SECONDS")

    # Expiry windows (seconds)
    channel_ttl_seconds: int = Field(default=31_557_600, alias="CHANNEL_TTL_SECONDS")
    bidirectional_invite_ttl_seconds: int = Field(
        default=172_800, alias="BIDIRECTIONAL_INVITE_TTL_SECONDS"
    )
    unidirectional_invite_ttl_seconds: int = Field(
        default=31_557_600, alias="UNIDIRECTIONAL_INVITE_TTL_SECONDS"
    )

    # CORS configuration for web frontend access
    cors_origins: list[str] = Field(
        default=["*"],
        alias="CORS_ORIGINS",
    )
    cors_allow_credentials: bool = Field(default=False, alias="CORS_ALLOW_CREDENTIALS")
    cors_allow_methods: list[str] = Field(
        default=["GET", "POST", "DELETE", "OPTIONS"],
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
