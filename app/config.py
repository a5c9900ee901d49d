"""Application configuration."""

from functools import lru_cache
from typing import Any

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

# Providers that sign in without a client secret
PROVIDERS_WITHOUT_SECRET = frozenset({"Apple"})


class ExternalProviderSettings(BaseModel):
    """Settings for a single external sign-in provider."""

    enabled: bool = False
    client_id: str = ""
    client_secret: str = ""
    extra_options: dict[str, Any] = Field(default_factory=dict)


def _default_providers() -> dict[str, ExternalProviderSettings]:
    return {
        name: ExternalProviderSettings()
        for name in (
            "Amazon",
            "Apple",
            "Facebook",
            "GitHub",
            "Google",
            "Microsoft",
            "Twitter",
        )
    }


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        env_parse_none_str="null",
        env_nested_delimiter="__",
        populate_by_name=True,
    )

    # Application
    app_name: str = Field(default="London Travel", alias="APP_NAME")
    app_version: str = Field(default="0.1.0", alias="APP_VERSION")
    environment: str = Field(default="development", alias="ENVIRONMENT")
    debug: bool = Field(default=False, alias="DEBUG")
    api_prefix: str = Field(default="/api", alias="API_PREFIX")
    api_v1_prefix: str = Field(default="/api/v1", alias="API_V1_PREFIX")

    # Server
    host: str = Field(default="0.0.0.0", alias="HOST")
    port: int = Field(default=8000, alias="PORT")
    reload: bool = Field(default=False, alias="RELOAD")

    # Database
    database_url: str = Field(
        default="postgresql://localhost:5432/londontravel",
        alias="DATABASE_URL",
    )

    # Redis
    redis_host: str = Field(default="localhost", alias="REDIS_HOST")
    redis_port: int = Field(default=6379, alias="REDIS_PORT")
    redis_username: str = Field(default="default", alias="REDIS_USERNAME")
    redis_password: str = Field(default="", alias="REDIS_PASSWORD")
    redis_decode_responses: bool = Field(default=True, alias="REDIS_DECODE_RESPONSES")

    # Cached total of user documents shown on the home page; /api/_count always counts the store
    user_count_cache_ttl: int = Field(default=60, alias="USER_COUNT_CACHE_TTL")

    # Session tokens
    jwt_secret_key: str = Field(default="change-me-in-production", alias="JWT_SECRET_KEY")
    jwt_algorithm: str = Field(default="HS256", alias="JWT_ALGORITHM")
    session_expire_minutes: int = Field(default=60 * 24 * 14, alias="SESSION_EXPIRE_MINUTES")

    # Firebase
    firebase_credentials_path: str | None = Field(
        default=None,
        alias="FIREBASE_CREDENTIALS_PATH",
        description="Path to Firebase service account JSON file",
    )

    firebase_config_json: str | None = Field(
        default=None,
        alias="FIREBASE_CONFIG_JSON",
        description="Raw JSON string of the Firebase service account",
    )

    # External sign-in providers, keyed by provider name
    external_providers: dict[str, ExternalProviderSettings] = Field(
        default_factory=_default_providers,
        alias="EXTERNAL_PROVIDERS",
    )

    # TfL Unified API
    tfl_base_url: str = Field(default="https://api.tfl.gov.uk", alias="TFL_BASE_URL")
    tfl_app_id: str = Field(default="", alias="TFL_APP_ID")
    tfl_app_key: str = Field(default="", alias="TFL_APP_KEY")
    tfl_modes: str = Field(
        default="dlr,elizabeth-line,overground,tube",
        alias="TFL_MODES",
    )
    tfl_timeout_seconds: float = Field(default=10.0, alias="TFL_TIMEOUT_SECONDS")

    # Alexa account linking
    alexa_client_id: str = Field(default="", alias="ALEXA_CLIENT_ID")
    alexa_redirect_urls_str: str = Field(default="", alias="ALEXA_REDIRECT_URLS")

    # Authorization
    admin_role: str = Field(default="ADMINISTRATOR", alias="ADMIN_ROLE")

    # CORS
    cors_origins_str: str = Field(
        default="http://localhost:3000",
        alias="CORS_ORIGINS",
    )
    cors_allow_credentials: bool = Field(default=True, alias="CORS_ALLOW_CREDENTIALS")

    @property
    def cors_origins(self) -> list[str]:
        """Get CORS origins as a list."""
        return [origin.strip() for origin in self.cors_origins_str.split(",") if origin.strip()]

    @property
    def alexa_redirect_urls(self) -> list[str]:
        """Get the allowed Alexa redirect URLs as a list."""
        return [url.strip() for url in self.alexa_redirect_urls_str.split(",") if url.strip()]

    # Logging
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")
    log_format: str = Field(default="json", alias="LOG_FORMAT")

    @property
    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.environment.lower() == "production"

    @property
    def is_development(self) -> bool:
        """Check if running in development environment."""
        return self.environment.lower() == "development"

    def is_provider_enabled(self, name: str) -> bool:
        """
        Check whether an external sign-in provider is usable.

        A provider is usable when it is enabled and has a client ID and,
        unless it is one that signs in without one, a client secret.
        """
        provider = self.external_providers.get(name)

        if provider is None:
            return False

        requires_secret = name not in PROVIDERS_WITHOUT_SECRET

        return (
            provider.enabled
            and bool(provider.client_id)
            and (not requires_secret or bool(provider.client_secret))
        )

    @property
    def enabled_providers(self) -> list[str]:
        """Names of the external providers that are enabled."""
        return sorted(name for name in self.external_providers if self.is_provider_enabled(name))


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


# Global settings instance
settings = get_settings()
