from pydantic import Field, computed_field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables (and `.env`).
    """

    # API Configuration
    API_V1_STR: str = "/api/v1"
    PROJECT_NAME: str = "Patient Portal API"
    PROJECT_DESCRIPTION: str = "Patient resolution, onboarding and hub proxy for the Healthie EHR"
    VERSION: str = "0.1.0"

    # Application Settings
    DEBUG: bool = Field(False, description="Debug mode (enables docs and permissive CORS)")
    ENVIRONMENT: str = Field("production", description="Runtime environment")
    CORS_ORIGINS: str = Field("", description="Comma separated list of allowed CORS origins")

    # External Service - Healthie GraphQL API
    HEALTHIE_API_URL: str = Field(
        "https://staging-api.gethealthie.com/graphql", description="Healthie GraphQL endpoint"
    )
    HEALTHIE_API_KEY: str | None = Field(None, description="Healthie API key (server side only)")
    HEALTHIE_PROVIDER_ID: str | None = Field(
        None, description="Default provider (dietitian_id) assigned to newly created clients"
    )
    HEALTHIE_AUTH_SCHEME: str = Field("Basic", description="Authorization scheme: Basic or Bearer")
    HEALTHIE_API_TIMEOUT: float = Field(30.0, description="Timeout for Healthie requests in seconds")
    HEALTHIE_MAX_RETRIES: int = Field(3, description="Total attempts for read queries on transient errors")

    # Eventual consistency of the Healthie search index
    HEALTHIE_CONFIRM_INDEXING: bool = Field(True, description="Wait for a created client to become searchable")
    HEALTHIE_LOOKUP_ATTEMPTS: int = Field(3, description="Lookups made while waiting for the index")
    HEALTHIE_LOOKUP_INITIAL_DELAY: float = Field(2.0, description="Delay before the first indexing lookup")
    HEALTHIE_LOOKUP_DELAY_INCREMENT: float = Field(2.0, description="Delay added between indexing lookups")

    # Sessions
    SESSION_TTL_HOURS: int = Field(24, description="Session lifetime in hours (no renewal)")

    # Sentry Configuration
    SENTRY_DSN: str | None = Field(None, description="Sentry DSN for error tracking")

    model_config = SettingsConfigDict(
        case_sensitive=True,
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    @field_validator("HEALTHIE_AUTH_SCHEME")
    @classmethod
    def validate_auth_scheme(cls, v):
        scheme = v.strip().capitalize()
        if scheme not in ("Basic", "Bearer"):
            raise ValueError("HEALTHIE_AUTH_SCHEME must be 'Basic' or 'Bearer'")
        return scheme

    @field_validator("HEALTHIE_MAX_RETRIES", "HEALTHIE_LOOKUP_ATTEMPTS")
    @classmethod
    def validate_attempts(cls, v):
        if v < 1:
            raise ValueError("attempt counts must be at least 1")
        return v

    @field_validator("SESSION_TTL_HOURS")
    @classmethod
    def validate_session_ttl(cls, v):
        if v < 1:
            raise ValueError("SESSION_TTL_HOURS must be at least 1")
        return v

    @computed_field
    @property
    def is_development(self) -> bool:
        """True for debug or local environments."""
        return self.DEBUG or self.ENVIRONMENT.lower() in ["development", "dev", "local"]

    @computed_field
    @property
    def cors_origins(self) -> list[str]:
        return [origin.strip() for origin in self.CORS_ORIGINS.split(",") if origin.strip()]

    @computed_field
    @property
    def healthie_configured(self) -> bool:
        return bool(self.HEALTHIE_API_KEY)


# Cached settings instance
_settings_instance = None


def get_settings() -> Settings:
    """
    Return the cached settings instance.
    Avoids reading the environment more than once.
    """
    global _settings_instance
    if _settings_instance is None:
        _settings_instance = Settings()
    return _settings_instance
