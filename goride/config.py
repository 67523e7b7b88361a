"""Application configuration."""

from functools import lru_cache
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        env_parse_none_str="null",
    )

    # Application
    app_name: str = Field(default="GoRide API", alias="APP_NAME")
    app_version: str = Field(default="0.1.0", alias="APP_VERSION")
    environment: str = Field(default="development", alias="ENVIRONMENT")
    debug: bool = Field(default=False, alias="DEBUG")
    api_v1_prefix: str = Field(default="/api/v1", alias="API_V1_PREFIX")

    # Server
    host: str = Field(default="0.0.0.0", alias="HOST")
    port: int = Field(default=8000, alias="PORT")
    reload: bool = Field(default=False, alias="RELOAD")

    # Collaborators
    backend: Literal["firebase", "memory"] = Field(
        default="firebase",
        alias="BACKEND",
        description="Which auth provider and document store to wire in",
    )

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

    firebase_web_api_key: str = Field(
        default="",
        alias="FIREBASE_WEB_API_KEY",
        description="Web API key used for email/password sign-in",
    )

    firebase_auth_base_url: str = Field(
        default="https://identitytoolkit.googleapis.com/v1",
        alias="FIREBASE_AUTH_BASE_URL",
    )
    auth_timeout_seconds: float = Field(default=10.0, alias="AUTH_TIMEOUT_SECONDS")

    # Document layout
    users_collection: str = Field(default="users", alias="USERS_COLLECTION")
    rides_collection: str = Field(default="rides", alias="RIDES_COLLECTION")

    # Accounts
    default_display_name: str = Field(default="GoRide User", alias="DEFAULT_DISPLAY_NAME")
    min_password_length: int = Field(default=6, alias="MIN_PASSWORD_LENGTH")

    # Home sessions
    home_session_idle_seconds: float = Field(
        default=900.0,
        alias="HOME_SESSION_IDLE_SECONDS",
        description="Seconds without requests before a home session is closed; 0 disables",
    )

    # CORS
    cors_origins_str: str = Field(
        default="http://localhost:3000",
        alias="CORS_ORIGINS",
    )
    cors_allow_credentials: bool = Field(default=True, alias="CORS_ALLOW_CREDENTIALS")

    @property
    def cors_origins(self) -> list[str]:
        """Get CORS origins as a list."""
        if isinstance(self.cors_origins_str, str):
            return [origin.strip() for origin in self.cors_origins_str.split(",") if origin.strip()]
        return [self.cors_origins_str]

    # Logging
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")
    log_format: str = Field(default="json", alias="LOG_FORMAT")


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


# Global settings instance
settings = get_settings()
