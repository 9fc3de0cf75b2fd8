"""Application configuration settings."""

from __future__ import annotations

from functools import lru_cache

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

ENV_FILE = ".env"
ENV_FILE_ENCODING = "utf-8"


class Settings(BaseSettings):
    """Application configuration values loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=ENV_FILE, env_file_encoding=ENV_FILE_ENCODING, extra="ignore"
    )

    database_url: str = Field(
        default="sqlite:///./notifications.db",
        description="Database connection URL used by SQLAlchemy to connect to the DB",
        min_length=1,
    )
    secret_key: str = Field(
        default="change-me",
        description="Secret key shared with the auth service to verify JWT tokens",
        min_length=1,
    )
    jwt_algorithm: str = Field(default="HS256", description="Algorithm used to sign JWT tokens")
    access_token_expire_minutes: int = Field(
        default=60,
        description="Number of minutes before access tokens expire",
        gt=0,
    )
    log_level: str = Field(default="INFO", description="Root log level")

    push_enabled: bool = Field(
        default=False,
        description="Deliver push notifications through the configured gateway",
    )
    fcm_project_id: str | None = Field(
        default=None, description="Firebase project that owns the device tokens"
    )
    fcm_client_email: str | None = Field(
        default=None, description="Service-account e-mail used to mint FCM access tokens"
    )
    fcm_private_key: str | None = Field(
        default=None, description="PEM private key of the FCM service account"
    )
    fcm_endpoint: str = Field(
        default="https://fcm.googleapis.com/v1/projects/{project_id}/messages:send",
        description="FCM HTTP v1 send endpoint template",
    )
    push_timeout_seconds: float = Field(default=10.0, gt=0)
    push_workers: int = Field(default=4, ge=1, le=64)
    push_max_attempts: int = Field(default=4, ge=1, le=10)
    push_backoff_seconds: float = Field(default=1.0, ge=0)
    push_backoff_max_seconds: float = Field(default=30.0, ge=0)
    push_queue_size: int = Field(default=10_000, ge=1)

    notification_page_limit: int = Field(
        default=50, description="Maximum page size accepted by listing endpoints", ge=1
    )

    @field_validator("fcm_private_key")
    @classmethod
    def _unescape_private_key(cls, value: str | None) -> str | None:
        # Keys pasted into .env files usually carry escaped newlines.
        return value.replace("\\n", "\n") if value else value

    @model_validator(mode="after")
    def _validate_fcm_credentials(self) -> "Settings":
        if self.push_enabled and not (
            self.fcm_project_id and self.fcm_client_email and self.fcm_private_key
        ):
            raise ValueError(
                "FCM_PROJECT_ID, FCM_CLIENT_EMAIL and FCM_PRIVATE_KEY are required to enable push"
            )
        if self.push_backoff_max_seconds < self.push_backoff_seconds:
            raise ValueError("PUSH_BACKOFF_MAX_SECONDS must be >= PUSH_BACKOFF_SECONDS")
        return self

    @property
    def fcm_send_url(self) -> str:
        """Return the FCM endpoint for the configured project."""

        return self.fcm_endpoint.format(project_id=self.fcm_project_id or "")


@lru_cache
def get_settings() -> Settings:
    """Return cached application settings instance."""

    return Settings()


def reset_settings_cache() -> None:
    """Clear the settings cache to force reloading from the environment."""

    get_settings.cache_clear()


__all__ = ["Settings", "get_settings", "reset_settings_cache"]
