"""Configuration for the Task Notification Engine."""
from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Runtime settings for the engine, its cron jobs and channel providers.

    Every field is read from the environment variable of the same name
    (case-insensitive) or from a local ``.env`` file.
    """

    database_url: str = "sqlite:///./task_notifications.db"
    environment: str = "development"

    # Dispatcher
    dispatch_interval_seconds: int = Field(default=5, ge=1)
    dispatch_batch_size: int = Field(default=100, ge=1)
    default_max_retries: int = Field(default=3, ge=1)
    retry_backoff_seconds: int = Field(default=60, ge=0)

    # Scheduler maintenance
    overdue_sweep_interval_seconds: int = Field(default=3600, ge=1)
    daily_summary_hour: int = Field(default=8, ge=0, le=23)
    retention_days: int = Field(default=30, ge=1)

    # Content
    default_language: str = "en"
    app_base_url: str = "http://localhost:3000"

    # Channel providers
    delivery_dry_run: bool = True
    smtp_host: str = "localhost"
    smtp_port: int = 587
    smtp_username: str = ""
    smtp_password: str = ""
    smtp_sender: str = "noreply@example.com"
    push_service_endpoint: str = "https://push.example.com/send"
    sms_service_endpoint: str = "https://sms.example.com/send"
    provider_timeout_seconds: float = 10.0

    # Dapr pub/sub
    dapr_enabled: bool = False
    dapr_pubsub_name: str = "task-pubsub"

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )


@lru_cache
def get_settings() -> Settings:
    """Process-wide settings, read once from the environment."""
    return Settings()
