"""Application settings loaded from environment variables."""

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    app_name: str = "Price Survey"
    app_version: str = "0.1.0"
    api_prefix: str = "/api"
    # Collaborator record store (server side)
    database_url: str = "sqlite:///./price_survey.db"
    list_limit: int = 1000
    export_limit: int = 10000
    # Local durable queue (agent side)
    queue_database_url: str = "sqlite:///./pending_submissions.db"
    api_base_url: str = "http://localhost:8000/api"
    http_timeout: float = 30.0
    max_delivery_attempts: int = 3
    resync_settle_seconds: float = 1.0
    resync_on_start: bool = True
    # Substrings of transport errors that may hide a persisted request
    ambiguous_error_markers: tuple[str, ...] = ("SSL", "tlsv1")
    # Fixed-location provider; leave unset when the device has no fix
    geo_latitude: float | None = None
    geo_longitude: float | None = None
    geo_accuracy_m: float | None = None
    metrics_enabled: bool = True
    log_level: str = "INFO"
    log_buffer_size: int = 200

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="PRICE_SURVEY_",
        extra="ignore",
    )


settings = Settings()

__all__ = ["settings", "Settings"]
