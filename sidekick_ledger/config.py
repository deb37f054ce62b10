"""Configuration management using Pydantic Settings"""

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application configuration loaded from environment variables"""

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # Storage
    database_url: str = "sqlite:///./sidekick_ledger.db"
    storage_key: str = "sidekick_debt_data"

    # Torn API
    torn_api_base: str = "https://api.torn.com"
    torn_api_key: str | None = None

    # Service
    service_name: str = "sidekick-ledger"
    log_level: str = "INFO"

    # HTTP Client
    http_timeout_seconds: float = 10.0
    api_call_spacing_seconds: float = 1.0  # Politeness delay between bulk Torn calls

    # API key readiness (20 x 250ms)
    api_key_wait_attempts: int = 20
    api_key_wait_delay_seconds: float = 0.25

    # Timers
    interest_interval_seconds: float = 600.0
    reconcile_interval_seconds: float = 60.0
    reconcile_initial_delay_seconds: float = 2.0
    activity_interval_seconds: float = 60.0
    placeholder_lookup_delay_seconds: float = 2.0

    # Reconciliation policy
    log_window_hours: float = 2.0
    activity_refresh_hours: float = 24.0


settings = Settings()
