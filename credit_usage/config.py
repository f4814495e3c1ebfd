"""Configuration management using Pydantic Settings"""

from decimal import Decimal

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application configuration loaded from environment variables"""

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # Service
    service_name: str = "credit-usage-engine"
    log_level: str = "INFO"

    # Debt Manager REST API (transaction and limit source)
    ledger_api_base: str = "http://localhost:3000/api"
    ledger_api_token: str | None = None

    # HTTP Client
    http_timeout_seconds: float = 5.0
    transactions_fetch_limit: int = 500  # API clamps recent transactions to 1..500

    # Reconciliation
    reconciliation_tolerance: Decimal = Decimal("0")

    # Worker
    worker_interval_seconds: int = 86400  # Daily


settings = Settings()
