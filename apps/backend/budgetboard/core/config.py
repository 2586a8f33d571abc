from pydantic_settings import BaseSettings, SettingsConfigDict
from pathlib import Path
from typing import Any


class Settings(BaseSettings):
    APP_NAME: str = "Budgetboard Backend"
    ENV: str = "dev"

    # 기본 SQLite 파일 DB, CWD와 무관하게 apps/backend/db.sqlite3 사용
    _default_db_path = Path(__file__).resolve().parents[2] / "db.sqlite3"
    DATABASE_URL: str = f"sqlite:///{_default_db_path}"

    CORS_ORIGINS: list[str] = ["*"]
    TIMEZONE: str = "Europe/Madrid"
    LOG_LEVEL: str = "INFO"

    # Upper bound on occurrences materialized by one recurring create
    MAX_RECURRENCE_OCCURRENCES: int = 1000

    # Billing gateway (payment provider proxy)
    BILLING_API_URL: str = "http://localhost:8787"
    BILLING_API_KEY: str = ""
    BILLING_TIMEOUT: float = 10.0
    SUBSCRIPTION_PLANS: list[dict[str, Any]] = [
        {
            "price_id": "price_monthly",
            "plan_type": "monthly",
            "name": "Monthly",
            "amount": 4.99,
            "currency": "EUR",
            "interval": "month",
        },
        {
            "price_id": "price_annual",
            "plan_type": "annual",
            "name": "Annual",
            "amount": 49.99,
            "currency": "EUR",
            "interval": "year",
        },
    ]

    # Client side: where the dashboard logic finds the API
    API_URL: str = "http://localhost:8000"
    API_TIMEOUT: float = 15.0

    model_config = SettingsConfigDict(env_file=(".env",), env_prefix="BUDGETBOARD_", case_sensitive=False)


settings = Settings()
