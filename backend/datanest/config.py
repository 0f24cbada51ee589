"""Settings — every tunable of the marketplace, read from the environment or .env.

Invariants:
    - Secrets (jwt_secret, stripe_api_key, email_api_key) only ever come from the environment
    - get_settings() returns one cached instance per process

Design Decisions:
    - An empty stripe_api_key keeps startup working; purchase initiation then answers 503
    - An empty email_api_key turns notifications into log lines
"""

from functools import lru_cache

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=False)

    # Database
    database_url: str = (
        "postgresql+asyncpg://datanest:datanest@db:5432/datanest"
    )

    @field_validator("database_url", mode="before")
    @classmethod
    def convert_postgres_url(cls, v: str) -> str:
        """Hosted Postgres hands out postgresql:// but asyncpg needs postgresql+asyncpg://."""
        if isinstance(v, str) and v.startswith("postgresql://"):
            return v.replace("postgresql://", "postgresql+asyncpg://", 1)
        return v

    database_pool_size: int = 20
    database_max_overflow: int = 10

    # Auth (token issuing only — credential/OTP flow lives elsewhere)
    jwt_secret: str = "change-me"
    jwt_algorithm: str = "HS256"
    access_token_expire_minutes: int = 60 * 24 * 7

    # Payments
    stripe_api_key: str = ""
    stripe_max_retries: int = 2
    stripe_timeout_seconds: int = 30
    payment_currency: str = "usd"
    pending_purchase_ttl_minutes: int = 60

    # Blob storage
    upload_dir: str = "uploads"
    max_upload_bytes: int = 500 * 1024 * 1024

    # Email notifications (disabled when email_api_key is empty)
    email_api_url: str = "https://api.brevo.com/v3/smtp/email"
    email_api_key: str = ""
    email_from: str = "no-reply@datanest.local"
    email_sender_name: str = "DataNest"
    email_timeout_seconds: int = 10

    # API
    cors_origins: list[str] = ["http://localhost:5173"]

    # Observability
    log_level: str = "INFO"
    log_format: str = "json"


@lru_cache
def get_settings() -> Settings:
    return Settings()
