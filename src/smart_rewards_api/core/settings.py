from functools import lru_cache
from typing import Literal

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="allow")

    environment: Literal["development", "staging", "production"] = "development"
    database_url: str = "sqlite+aiosqlite:///./smart_rewards.db"
    secret_key: str = "change-me"

    # Auth tokens
    jwt_secret: str | None = None
    jwt_algorithm: str = "HS256"
    jwt_expiry_hours: int = 24 * 7

    # Application URLs
    frontend_url: str = "http://localhost:3000"
    api_base_url: str = "http://localhost:8000"

    # Image uploads
    upload_dir: str = "uploads"
    upload_max_bytes: int = Field(default=5 * 1024 * 1024, ge=1)

    # Offer redemption
    redemption_code_ttl_hours: int = Field(default=24, ge=1)

    # Mukando payouts
    mukando_payout_min_age_days: int = Field(default=30, ge=0)
    mukando_reward_worker_enabled: bool = False
    mukando_reward_interval_seconds: int = Field(default=86400, ge=1)

    # Observability
    metrics_api_key: str | None = None

    @model_validator(mode="after")
    def _default_jwt_secret(self) -> "Settings":
        if not self.jwt_secret:
            self.jwt_secret = self.secret_key
        return self


@lru_cache
def get_settings() -> Settings:
    return Settings()


settings = get_settings()
