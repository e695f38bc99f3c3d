from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    app_name: str = "Vendor Catalog Sync API"
    env: str = "dev"
    database_url: str = Field(default="sqlite:///./vendorsync.db")
    admin_token: str = "dev-admin-token"
    cron_secret: str | None = None
    public_base_url: str | None = None
    cors_origins: list[str] = Field(default_factory=lambda: ["http://localhost:3000", "http://127.0.0.1:3000"])

    model_config = SettingsConfigDict(env_file=".env", env_prefix="VENDORSYNC_", extra="ignore")


@lru_cache
def get_settings() -> Settings:
    return Settings()
