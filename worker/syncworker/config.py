from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class WorkerSettings(BaseSettings):
    database_url: str = "sqlite:///./vendorsync.db"
    redis_url: str = "redis://localhost:6379/0"
    lock_ttl_seconds: int = 1800
    browser_timeout_seconds: float = 60.0
    network_idle_timeout_seconds: float = 30.0
    default_max_products: int = 100
    max_scroll_iterations: int = 8
    scroll_wait_ms: int = 1000
    user_agent: str = (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/124.0.0.0 Safari/537.36"
    )
    proxy_url: str | None = None
    enrich_limit: int = 5
    log_level: str = "INFO"

    model_config = SettingsConfigDict(env_file=".env", env_prefix="VENDORSYNC_", extra="ignore")


@lru_cache
def get_settings() -> WorkerSettings:
    return WorkerSettings()
