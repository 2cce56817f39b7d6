"""Runtime configuration, read from BEAR_* environment variables or a .env file."""

from functools import lru_cache
from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="BEAR_", env_file=".env", extra="ignore")

    # Bear API token, passed through untouched to actions that accept one
    token: Optional[str] = None

    callback_timeout: float = 10.0
    callback_host: str = "127.0.0.1"
    bind_host: str = "127.0.0.1"

    open_command: str = "open"
    scheme: str = "bear"

    log_level: str = "WARNING"


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Load settings once per process"""
    return Settings()
