from pydantic_settings import BaseSettings, SettingsConfigDict
from functools import lru_cache
from typing import Literal, Optional


class Settings(BaseSettings):
    # App
    app_name: str = "ApprovalFlow"
    debug: bool = False

    # Storage
    database_url: str = "sqlite:///./approvalflow.db"
    store_backend: Literal["sql", "memory"] = "sql"

    # Logging
    log_level: str = "INFO"
    log_dir: str = "./logs"
    log_file_enabled: bool = False
    log_max_bytes: int = 10485760  # 10MB
    log_backup_count: int = 5

    # Webhooks
    webhook_url: Optional[str] = None
    webhook_timeout: float = 10.0
    webhook_token: Optional[str] = None

    # Header set by the trusted proxy in front of the API
    identity_header: str = "X-Caller-Identity"

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
    )


@lru_cache
def get_settings() -> Settings:
    return Settings()
