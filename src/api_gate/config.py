from pydantic_settings import BaseSettings
from typing import Optional


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Database
    database_url: str = "sqlite:///./api_gate.db"

    # Redis (optional key lookup cache)
    redis_url: Optional[str] = None

    # Security
    master_api_key: str = ""
    cookie_secure: bool = False
    login_path: str = "/auth"

    # Request logging
    log_queue_size: int = 10000
    log_workers: int = 2
    log_write_timeout_seconds: float = 5.0

    # Analytics
    stats_default_days: int = 7

    # Server Settings
    debug: bool = False
    log_level: str = "info"
    host: str = "0.0.0.0"
    port: int = 8080

    class Config:
        env_file = ".env"
        case_sensitive = False
        extra = "ignore"


# Global settings instance
settings = Settings()
