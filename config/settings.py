"""
Configuration management using Pydantic Settings.

Environment variables are loaded from .env file or system environment,
prefixed with LSOS_ (e.g. LSOS_REDIS_HOST).
"""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Main application settings"""

    # Redis Configuration
    redis_host: str = Field(default="localhost", description="Redis server host")
    redis_port: int = Field(default=6379, description="Redis server port")
    redis_db: int = Field(default=0, description="Redis database index")

    # Credentials
    credentials_file: str | None = Field(default=None, description="Path to the API credentials YAML file")

    # API behaviour
    rate_limit: int = Field(default=120, gt=0, description="Requests per credential per window")
    rate_limit_window: int = Field(default=60, gt=0, description="Rate limit window in seconds")
    default_page_size: int = Field(default=25, gt=0)
    max_page_size: int = Field(default=100, gt=0)

    # Webhook delivery
    webhook_timeout: float = Field(default=10.0, gt=0, description="Per-attempt HTTP timeout in seconds")
    webhook_max_attempts: int = Field(default=5, ge=1)
    webhook_backoff_multiplier: float = Field(default=1.0, ge=0)
    webhook_backoff_max: float = Field(default=30.0, ge=0)
    webhook_workers: int = Field(default=2, ge=1)

    # Server Configuration
    host: str = Field(default="127.0.0.1", description="Server host")
    port: int = Field(default=8000, description="Server port")
    reload: bool = Field(default=False, description="Enable auto-reload in development")
    log_level: str = Field(default="INFO")

    model_config = SettingsConfigDict(
        env_prefix="LSOS_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )


# Singleton instance
settings = Settings()
