"""
Supply Chain Agent Configuration Management
"""
from pydantic_settings import BaseSettings
from pydantic import Field
from typing import Optional
from functools import lru_cache


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Application
    app_name: str = Field(default="SupplyChainAgent", alias="APP_NAME")
    app_version: str = Field(default="1.0.0", alias="APP_VERSION")
    agent_version: str = Field(default="1.0.0", alias="AGENT_VERSION")

    # Backend (MCP context store + supply chain REST API)
    backend_url: str = Field(default="http://localhost:3000/api", alias="BACKEND_URL")
    backend_timeout_seconds: float = Field(default=10.0, alias="BACKEND_TIMEOUT_SECONDS")
    backend_max_attempts: int = Field(default=3, alias="BACKEND_MAX_ATTEMPTS")
    backend_retry_backoff_seconds: float = Field(
        default=0.5,
        alias="BACKEND_RETRY_BACKOFF_SECONDS"
    )

    # Data collection
    data_freshness_seconds: int = Field(default=300, alias="DATA_FRESHNESS_SECONDS")
    weather_api_key: Optional[str] = Field(default=None, alias="WEATHER_API_KEY")
    news_api_key: Optional[str] = Field(default=None, alias="NEWS_API_KEY")

    # Logging
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")
    log_format: str = Field(default="json", alias="LOG_FORMAT")

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = False
        populate_by_name = True


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


# Global settings instance
settings = get_settings()
