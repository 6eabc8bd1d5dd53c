"""Application configuration."""

from pydantic_settings import BaseSettings
from functools import lru_cache
from typing import Optional


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # API Settings
    APP_NAME: str = "Creator Pipeline Engine"
    APP_VERSION: str = "1.0.0"
    API_V1_PREFIX: str = "/api/v1"
    DEBUG: bool = False
    ENVIRONMENT: str = "development"  # development, staging, production

    # CORS
    CORS_ORIGINS: str = "http://localhost:3000"

    # Database Settings
    DATABASE_URL: str = "sqlite+aiosqlite:///./creator_pipeline.db"
    SQLALCHEMY_ECHO: bool = False
    DB_POOL_SIZE: int = 20
    DB_MAX_OVERFLOW: int = 10

    # Redis Settings (Celery broker + result backend)
    REDIS_URL: str = "redis://localhost:6379/0"

    # Retry policy for action steps that opt in with retry_on_failure
    RETRY_BASE_DELAY: float = 1.0
    RETRY_DEFAULT_MAX_RETRIES: int = 3
    RETRY_MAX_DELAY: float = 300.0

    # Wait steps: how often the beat poller looks for due executions
    WAIT_POLL_INTERVAL_SECONDS: int = 60

    # Email delivery (send_email action, email alerts)
    SMTP_HOST: str = "localhost"
    SMTP_PORT: int = 587
    SMTP_USER: str = ""
    SMTP_PASSWORD: str = ""
    SMTP_USE_TLS: bool = True
    EMAIL_FROM_ADDRESS: str = "workflows@localhost"

    # Side-channel alerts
    SLACK_WEBHOOK_URL: str = ""
    ALERT_CHANNEL: str = "#creator-pipeline"

    # Claude AI Settings (ai_generate action)
    ANTHROPIC_API_KEY: str = ""
    CLAUDE_MODEL: str = "claude-sonnet-4-5-20250929"
    CLAUDE_MAX_TOKENS: int = 2048
    CLAUDE_TEMPERATURE: float = 0.7
    CLAUDE_TIMEOUT: int = 120
    CLAUDE_MAX_RETRIES: int = 3
    CLAUDE_SYSTEM_PROMPT: Optional[str] = (
        "You write short, friendly outreach and script content for UGC creators "
        "on behalf of a brand. Keep a warm, professional tone."
    )

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_FORMAT: str = "json"  # json or text

    @property
    def is_development(self) -> bool:
        """Check if running in development mode."""
        return self.ENVIRONMENT == "development"

    @property
    def is_production(self) -> bool:
        """Check if running in production mode."""
        return self.ENVIRONMENT == "production"

    @property
    def cors_origins_list(self) -> list[str]:
        """Comma-separated CORS_ORIGINS as a list."""
        return [origin.strip() for origin in self.CORS_ORIGINS.split(",") if origin.strip()]

    class Config:
        """Pydantic config."""

        env_file = ".env"
        case_sensitive = True


@lru_cache()
def get_settings() -> Settings:
    """
    Get application settings.

    Uses caching to ensure settings are loaded only once.

    Returns:
        Settings object with all configuration values
    """
    return Settings()
