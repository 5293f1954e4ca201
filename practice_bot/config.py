"""Configuration settings using pydantic-settings."""
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Telegram Bot
    BOT_TOKEN: str = Field(default="", description="Telegram Bot API token")

    # Quiz service
    QUIZ_API_BASE_URL: str = Field(
        default="http://localhost:3000/api/quiz",
        description="Base URL of the quiz practice API"
    )
    QUIZ_API_TOKEN: Optional[str] = Field(
        default=None,
        description="Bearer token for the quiz practice API"
    )
    QUIZ_API_TIMEOUT: int = Field(default=15, description="API request timeout in seconds")
    SUBMIT_MAX_RETRIES: int = Field(
        default=2,
        description="Retries for an answer submission after a network error"
    )
    SUBMIT_RETRY_BACKOFF: float = Field(
        default=0.5,
        description="Initial delay between submission retries (doubled each time)"
    )

    # Practice session
    TICK_INTERVAL: float = Field(default=1.0, description="Countdown tick period in seconds")
    AUTO_ADVANCE_DELAY: float = Field(
        default=2.0,
        description="Pause before moving on in continuous mode"
    )
    TIMER_REFRESH_SECONDS: int = Field(
        default=10,
        description="How often the countdown is redrawn in chat"
    )

    # Database
    DATABASE_PATH: str = Field(
        default="data/practice_bot.db",
        description="Path to SQLite database file"
    )

    # Logging
    LOG_LEVEL: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR)"
    )
    LOG_FILE: Optional[str] = Field(
        default=None,
        description="Path to log file"
    )

    class Config:
        """Pydantic config."""
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = True
        extra = "ignore"


# Global settings instance
settings = Settings()
