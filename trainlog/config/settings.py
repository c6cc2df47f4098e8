import os
from pathlib import Path

from loguru import logger
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


def get_database_url() -> str:
    """Get database URL, using an absolute path for the local SQLite fallback."""
    db_url = os.getenv("DATABASE_URL", "")
    if db_url:
        return db_url

    db_path = Path(__file__).parent.parent.parent / "trainlog.db"
    db_url = f"sqlite:///{db_path.resolve()}"
    logger.warning(f"Using SQLite database (LOCAL DEV ONLY): {db_url}")
    return db_url


class Settings(BaseSettings):
    openai_api_key: str = Field(default="", validation_alias="OPENAI_API_KEY")
    llm_provider: str = Field(default="openai", validation_alias="LLM_PROVIDER")
    log_level: str = Field(default="INFO", validation_alias="LOG_LEVEL")
    log_file: str | None = Field(default=None, validation_alias="LOG_FILE")
    log_json: bool = Field(
        default=False,
        validation_alias="LOG_JSON",
        description="Serialize log records as JSON lines",
    )
    database_url: str = Field(
        default_factory=get_database_url,
        validation_alias="DATABASE_URL",
    )
    redis_url: str = Field(default="redis://localhost:6379/0", validation_alias="REDIS_URL")
    agent_max_iterations: int = Field(
        default=20,
        validation_alias="AGENT_MAX_ITERATIONS",
        description="Upper bound on model turns per extraction run",
    )
    agent_max_tokens: int = Field(
        default=8192,
        validation_alias="AGENT_MAX_TOKENS",
        description="Max output tokens per orchestrator model turn",
    )
    default_user_timezone: str = Field(
        default="America/Los_Angeles",
        validation_alias="DEFAULT_USER_TIMEZONE",
    )
    search_index_enabled: bool = Field(
        default=True,
        validation_alias="SEARCH_INDEX_ENABLED",
        description="Index saved workout summaries for semantic search",
    )
    exercise_extraction_enabled: bool = Field(
        default=True,
        validation_alias="EXERCISE_EXTRACTION_ENABLED",
        description="Enqueue derived exercise-record extraction after each save",
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        extra="ignore",
    )

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, value: str) -> str:
        """Validate that log level is one of the standard logging levels."""
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        upper_value = value.upper()
        if upper_value not in valid_levels:
            logger.warning(f"Invalid LOG_LEVEL '{value}'. Valid levels are: {', '.join(valid_levels)}. Defaulting to INFO.")
            return "INFO"
        return upper_value

    @field_validator("agent_max_iterations")
    @classmethod
    def validate_max_iterations(cls, value: int) -> int:
        """Keep the iteration limit positive."""
        if value < 1:
            logger.warning(f"AGENT_MAX_ITERATIONS must be >= 1, got {value}. Defaulting to 20.")
            return 20
        return value


settings = Settings()
