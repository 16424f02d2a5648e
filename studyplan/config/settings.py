import os
from pathlib import Path

from loguru import logger
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

SUPPORTED_LOCALES = ("ja", "en")


def get_database_url() -> str:
    """Get database URL, using absolute path for SQLite to avoid path resolution issues.

    SQLite is meant for local development only. Point DATABASE_URL at
    PostgreSQL for any shared deployment so the plan uniqueness constraint
    is enforced under concurrent writers.
    """
    db_url = os.getenv("DATABASE_URL", "")
    if db_url:
        logger.info(f"Using DATABASE_URL from environment: {db_url}")
        return db_url

    db_path = Path(__file__).parent.parent.parent / "studyplan.db"
    abs_path = db_path.resolve()
    db_url = f"sqlite:///{abs_path}"
    logger.warning(f"Using SQLite database (LOCAL DEV ONLY): {db_url}")
    return db_url


class Settings(BaseSettings):
    database_url: str = Field(
        default_factory=get_database_url,
        validation_alias="DATABASE_URL",
    )
    log_level: str = Field(default="INFO", validation_alias="LOG_LEVEL")
    log_file: str | None = Field(default=None, validation_alias="LOG_FILE")
    log_rotation: str = Field(default="10 MB", validation_alias="LOG_ROTATION")
    log_retention: str = Field(default="7 days", validation_alias="LOG_RETENTION")
    log_components: str | None = Field(
        default=None,
        validation_alias="LOG_COMPONENTS",
        description="Comma-separated component prefixes to log (e.g. PLAN_STORE,LIFECYCLE); unset logs everything",
    )
    locale: str = Field(
        default="ja",
        validation_alias="STUDYPLAN_LOCALE",
        description="Fixed locale for day-of-week labels, week labels and error messages",
    )
    store_retry_attempts: int = Field(
        default=3,
        ge=1,
        validation_alias="STORE_RETRY_ATTEMPTS",
        description="Total attempts for a store operation hitting transient connectivity errors",
    )
    store_retry_base_delay: float = Field(
        default=0.2,
        ge=0.0,
        validation_alias="STORE_RETRY_BASE_DELAY",
        description="Base backoff delay in seconds (doubled per attempt)",
    )
    store_retry_max_delay: float = Field(
        default=2.0,
        ge=0.0,
        validation_alias="STORE_RETRY_MAX_DELAY",
    )
    max_weeks_ahead: int = Field(
        default=2,
        ge=0,
        validation_alias="MAX_WEEKS_AHEAD",
        description="How many weeks past the current one week navigation may advance",
    )

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

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

    @field_validator("locale")
    @classmethod
    def validate_locale(cls, value: str) -> str:
        lowered = value.lower()
        if lowered not in SUPPORTED_LOCALES:
            logger.warning(f"Unsupported STUDYPLAN_LOCALE '{value}'. Supported: {', '.join(SUPPORTED_LOCALES)}. Defaulting to ja.")
            return "ja"
        return lowered


settings = Settings()
