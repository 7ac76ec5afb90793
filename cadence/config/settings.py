import os
from pathlib import Path
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from loguru import logger
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from cadence.constants import FALLBACK_TIMEZONE


def get_database_url() -> str:
    """Get database URL, using absolute path for SQLite to avoid path resolution issues.

    ⚠️ SQLite is for local development only. Set DATABASE_URL to a PostgreSQL
    connection string in any deployed environment.
    """
    db_url = os.getenv("DATABASE_URL", "")
    if db_url:
        logger.info(f"Using DATABASE_URL from environment: {db_url}")
        return db_url

    db_path = Path(__file__).parent.parent.parent / "cadence.db"
    abs_path = db_path.resolve()
    db_url = f"sqlite:///{abs_path}"
    logger.warning(f"⚠️ Using SQLite database (LOCAL DEV ONLY): {db_url}")
    return db_url


def get_default_catalog_path() -> str:
    """Path of the challenge catalog shipped with the package."""
    return str(Path(__file__).parent.parent / "data" / "challenges.yaml")


class Settings(BaseSettings):
    database_url: str = Field(
        default_factory=get_database_url,
        validation_alias="DATABASE_URL",
    )
    log_level: str = Field(default="INFO", validation_alias="LOG_LEVEL")
    log_file: str | None = Field(default=None, validation_alias="LOG_FILE")
    log_json: bool = Field(default=False, validation_alias="LOG_JSON", description="Write LOG_FILE as JSON lines")
    default_timezone: str = Field(
        default=FALLBACK_TIMEZONE,
        validation_alias="DEFAULT_TIMEZONE",
        description="Timezone used when a user profile has none",
    )
    challenge_catalog_path: str = Field(
        default_factory=get_default_catalog_path,
        validation_alias="CHALLENGE_CATALOG_PATH",
        description="YAML file holding the challenge definitions",
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

    @field_validator("default_timezone")
    @classmethod
    def validate_default_timezone(cls, value: str) -> str:
        """Validate that the default timezone is a known IANA name."""
        try:
            ZoneInfo(value)
        except (ZoneInfoNotFoundError, ValueError):
            logger.warning(f"Invalid DEFAULT_TIMEZONE '{value}'. Defaulting to {FALLBACK_TIMEZONE}.")
            return FALLBACK_TIMEZONE
        return value

    model_config = SettingsConfigDict(
        env_file=".env",
        extra="ignore",
    )


settings = Settings()
