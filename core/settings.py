"""
Application settings and configuration.
"""
from typing import Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from dotenv import load_dotenv
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# Load .env file explicitly
load_dotenv()


class Settings(BaseSettings):
    """Listing settings loaded from environment variables."""

    # ========== Listing ==========
    PRINT_HARDLINK_ID: bool = False
    PRINT_TO_SCREEN: bool = False

    # ========== Output parts ==========
    NUMBER_OF_PARTS: int = Field(1, ge=1)
    PART_SIZE_BYTES: Optional[int] = Field(None, gt=0)

    # ========== Formatting ==========
    DATE_TIMEZONE: str = "UTC"

    # ========== Logging ==========
    LOG_LEVEL: str = "WARNING"

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @field_validator("LOG_LEVEL")
    @classmethod
    def _normalize_log_level(cls, value: str) -> str:
        level = value.upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"Unknown log level: {value}")
        return level

    @field_validator("DATE_TIMEZONE")
    @classmethod
    def _check_timezone(cls, value: str) -> str:
        try:
            ZoneInfo(value)
        except (ZoneInfoNotFoundError, ValueError) as e:
            raise ValueError(f"Unknown timezone: {value}") from e
        return value


# Create settings instance
settings = Settings()
