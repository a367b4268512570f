"""Configuration management using Pydantic Settings."""

from pathlib import Path
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables and .env file."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Directories and files
    output_dir: Path = Field(Path("output"))
    review_config_path: Path = Field(Path("config.json"), description="Review configuration JSON")

    # Year range defaults for the CLI
    default_year_start: int = Field(2015, ge=1900, le=2100)

    # Logging
    log_level: str = Field("INFO")
    log_format: str = Field("json", pattern="^(json|text)$")

    @field_validator("log_level")
    @classmethod
    def _upper_level(cls, v: str) -> str:
        return v.upper()


# Instantiate global settings
settings = Settings()
