"""Configuration management for thesis assets."""

from pathlib import Path
from typing import Any

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .types import DuplicatePolicy


class AssetConfig(BaseSettings):
    """Asset registrar configuration."""

    root: Path = Field(
        default=Path("./outputs"), description="Root of the asset directory tree"
    )
    duplicate_policy: DuplicatePolicy = Field(
        default=DuplicatePolicy.OVERWRITE,
        description="Behaviour when a category/section/name/version is re-saved",
    )
    lock_timeout: float = Field(
        default=10.0, gt=0, description="Manifest lock timeout in seconds"
    )
    figure_dpi: int = Field(default=300, gt=0, description="Resolution of figures")
    capture_source_reference: bool = Field(
        default=True, description="Record the calling code location on save"
    )

    @field_validator("duplicate_policy", mode="before")
    @classmethod
    def normalize_policy(cls, v: Any) -> Any:
        """Accept policy names in any case."""
        if isinstance(v, str):
            return v.strip().lower()
        return v

    model_config = SettingsConfigDict(
        env_prefix="ASSETS_", env_file=".env", extra="ignore"
    )


class AppConfig(BaseSettings):
    """Main application configuration."""

    log_level: str = Field(default="INFO", description="Logging level")
    development: bool = Field(default=False, description="Development mode")

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )


class Settings:
    """Global settings manager."""

    def __init__(self) -> None:
        """Initialize settings."""
        # Load from default .env or environment variables
        self.app = AppConfig()
        self.assets = AssetConfig()


settings: Settings | None = None


def get_settings() -> Settings:
    """Get the global settings instance."""
    global settings
    if settings is None:
        settings = Settings()
    return settings


def reset_settings() -> None:
    """Drop the cached settings so the next access re-reads the environment."""
    global settings
    settings = None
