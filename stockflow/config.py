"""
Configuration module for the stock-and-flow engine
Centralizes all environment variable access and configuration settings
"""

from typing import Optional
from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from stockflow.constants import (
    DEFAULT_INTEGRATION_METHOD,
    DEFAULT_STEP_SIZE,
    DEFAULT_DELTA_PER_SECOND,
    VALID_INTEGRATION_METHODS,
)


class Settings(BaseSettings):
    """
    Engine settings loaded from environment variables

    All settings can be overridden via environment variables.
    Default values are provided for development.
    """

    # Logging configuration
    log_level: str = "INFO"
    log_format: str = "human"  # "json" or "human"
    log_file: Optional[str] = None
    log_max_bytes: int = 10 * 1024 * 1024  # 10 MB
    log_backup_count: int = 5

    # Environment
    env: str = "development"  # "development" or "production"
    debug: bool = False

    # Simulation defaults
    default_integration_method: str = DEFAULT_INTEGRATION_METHOD
    default_step_size: float = DEFAULT_STEP_SIZE
    default_delta_per_second: float = DEFAULT_DELTA_PER_SECOND

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @field_validator("default_integration_method")
    @classmethod
    def validate_method(cls, v: str) -> str:
        """Validate the default integration method name"""
        if v.lower() not in VALID_INTEGRATION_METHODS:
            raise ValueError(
                f"Integration method must be one of {sorted(VALID_INTEGRATION_METHODS)}"
            )
        return v.lower()

    @property
    def log_format_json(self) -> bool:
        """Check if logging should use JSON format"""
        return self.log_format.lower() == "json"

    @property
    def is_production(self) -> bool:
        """Check if running in production environment"""
        return self.env.lower() == "production"

    def __init__(self, **kwargs):
        """Initialize settings with environment variable overrides"""
        super().__init__(**kwargs)
        # Force JSON logging in production
        if self.is_production and not self.log_format_json:
            self.log_format = "json"


# Global settings instance (singleton)
_settings: Optional[Settings] = None


def get_settings() -> Settings:
    """
    Get the global settings instance (singleton pattern)

    Returns:
        Settings instance with current configuration
    """
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings


def reset_settings() -> None:
    """Drop the cached settings so the next get_settings() re-reads the environment"""
    global _settings
    _settings = None
