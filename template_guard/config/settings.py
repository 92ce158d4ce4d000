"""
Validator configuration

Settings are read from ``TEMPLATE_GUARD_*`` environment variables and an
optional ``.env`` file, validated by pydantic and cached per process.
"""

import logging
from enum import Enum
from typing import Any, Dict, Optional

from dotenv import load_dotenv
from pydantic import Field, ValidationError as PydanticValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict

from template_guard.exceptions import ConfigurationError

# Load environment variables from .env file if it exists
load_dotenv()

logger = logging.getLogger(__name__)


class LogLevel(str, Enum):
    """Logging level options"""
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class ValidatorSettings(BaseSettings):
    """Configuration for parsing and validating templates."""

    log_level: LogLevel = Field(
        default=LogLevel.INFO,
        description="Log level used by the command line front end"
    )
    near_limit_ratio: float = Field(
        default=0.9,
        gt=0,
        le=1.0,
        description="Fraction of a character limit above which a proximity warning is raised"
    )
    parallel_passes: bool = Field(
        default=False,
        description="Run rule passes on a thread pool"
    )
    max_workers: int = Field(
        default=8,
        ge=1,
        le=16,
        description="Thread pool size when passes run in parallel"
    )
    strict: bool = Field(
        default=False,
        description="Treat warnings as failures in the command line exit status"
    )

    model_config = SettingsConfigDict(
        env_prefix="TEMPLATE_GUARD_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        frozen=True
    )

    def get_summary(self) -> Dict[str, Any]:
        """Get a summary of current settings"""
        return {
            "log_level": self.log_level.value,
            "near_limit_ratio": self.near_limit_ratio,
            "parallel_passes": self.parallel_passes,
            "max_workers": self.max_workers,
            "strict": self.strict
        }


# Global settings instance
_settings: Optional[ValidatorSettings] = None


def get_settings() -> ValidatorSettings:
    """Get the process-wide settings, loading them on first use"""
    global _settings
    if _settings is None:
        try:
            _settings = ValidatorSettings()
        except PydanticValidationError as e:
            raise ConfigurationError(
                f"Invalid validator settings: {e.errors()[0]['msg']}",
                original_exception=e
            ) from e
        logger.debug(f"Loaded settings: {_settings.get_summary()}")
    return _settings


def reset_settings() -> None:
    """Drop the cached settings so the next call reloads them"""
    global _settings
    _settings = None
