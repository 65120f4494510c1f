#!/usr/bin/env python3
"""
Configuration Management for Fund Flow

Handles environment-based configuration with secure defaults and validation.
Supports multiple environments (development, test, production) with appropriate
security measures for each.
"""

import logging
import os
import tempfile
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any

from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()


class Environment(Enum):
    """Application environment types."""

    DEVELOPMENT = "development"
    TEST = "test"
    PRODUCTION = "production"


@dataclass
class LLMConfig:
    """Natural-language transaction parser configuration."""

    google_api_key: str | None = None
    groq_api_key: str | None = None
    default_model: str = "gemini-2.0-flash"
    timeout: int = 30
    temperature: float = 0.2


@dataclass
class ValidationConfig:
    """Tolerances applied when checking that splits balance."""

    # Imbalance at or below this passes silently
    silent_tolerance: float = 10
    # Imbalance above this is rejected; in between is a warning
    reject_tolerance: float = 100
    # Allowed drift between narrative FINAL AMOUNTS and structured splits
    narrative_tolerance: float = 10


@dataclass
class RefreshConfig:
    """Polling refresh of the selected fund's transactions."""

    poll_interval_seconds: float = 30.0


@dataclass
class CacheConfig:
    """Expiry policy for user lookups."""

    user_ttl_seconds: float = 30 * 60
    search_ttl_seconds: float = 5 * 60


@dataclass
class NotificationConfig:
    """Notification dispatch settings."""

    enabled: bool = True


@dataclass
class Config:
    """
    Main configuration class for the Fund Flow application.

    Loads configuration from environment variables with secure defaults
    and validation for each environment type.
    """

    environment: Environment

    # Document store root
    data_dir: Path

    # Component configurations
    llm: LLMConfig
    validation: ValidationConfig
    refresh: RefreshConfig
    cache: CacheConfig
    notifications: NotificationConfig

    # Application settings
    debug: bool = False
    log_level: str = "INFO"

    @classmethod
    def from_environment(cls) -> "Config":
        """Create configuration from environment variables."""
        env = Environment(os.getenv("FUNDFLOW_ENV", "development"))

        if env == Environment.TEST:
            default_test_dir = Path(tempfile.gettempdir()) / "test_fundflow"
            data_dir = Path(os.getenv("FUNDFLOW_DATA_DIR", str(default_test_dir)))
        else:
            data_dir = Path(os.getenv("FUNDFLOW_DATA_DIR", "./data")).expanduser().resolve()

        data_dir.mkdir(parents=True, exist_ok=True)

        llm = LLMConfig(
            google_api_key=os.getenv("GOOGLE_API_KEY"),
            groq_api_key=os.getenv("GROQ_API_KEY"),
            default_model=os.getenv("FUNDFLOW_AI_MODEL", "gemini-2.0-flash"),
            timeout=int(os.getenv("FUNDFLOW_AI_TIMEOUT", "30")),
        )

        validation = ValidationConfig(
            silent_tolerance=float(os.getenv("FUNDFLOW_SILENT_TOLERANCE", "10")),
            reject_tolerance=float(os.getenv("FUNDFLOW_REJECT_TOLERANCE", "100")),
            narrative_tolerance=float(os.getenv("FUNDFLOW_NARRATIVE_TOLERANCE", "10")),
        )

        refresh = RefreshConfig(
            poll_interval_seconds=float(os.getenv("FUNDFLOW_POLL_SECONDS", "30")),
        )

        cache = CacheConfig(
            user_ttl_seconds=float(os.getenv("FUNDFLOW_USER_CACHE_TTL", str(30 * 60))),
            search_ttl_seconds=float(os.getenv("FUNDFLOW_SEARCH_CACHE_TTL", str(5 * 60))),
        )

        notifications = NotificationConfig(
            enabled=os.getenv("FUNDFLOW_NOTIFICATIONS", "true").lower() == "true",
        )

        return cls(
            environment=env,
            data_dir=data_dir,
            llm=llm,
            validation=validation,
            refresh=refresh,
            cache=cache,
            notifications=notifications,
            debug=os.getenv("DEBUG", "false").lower() == "true",
            log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
        )

    def validate(self) -> list:
        """Validate configuration and return list of errors."""
        errors = []

        if not self.data_dir.exists():
            errors.append(f"data_dir does not exist: {self.data_dir}")

        # At least one LLM provider key is needed in production
        if self.environment == Environment.PRODUCTION and not (
            self.llm.google_api_key or self.llm.groq_api_key
        ):
            errors.append("GOOGLE_API_KEY or GROQ_API_KEY is required in production")

        if self.llm.timeout <= 0:
            errors.append("AI timeout must be positive")
        if self.refresh.poll_interval_seconds <= 0:
            errors.append("Poll interval must be positive")
        if self.validation.silent_tolerance < 0:
            errors.append("Silent tolerance must be non-negative")
        if self.validation.silent_tolerance > self.validation.reject_tolerance:
            errors.append("Silent tolerance must not exceed reject tolerance")
        if self.cache.user_ttl_seconds < 0 or self.cache.search_ttl_seconds < 0:
            errors.append("Cache TTLs must be non-negative")

        return errors

    def setup_logging(self) -> None:
        """Configure logging based on configuration."""
        level = getattr(logging, self.log_level, logging.INFO)

        # Configure format based on environment
        if self.environment == Environment.DEVELOPMENT:
            format_str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
        else:
            format_str = "%(asctime)s - %(levelname)s - %(message)s"

        logging.basicConfig(level=level, format=format_str, datefmt="%Y-%m-%d %H:%M:%S")

        # Reduce noise from external libraries in production
        if self.environment == Environment.PRODUCTION:
            logging.getLogger("urllib3").setLevel(logging.WARNING)
            logging.getLogger("requests").setLevel(logging.WARNING)

    def get_sensitive_fields(self) -> list:
        """Get list of field names that contain sensitive data."""
        return [
            "llm.google_api_key",
            "llm.groq_api_key",
        ]

    def to_dict(self, include_sensitive: bool = False) -> dict[str, Any]:
        """Convert configuration to dictionary, optionally excluding sensitive data."""
        result: dict[str, Any] = {}

        for field_name, field_value in self.__dict__.items():
            if hasattr(field_value, "__dict__") and not isinstance(field_value, Enum):
                # Nested dataclass
                nested_dict: dict[str, Any] = {}
                for nested_name, nested_value in field_value.__dict__.items():
                    full_field_name = f"{field_name}.{nested_name}"

                    if not include_sensitive and full_field_name in self.get_sensitive_fields():
                        nested_dict[nested_name] = "***REDACTED***" if nested_value else None
                    elif isinstance(nested_value, Path):
                        nested_dict[nested_name] = str(nested_value)
                    else:
                        nested_dict[nested_name] = nested_value

                result[field_name] = nested_dict
            elif isinstance(field_value, Path):
                result[field_name] = str(field_value)
            elif isinstance(field_value, Enum):
                result[field_name] = field_value.value
            else:
                result[field_name] = field_value

        return result


# Global configuration instance
_config: Config | None = None


def get_config() -> Config:
    """Get the global configuration instance."""
    global _config
    if _config is None:
        _config = Config.from_environment()

        errors = _config.validate()
        if errors:
            raise ValueError(f"Configuration validation failed: {'; '.join(errors)}")

        _config.setup_logging()

    return _config


def reload_config() -> Config:
    """Reload configuration from environment (useful for testing)."""
    global _config
    _config = None
    return get_config()
