"""Centralized configuration management using Pydantic Settings.

This module provides type-safe configuration with environment variable support,
validation, and clear defaults for the timeline service. It is the single
source of truth for the FHIR endpoint, fetch behaviour and logging.

Configuration can be overridden via environment variables (e.g., FHIR_BASE_URL)
and is validated at startup to ensure all required settings are correctly configured.

Example:
    Loading and validating settings:
    >>> from src.config.settings import settings
    >>> settings.validate_configuration()
    >>> print(settings.fhir_base_url)
    'https://server.fire.ly/'
"""

import logging
from enum import Enum
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


class FetchMode(str, Enum):
    """How the per-resource-type searches of one timeline request are issued.

    Attributes:
        SEQUENTIAL: One search at a time, in the fixed resource-type order
        CONCURRENT: All searches in flight at once, merged in the fixed order
    """

    SEQUENTIAL = "sequential"
    CONCURRENT = "concurrent"


class PartialFailurePolicy(str, Enum):
    """What happens when a single resource-type search fails upstream.

    Attributes:
        FAIL: Abort the whole timeline request (baseline behaviour)
        SKIP: Log a warning and treat that resource type as having no events
    """

    FAIL = "fail"
    SKIP = "skip"


class Settings(BaseSettings):
    """Application settings loaded from environment variables with validation.

    Settings are loaded from:
    1. Environment variables (highest priority)
    2. .env file (if present)
    3. Class defaults (lowest priority)

    All settings can be overridden via environment variables using uppercase names
    (e.g., FHIR_REQUEST_TIMEOUT=10).
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # ========================================================================
    # FHIR Server Configuration
    # ========================================================================

    fhir_base_url: str = Field(
        default="https://server.fire.ly/",
        description="Base URL of the FHIR REST endpoint. Resource paths are resolved against it",
    )

    fhir_request_timeout: float = Field(
        default=30.0,
        description="Timeout in seconds for a single FHIR round trip",
        ge=1,
        le=300,
    )

    fhir_accept_header: str = Field(
        default="application/fhir+json",
        description="Accept header sent with every FHIR request",
    )

    fhir_error_body_limit: int = Field(
        default=2000,
        description="Maximum number of response body characters kept on upstream errors",
        ge=0,
    )

    # ========================================================================
    # Timeline Aggregation
    # ========================================================================

    timeline_fetch_mode: FetchMode = Field(
        default=FetchMode.SEQUENTIAL,
        description="Issue resource-type searches one after another or concurrently",
    )

    timeline_partial_failure_policy: PartialFailurePolicy = Field(
        default=PartialFailurePolicy.FAIL,
        description=(
            "Behaviour when one resource-type search fails. 'fail' aborts the request, "
            "'skip' treats that resource type as empty"
        ),
    )

    # ========================================================================
    # Logging Configuration
    # ========================================================================

    log_level: str = Field(
        default="INFO",
        description="Root log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)",
    )

    log_format: Literal["console", "json"] = Field(
        default="console",
        description="Log output format: human readable console lines or JSON records",
    )

    @field_validator("fhir_base_url")
    @classmethod
    def validate_base_url(cls, value: str) -> str:
        """Require an http(s) URL and normalize it to end with a slash.

        Relative resource paths such as ``Patient/123`` are joined onto the
        base URL, so a missing trailing slash would drop the last path segment.

        Args:
            value: Configured base URL

        Returns:
            Normalized base URL

        Raises:
            ValueError: If the URL is not http or https
        """
        value = value.strip()
        if not value.startswith(("http://", "https://")):
            raise ValueError(f"fhir_base_url must be an http(s) URL, got {value!r}")
        return value if value.endswith("/") else value + "/"

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, value: str) -> str:
        normalized = value.strip().upper()
        if normalized not in LOG_LEVELS:
            raise ValueError(f"log_level must be one of {', '.join(LOG_LEVELS)}, got {value!r}")
        return normalized

    def validate_configuration(self) -> None:
        """Validate complete application configuration at startup.

        Raises:
            ConfigurationError: If configuration is invalid with descriptive message
                indicating what needs to be fixed
        """
        from src.patient_timeline.exceptions import ConfigurationError

        logger.info("Validating application configuration...")

        if self.skips_failures_concurrently():
            logger.warning(
                "Concurrent fetch with 'skip' failure policy: failed resource types are "
                "dropped while sibling searches keep running"
            )

        if not self.fhir_accept_header.strip():
            error_msg = "fhir_accept_header must not be empty"
            logger.error(error_msg)
            raise ConfigurationError(
                message=error_msg, details={"env_var": "FHIR_ACCEPT_HEADER"}
            )

        logger.info("Configuration validation passed")

    def skips_failures_concurrently(self) -> bool:
        return (
            self.timeline_fetch_mode is FetchMode.CONCURRENT
            and self.timeline_partial_failure_policy is PartialFailurePolicy.SKIP
        )

    def print_config(self) -> None:
        """Print current configuration in a formatted table."""
        from rich.console import Console
        from rich.table import Table

        console = Console()
        table = Table(title="Timeline Service Configuration", show_header=True)
        table.add_column("Setting", style="cyan", no_wrap=False)
        table.add_column("Value", style="magenta", no_wrap=False)

        config_items = {
            "FHIR Base URL": self.fhir_base_url,
            "Request Timeout": f"{self.fhir_request_timeout:g}s",
            "Accept Header": self.fhir_accept_header,
            "Fetch Mode": self.timeline_fetch_mode.value,
            "Partial Failure Policy": self.timeline_partial_failure_policy.value,
            "Log Level": self.log_level,
            "Log Format": self.log_format,
        }

        for key, value in config_items.items():
            table.add_row(key, str(value))

        console.print(table)


# Global settings instance - initialized once at module import
settings = Settings()
