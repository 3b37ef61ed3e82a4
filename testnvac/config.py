"""Configuration loading for the test-n-vac session harness.

This module provides centralized configuration management:
- Load settings from environment variables and .env files
- Validate configuration using pydantic
- Provide typed access to all settings
- Build the immutable TestSessionConfig consumed by the core
"""

from typing import Any, Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from testnvac.core.models import TestSessionConfig


class Settings(BaseSettings):
    """Harness configuration loaded from environment.

    Uses pydantic-settings for environment variable handling with
    .env file support via python-dotenv.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Session identity
    service_name: str = Field(
        default="",
        description="Service name used in generated resource names",
    )
    service_source: str = Field(
        default="",
        description="Event source the rule filters on and resources are tagged with",
    )
    bus_name: str = Field(
        default="default",
        description="EventBridge bus name",
    )
    detail_types: list[str] = Field(
        default_factory=list,
        description="Extra detail types the rule must accept (JSON list)",
    )

    # AWS configuration
    aws_region: str = Field(
        default="us-east-1",
        description="AWS region of the bus and the test queue",
    )
    aws_profile: str = Field(
        default="",
        description="Optional shared-config profile; empty uses the default chain",
    )
    boto_max_attempts: int = Field(
        default=3,
        description="Total attempts per AWS call including retries",
    )

    # Readiness and polling
    readiness_timeout_seconds: float = Field(
        default=60.0,
        description="Overall time allowed for the rule to start delivering",
    )
    probe_poll_wait_seconds: int = Field(
        default=2,
        description="Long-poll wait used by each readiness probe",
    )
    probe_interval_seconds: float = Field(
        default=1.0,
        description="Minimum delay between readiness probes",
    )
    purge_settle_seconds: float = Field(
        default=3.0,
        description="Pause after purging the queue",
    )
    queue_create_settle_seconds: float = Field(
        default=1.0,
        description="Pause after creating the queue",
    )
    receive_wait_time_seconds: int = Field(
        default=20,
        description="Default long-poll wait for message reads",
    )
    receive_attempts: int = Field(
        default=4,
        description="Default number of receive attempts for message reads",
    )
    receive_max_messages: int = Field(
        default=10,
        description="Maximum messages returned per receive",
    )
    target_input_path: str = Field(
        default="",
        description="Optional InputPath for the target, e.g. $.detail",
    )

    # Smoke run
    smoke_detail_type: str = Field(
        default="TestNVacSmoke",
        description="Detail type of the event fired by the smoke run",
    )
    smoke_payload: dict[str, Any] = Field(
        default_factory=lambda: {"smoke": True},
        description="Payload of the event fired by the smoke run (JSON object)",
    )

    # Logging configuration
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO",
        description="Log level",
    )
    log_format: Literal["json", "text"] = Field(
        default="text",
        description="Log format",
    )

    @field_validator("readiness_timeout_seconds")
    @classmethod
    def validate_readiness_timeout(cls, v: float) -> float:
        """Ensure readiness timeout is positive."""
        if v <= 0:
            raise ValueError("readiness_timeout_seconds must be positive")
        return v

    @field_validator("probe_poll_wait_seconds", "receive_wait_time_seconds")
    @classmethod
    def validate_wait_time(cls, v: int) -> int:
        """Ensure long-poll waits are within the SQS range."""
        if v < 0 or v > 20:
            raise ValueError("wait times must be between 0 and 20 seconds")
        return v

    @field_validator(
        "probe_interval_seconds", "purge_settle_seconds", "queue_create_settle_seconds"
    )
    @classmethod
    def validate_delay(cls, v: float) -> float:
        """Ensure delays are non-negative."""
        if v < 0:
            raise ValueError("delays must be non-negative")
        return v

    @field_validator("receive_attempts", "boto_max_attempts")
    @classmethod
    def validate_attempts(cls, v: int) -> int:
        """Ensure attempt counts are positive."""
        if v <= 0:
            raise ValueError("attempt counts must be positive")
        return v

    @field_validator("receive_max_messages")
    @classmethod
    def validate_max_messages(cls, v: int) -> int:
        """Ensure batch size is within the SQS range."""
        if v < 1 or v > 10:
            raise ValueError("receive_max_messages must be between 1 and 10")
        return v

    def session_config(self) -> TestSessionConfig:
        """Build the immutable session configuration.

        Raises:
            ValueError: If service_name or service_source is unset or invalid.
        """
        return TestSessionConfig(
            service_name=self.service_name,
            service_source=self.service_source,
            bus_name=self.bus_name,
            region=self.aws_region,
            detail_types=tuple(self.detail_types),
            readiness_timeout_seconds=self.readiness_timeout_seconds,
            probe_poll_wait_seconds=self.probe_poll_wait_seconds,
            probe_interval_seconds=self.probe_interval_seconds,
            purge_settle_seconds=self.purge_settle_seconds,
            queue_create_settle_seconds=self.queue_create_settle_seconds,
            receive_max_messages=self.receive_max_messages,
            target_input_path=self.target_input_path or None,
        )


def load_settings(env_file: str | None = None) -> Settings:
    """Load harness settings from environment.

    Args:
        env_file: Optional path to .env file. If not provided,
                 uses the default .env in the current directory.

    Returns:
        Validated Settings instance.

    Raises:
        ValidationError: If settings validation fails.
    """
    if env_file:
        return Settings(_env_file=env_file)  # type: ignore[call-arg]
    return Settings()


__all__ = ["Settings", "load_settings"]
