"""Configuration management for Stateflow CLI.

Provides environment-based configuration using Pydantic Settings.
All settings can be overridden via environment variables with STATEFLOW_ prefix.

Example:
    export STATEFLOW_LOG_LEVEL=DEBUG
    export STATEFLOW_LOG_FORMAT=json
    export STATEFLOW_DEFAULT_MAX_ATTEMPTS=5
    export STATEFLOW_MAX_STEPS=500
"""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class StateflowConfig(BaseSettings):
    """Configuration settings for Stateflow CLI.

    Loads settings from environment variables (STATEFLOW_ prefix) and .env file.
    Settings cascade: .env file < environment variables < explicit overrides.

    Configuration Groups:
        Retry: Defaults applied when a Retry block omits a field
        State machine: Transition ceiling guarding against Next cycles
        Loader: Definition file size ceiling
        Logging: Level and renderer selection

    The same instance is threaded through every state executor and every
    nested branch runner of one workflow execution.
    """

    model_config = SettingsConfigDict(
        env_prefix="STATEFLOW_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # Retry defaults
    default_interval_seconds: float = Field(
        default=1.0,
        ge=0,
        description="IntervalSeconds used when a Retry block omits it",
    )
    default_backoff_rate: float = Field(
        default=2.0,
        ge=0,
        description="BackoffRate used when a Retry block omits it",
    )
    default_max_attempts: int = Field(
        default=3,
        ge=0,
        description="MaxAttempts used when a Retry block omits it",
    )

    # State machine
    max_steps: int = Field(
        default=1000,
        gt=0,
        description="Maximum state transitions per (sub-)workflow before it fails",
    )

    # Loader
    max_definition_bytes: int = Field(
        default=10 * 1024 * 1024,
        gt=0,
        description="Maximum workflow definition file size",
    )

    # Logging
    log_level: str = Field(default="INFO", description="Logging level")
    log_format: str = Field(default="console", description="Log format (json or console)")
