"""Configuration management for stream assertions.

Pydantic-based configuration with environment variable support.
"""

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class RxTestConfig(BaseSettings):
    """Main stream assertion configuration.

    Load from environment variables with RXTEST_ prefix or from .env file.
    """

    model_config = SettingsConfigDict(
        env_prefix="RXTEST_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Expectation waiting
    default_timeout_seconds: float = Field(
        default=1.0,
        description="Timeout used when waiting on expectations without an explicit timeout",
        gt=0,
    )
    poll_interval_seconds: float = Field(
        default=0.01,
        description="Sleep between fulfilment checks in async waits",
        gt=0,
    )

    # Failure rendering
    max_repr_length: int = Field(
        default=200,
        description="Maximum length of a rendered value in failure messages",
        ge=16,
    )

    # Reporting
    fail_on_failures: bool = Field(
        default=True,
        description="Fail the pytest test when stream assertion failures were recorded",
    )
    log_failures: bool = Field(
        default=True,
        description="Log every recorded failure at ERROR level",
    )


def load_config_from_env() -> RxTestConfig:
    """Load stream assertion configuration from environment variables.

    Returns:
        RxTestConfig: Configured settings

    Example:
        >>> config = load_config_from_env()
        >>> config.default_timeout_seconds
        1.0
    """
    return RxTestConfig()


@lru_cache(maxsize=1)
def get_config() -> RxTestConfig:
    """Get the process-wide configuration, loading it on first use."""
    return load_config_from_env()
