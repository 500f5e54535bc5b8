"""Application configuration using pydantic-settings."""

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class BackendConfig(BaseSettings):
    """Transform backend connection configuration."""

    model_config = SettingsConfigDict(env_prefix="BACKEND_")

    url: str = Field(default="http://localhost:9200")
    timeout: float = Field(default=30.0)  # seconds (per request)
    # stop waits for completion on the backend side
    stop_timeout: float = Field(default=120.0)  # seconds
    defer_validation: bool = Field(default=False)


class RetryConfig(BaseSettings):
    """Transient error retry configuration.

    Delay before retry N (0-based) is min(base_delay * 2**N, max_delay),
    jittered to 50%~150% when jitter is enabled.
    """

    model_config = SettingsConfigDict(env_prefix="RETRY_")

    max_retries: int = Field(default=3, ge=0)
    base_delay: float = Field(default=2.0, ge=0)  # seconds
    max_delay: float = Field(default=64.0, ge=0)  # seconds
    jitter: bool = Field(default=True)


class GeneratorConfig(BaseSettings):
    """Job spec generator defaults."""

    model_config = SettingsConfigDict(env_prefix="GENERATOR_")

    job_id_prefix: str = Field(default="joblife")
    default_frequency: str = Field(default="1m")
    default_sync_delay: str = Field(default="60s")


class MetricsConfig(BaseSettings):
    """Prometheus metrics configuration."""

    model_config = SettingsConfigDict(env_prefix="METRICS_")

    enabled: bool = Field(default=True)


class LoggingConfig(BaseSettings):
    """Logging configuration.

    Standard fields added to all logs:
    - schema_version: Log schema version for backwards compatibility
    - service: Service name (joblife)

    Rate limiting:
    - Prevents log storms from repeated retry warnings
    - ERROR logs bypass rate limiting (always logged)
    """

    model_config = SettingsConfigDict(env_prefix="LOGGING_")

    level: str = Field(default="INFO")
    schema_version: str = Field(default="1.0")
    rate_limit_per_minute: int = Field(default=100)
    service_name: str = Field(default="joblife")


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="JOBLIFE_",
        env_nested_delimiter="__",
    )

    backend: BackendConfig = Field(default_factory=BackendConfig)
    retry: RetryConfig = Field(default_factory=RetryConfig)
    generator: GeneratorConfig = Field(default_factory=GeneratorConfig)
    metrics: MetricsConfig = Field(default_factory=MetricsConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)


@lru_cache
def get_settings() -> Settings:
    return Settings()
