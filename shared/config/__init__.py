"""Shared configuration base classes.

Common settings mixins reused by the simulator services so that logging and
broker connection keys are named the same everywhere.
"""

from pydantic_settings import BaseSettings


class BaseLoggingConfig(BaseSettings):
    """Common logging configuration."""

    app_log_level: str = "INFO"
    app_log_redaction_patterns: list[str] = [
        "password",
        "token",
        "secret",
        "authorization",
        "sasl",
    ]
    app_environment: str = "production"


class BaseKafkaConfig(BaseSettings):
    """Common broker connection configuration."""

    kafka_bootstrap_servers: str = "localhost:9092"
    schema_registry_url: str = "http://localhost:8081"


class BaseServiceConfig(BaseLoggingConfig, BaseKafkaConfig):
    """Base configuration combining logging and broker settings.

    Services inherit from this and add their own keys. ``otel_service_name``
    is used as the ``service`` field of every structured log line.
    """

    otel_service_name: str = "unknown"


__all__ = ["BaseLoggingConfig", "BaseKafkaConfig", "BaseServiceConfig"]
