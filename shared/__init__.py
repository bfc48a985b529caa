"""Shared utilities and components for the simulator services."""

from .config import BaseKafkaConfig, BaseLoggingConfig, BaseServiceConfig
from .constants import Environment, Topics

__all__ = [
    "Environment",
    "Topics",
    "BaseServiceConfig",
    "BaseLoggingConfig",
    "BaseKafkaConfig",
]
