"""Configuration management for messagelab."""
from messagelab.config.loader import AppConfig, GeneratorConfig, LoggingConfig, StorageConfig

__all__ = [
    "AppConfig",
    "GeneratorConfig",
    "LoggingConfig",
    "StorageConfig",
]
