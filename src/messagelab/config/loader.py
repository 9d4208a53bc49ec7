"""Configuration loader for messagelab."""
import json
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from messagelab.exceptions import InvalidConfigurationError

SUPPORTED_DELIMITERS = (";", ",", "\t")
DEFAULT_STORE_PATH = "~/.messagelab/store.json"


class GeneratorConfig(BaseModel):
    """Generation engine configuration."""

    default_file_count: int = Field(default=10, gt=0)
    seed: int | None = None
    max_unique_attempts: int = Field(default=10000, gt=0)
    default_csv_delimiter: str = Field(default=";")
    base_name: str = Field(default="message", min_length=1)

    @field_validator('default_csv_delimiter')
    @classmethod
    def validate_delimiter(cls, v):
        """Validate the CSV delimiter is one of the supported characters."""
        if v not in SUPPORTED_DELIMITERS:
            raise ValueError(f"Unsupported CSV delimiter: {v!r}")
        return v


class StorageConfig(BaseModel):
    """Key-value store configuration."""

    path: str = Field(default=DEFAULT_STORE_PATH)

    @property
    def resolved_path(self) -> Path:
        return Path(self.path).expanduser()


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: str = Field(default="INFO")
    json_format: bool = False
    log_file: str | None = None

    @field_validator('level')
    @classmethod
    def validate_level(cls, v):
        """Validate the level name."""
        level = v.upper()
        if level not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            raise ValueError(f"Unknown log level: {v}")
        return level


class AppConfig(BaseSettings):
    """Application configuration."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        env_prefix="MESSAGELAB_",
        env_nested_delimiter="__",
    )

    generator: GeneratorConfig = Field(default_factory=GeneratorConfig)
    storage: StorageConfig = Field(default_factory=StorageConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    @classmethod
    def from_file(cls, config_file: str) -> "AppConfig":
        """Load configuration from a JSON or YAML file.

        Args:
            config_file: Path to configuration file

        Returns:
            AppConfig instance

        Raises:
            InvalidConfigurationError: If the file cannot be read or validated
        """
        path = Path(config_file)
        try:
            with open(path, encoding="utf-8") as f:
                if path.suffix.lower() in (".yaml", ".yml"):
                    config_data = yaml.safe_load(f)
                else:
                    config_data = json.load(f)
        except (OSError, json.JSONDecodeError, yaml.YAMLError) as e:
            raise InvalidConfigurationError(str(path), [str(e)]) from e

        if config_data is None:
            config_data = {}
        if not isinstance(config_data, dict):
            raise InvalidConfigurationError(str(path), ["Top level must be a mapping"])

        try:
            return cls(**config_data)
        except ValidationError as e:
            errors = [
                f"{'.'.join(str(part) for part in error['loc'])}: {error['msg']}"
                for error in e.errors()
            ]
            raise InvalidConfigurationError(str(path), errors) from e

    def to_generation_options(self) -> dict[str, Any]:
        """Keyword arguments for the generation engine."""
        return {
            "seed": self.generator.seed,
            "max_unique_attempts": self.generator.max_unique_attempts,
        }
