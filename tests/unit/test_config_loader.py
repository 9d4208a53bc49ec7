"""Unit tests for configuration loading."""
import json
from pathlib import Path

import pytest
import yaml
from pydantic import ValidationError

from messagelab.config import AppConfig, GeneratorConfig, LoggingConfig, StorageConfig
from messagelab.exceptions import InvalidConfigurationError


class TestGeneratorConfig:
    """Test generator settings validation."""

    def test_defaults(self):
        config = GeneratorConfig()
        assert config.default_file_count == 10
        assert config.seed is None
        assert config.max_unique_attempts == 10000
        assert config.default_csv_delimiter == ";"
        assert config.base_name == "message"

    def test_unsupported_delimiter(self):
        with pytest.raises(ValidationError):
            GeneratorConfig(default_csv_delimiter="|")

    def test_file_count_must_be_positive(self):
        with pytest.raises(ValidationError):
            GeneratorConfig(default_file_count=0)


class TestOtherSections:
    """Test storage and logging settings."""

    def test_storage_path_is_expanded(self):
        config = StorageConfig(path="~/store.json")
        assert config.resolved_path == Path.home() / "store.json"

    def test_log_level_is_upper_cased(self):
        assert LoggingConfig(level="debug").level == "DEBUG"

    def test_unknown_log_level(self):
        with pytest.raises(ValidationError):
            LoggingConfig(level="loud")


class TestAppConfig:
    """Test loading the application configuration."""

    def test_from_yaml_file(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text(yaml.safe_dump({
            "generator": {"seed": 7, "default_csv_delimiter": ","},
            "logging": {"level": "warning"},
        }))
        config = AppConfig.from_file(str(path))
        assert config.generator.seed == 7
        assert config.generator.default_csv_delimiter == ","
        assert config.logging.level == "WARNING"
        assert config.to_generation_options() == {"seed": 7, "max_unique_attempts": 10000}

    def test_from_json_file(self, tmp_path):
        path = tmp_path / "config.json"
        path.write_text(json.dumps({"storage": {"path": str(tmp_path / "s.json")}}))
        config = AppConfig.from_file(str(path))
        assert config.storage.resolved_path == tmp_path / "s.json"

    def test_empty_yaml_gives_defaults(self, tmp_path):
        path = tmp_path / "config.yml"
        path.write_text("")
        assert AppConfig.from_file(str(path)).generator.base_name == "message"

    def test_missing_file(self, tmp_path):
        with pytest.raises(InvalidConfigurationError):
            AppConfig.from_file(str(tmp_path / "missing.json"))

    def test_malformed_json(self, tmp_path):
        path = tmp_path / "config.json"
        path.write_text("{not json")
        with pytest.raises(InvalidConfigurationError):
            AppConfig.from_file(str(path))

    def test_top_level_must_be_mapping(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("- a\n- b\n")
        with pytest.raises(InvalidConfigurationError) as exc_info:
            AppConfig.from_file(str(path))
        assert exc_info.value.config_errors == ["Top level must be a mapping"]

    def test_validation_errors_are_listed(self, tmp_path):
        path = tmp_path / "config.json"
        path.write_text(json.dumps({"generator": {"default_file_count": -1}}))
        with pytest.raises(InvalidConfigurationError) as exc_info:
            AppConfig.from_file(str(path))
        assert exc_info.value.config_errors[0].startswith("generator.default_file_count")

    def test_environment_overrides(self, monkeypatch):
        monkeypatch.setenv("MESSAGELAB_GENERATOR__SEED", "123")
        assert AppConfig().generator.seed == 123
