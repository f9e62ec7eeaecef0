"""Tests for configuration loading and validation."""

import tempfile
from pathlib import Path

import pydantic
import pytest
import yaml

from showcase_judging.core.config import DATABASE_URL_ENV, JudgingConfig, load_config


class TestJudgingConfig:
    """Tests for JudgingConfig."""

    def test_defaults(self):
        """Test default settings match the judging rules."""
        config = JudgingConfig()
        assert config.database_url == "sqlite:///judging.db"
        assert config.score_min == 1
        assert config.score_max == 5
        assert config.session_max_age_seconds == 24 * 3600
        assert config.activity_throttle_seconds == 30

    def test_score_bounds_must_be_ordered(self):
        """Test score_min must be below score_max."""
        with pytest.raises(pydantic.ValidationError, match="score_min"):
            JudgingConfig(score_min=5, score_max=5)

    def test_empty_database_url_fails(self):
        """Test that a blank database URL is rejected."""
        with pytest.raises(pydantic.ValidationError, match="cannot be empty"):
            JudgingConfig(database_url="   ")

    def test_non_positive_session_age_fails(self):
        """Test session max age must be positive."""
        with pytest.raises(pydantic.ValidationError):
            JudgingConfig(session_max_age_hours=0)

    def test_env_overrides_database_url(self, monkeypatch):
        """Test the environment variable wins over the config value."""
        monkeypatch.setenv(DATABASE_URL_ENV, "sqlite:///other.db")
        config = JudgingConfig(database_url="sqlite:///judging.db")
        assert config.get_database_url() == "sqlite:///other.db"

    def test_config_url_used_without_env(self, monkeypatch):
        """Test the config value is used when the env var is unset."""
        monkeypatch.delenv(DATABASE_URL_ENV, raising=False)
        config = JudgingConfig(database_url="sqlite:///judging.db")
        assert config.get_database_url() == "sqlite:///judging.db"

    def test_public_dump_hides_database_url(self):
        """Test the public dump omits the database URL."""
        dumped = JudgingConfig().model_dump_public()
        assert "database_url" not in dumped
        assert dumped["score_max"] == 5


class TestLoadConfig:
    """Tests for config file loading."""

    def test_load_valid_yaml(self):
        """Test loading a valid YAML config."""
        config_data = {
            "database_url": "sqlite:///contest.db",
            "activity_throttle_seconds": 10,
            "slug_max_length": 40,
        }

        with tempfile.NamedTemporaryFile(suffix=".yaml", delete=False, mode="w") as f:
            yaml.dump(config_data, f)
            f.flush()

            config = load_config(f.name)
            assert config.database_url == "sqlite:///contest.db"
            assert config.activity_throttle_seconds == 10
            assert config.slug_max_length == 40

        Path(f.name).unlink()

    def test_load_empty_yaml_uses_defaults(self):
        """Test an empty file yields default settings."""
        with tempfile.NamedTemporaryFile(suffix=".yaml", delete=False, mode="w") as f:
            f.write("")
            f.flush()

            config = load_config(f.name)
            assert config.score_max == 5

        Path(f.name).unlink()

    def test_load_missing_file_fails(self):
        """Test loading missing file raises error."""
        with pytest.raises(FileNotFoundError):
            load_config("/nonexistent/config.yaml")
