"""Tests for the command line interface."""

import pytest
import yaml
from typer.testing import CliRunner

from showcase_judging import __version__
from showcase_judging.cli import app, load_catalog
from showcase_judging.core.config import DATABASE_URL_ENV
from showcase_judging.core.errors import ConfigurationError

runner = CliRunner()


@pytest.fixture
def config_file(tmp_path, monkeypatch):
    monkeypatch.delenv(DATABASE_URL_ENV, raising=False)
    path = tmp_path / "config.yaml"
    path.write_text(
        yaml.safe_dump(
            {
                "database_url": f"sqlite:///{tmp_path / 'judging.db'}",
                "export_dir": str(tmp_path / "exports"),
            }
        )
    )
    return path


@pytest.fixture
def catalog_file(tmp_path):
    path = tmp_path / "stories.yaml"
    path.write_text(
        yaml.safe_dump(
            {
                "stories": [
                    {"id": "story-1", "title": "Alpha App", "slug": "alpha-app"},
                    {"id": "story-2", "title": "Beta App", "slug": "beta-app"},
                ]
            }
        )
    )
    return path


class TestLoadCatalog:
    """Tests for catalog file loading."""

    def test_mapping_with_stories_key(self, catalog_file):
        """Test the ``stories`` key is read."""
        assert load_catalog(catalog_file)._items.keys() == {"story-1", "story-2"}

    def test_plain_list(self, tmp_path):
        """Test a top-level list is accepted."""
        path = tmp_path / "list.yaml"
        path.write_text(yaml.safe_dump([{"id": "s", "title": "S", "slug": "s"}]))
        assert "s" in load_catalog(path)._items

    def test_bad_shape(self, tmp_path):
        """Test scalars are rejected with a suggestion."""
        path = tmp_path / "bad.yaml"
        path.write_text("just a string\n")
        with pytest.raises(ConfigurationError, match="stories"):
            load_catalog(path)

    def test_missing_file(self, tmp_path):
        """Test a missing catalog raises FileNotFoundError."""
        with pytest.raises(FileNotFoundError):
            load_catalog(tmp_path / "nope.yaml")


class TestCommands:
    """Tests for CLI commands."""

    def test_version(self):
        """Test --version prints the package version."""
        result = runner.invoke(app, ["--version"])
        assert result.exit_code == 0
        assert __version__ in result.output

    def test_info(self):
        """Test info lists example commands."""
        result = runner.invoke(app, ["info"])
        assert result.exit_code == 0
        assert "create-group" in result.output

    def test_validate(self, config_file):
        """Test a valid config is reported without the database URL."""
        result = runner.invoke(app, ["validate", str(config_file)])
        assert result.exit_code == 0, result.output
        assert "Configuration is valid" in result.output
        assert "database_url" not in result.output

    def test_validate_invalid(self, tmp_path):
        """Test invalid score bounds fail validation."""
        path = tmp_path / "bad.yaml"
        path.write_text(yaml.safe_dump({"score_min": 5, "score_max": 5}))
        result = runner.invoke(app, ["validate", str(path)])
        assert result.exit_code == 1

    def test_validate_missing(self, tmp_path):
        """Test a missing config file exits with an error."""
        result = runner.invoke(app, ["validate", str(tmp_path / "nope.yaml")])
        assert result.exit_code == 1
        assert "not found" in result.output

    def test_unknown_group(self, config_file):
        """Test commands against a missing group exit with an error."""
        result = runner.invoke(app, ["results", "nope", "--config", str(config_file)])
        assert result.exit_code == 1
        assert "Judging group not found" in result.output

    def test_group_workflow(self, config_file, catalog_file, tmp_path):
        """Test creating a group, adding criteria and submissions, then results and export."""
        steps = [
            ["create-group", "Demo", "--config", str(config_file)],
            ["add-criterion", "demo", "Polish", "--config", str(config_file)],
            [
                "add-submission",
                "demo",
                "story-1",
                "ghost",
                "--catalog",
                str(catalog_file),
                "--config",
                str(config_file),
            ],
            ["register-judge", "demo", "Ada", "--config", str(config_file)],
        ]
        outputs = []
        for args in steps:
            result = runner.invoke(app, args)
            assert result.exit_code == 0, result.output
            outputs.append(result.output)

        assert "Created group" in outputs[0]
        assert "Group now has 1 criteria" in outputs[1]
        assert "Story ghost not found" in outputs[2]
        assert "session:" in outputs[3]

        markdown = tmp_path / "leaderboard.md"
        result = runner.invoke(
            app,
            [
                "results",
                "demo",
                "--markdown",
                str(markdown),
                "--catalog",
                str(catalog_file),
                "--config",
                str(config_file),
            ],
        )
        assert result.exit_code == 0, result.output
        assert "Alpha App" in markdown.read_text(encoding="utf-8")

        result = runner.invoke(
            app,
            ["export", "demo", "--catalog", str(catalog_file), "--config", str(config_file)],
        )
        assert result.exit_code == 0, result.output
        assert (tmp_path / "exports" / "demo-scores.csv").exists()
