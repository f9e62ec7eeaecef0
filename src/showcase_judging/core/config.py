"""Configuration schema and loading for the judging services."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field, field_validator, model_validator

DEFAULT_SLUG_MAX_LENGTH = 50
DATABASE_URL_ENV = "JUDGING_DATABASE_URL"


class JudgingConfig(BaseModel):
    """Runtime settings for a judging deployment.

    Attributes:
        database_url: SQLAlchemy URL of the backing store. SQLite by default;
            ``duckdb:///path`` works when the ``duckdb`` extra is installed.
        session_max_age_hours: Inactivity after which ``is_session_valid``
            reports a judge session as stale.
        activity_throttle_seconds: Minimum gap between persisted
            last-activity timestamps for one judge.
        score_min: Lowest accepted score.
        score_max: Highest accepted score, also used for max-possible totals.
        slug_max_length: Cap on generated group slugs.
        default_submission_limit: Page size for admin submission listings.
        export_dir: Directory the CLI writes CSV exports into.
    """

    database_url: str = "sqlite:///judging.db"
    session_max_age_hours: float = Field(default=24.0, gt=0)
    activity_throttle_seconds: float = Field(default=30.0, ge=0)
    score_min: int = 1
    score_max: int = 5
    slug_max_length: int = Field(default=DEFAULT_SLUG_MAX_LENGTH, ge=8, le=100)
    default_submission_limit: int = Field(default=50, ge=1)
    export_dir: str = "./exports"

    @field_validator("database_url")
    @classmethod
    def validate_database_url(cls, v: str) -> str:
        if not v or not v.strip():
            msg = "database_url cannot be empty"
            raise ValueError(msg)
        return v.strip()

    @model_validator(mode="after")
    def validate_score_bounds(self) -> JudgingConfig:
        if self.score_min >= self.score_max:
            msg = "score_min must be lower than score_max"
            raise ValueError(msg)
        return self

    @property
    def session_max_age_seconds(self) -> float:
        return self.session_max_age_hours * 3600

    def get_database_url(self) -> str:
        """Get database URL from environment or config."""
        return os.environ.get(DATABASE_URL_ENV) or self.database_url

    def model_dump_public(self) -> dict[str, Any]:
        """Dump settings without the database URL, which may hold credentials."""
        return self.model_dump(exclude={"database_url"})


def load_config(path: str | Path) -> JudgingConfig:
    """Load and validate configuration from YAML file.

    Args:
        path: Path to YAML configuration file.

    Returns:
        Validated JudgingConfig instance.

    Raises:
        FileNotFoundError: If config file doesn't exist.
        ValidationError: If config is invalid.
    """
    config_path = Path(path)
    if not config_path.exists():
        msg = f"Configuration file not found: {config_path}"
        raise FileNotFoundError(msg)

    with config_path.open() as f:
        data = yaml.safe_load(f) or {}

    return JudgingConfig.model_validate(data)
