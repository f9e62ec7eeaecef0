"""Core configuration and utilities for showcase judging."""

from showcase_judging.core.clock import Clock, as_utc_naive, timestamp_suffix, utcnow
from showcase_judging.core.config import (
    DATABASE_URL_ENV,
    DEFAULT_SLUG_MAX_LENGTH,
    JudgingConfig,
    load_config,
)
from showcase_judging.core.errors import (
    ConfigurationError,
    ContentNotFound,
    CriterionGroupMismatch,
    CriterionNotFound,
    DuplicateReferenceConflict,
    GroupEnded,
    GroupInactive,
    GroupNotFound,
    GroupNotStarted,
    InvalidJudgeName,
    InvalidNote,
    InvalidScoreRange,
    JudgeNameTaken,
    JudgeNotFound,
    JudgingError,
    NotAuthenticated,
    NotAuthorized,
    ScoreNotFound,
    SessionNotFound,
    SubmissionNotFound,
    SubmissionNotInGroup,
)
from showcase_judging.core.slug import SlugGenerator

__all__ = [
    "DATABASE_URL_ENV",
    "DEFAULT_SLUG_MAX_LENGTH",
    "Clock",
    "JudgingConfig",
    "SlugGenerator",
    "as_utc_naive",
    "load_config",
    "timestamp_suffix",
    "utcnow",
    "ConfigurationError",
    "ContentNotFound",
    "CriterionGroupMismatch",
    "CriterionNotFound",
    "DuplicateReferenceConflict",
    "GroupEnded",
    "GroupInactive",
    "GroupNotFound",
    "GroupNotStarted",
    "InvalidJudgeName",
    "InvalidNote",
    "InvalidScoreRange",
    "JudgeNameTaken",
    "JudgeNotFound",
    "JudgingError",
    "NotAuthenticated",
    "NotAuthorized",
    "ScoreNotFound",
    "SessionNotFound",
    "SubmissionNotFound",
    "SubmissionNotInGroup",
]
