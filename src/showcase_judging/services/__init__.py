from .aggregation import AggregationEngine
from .collaborators import (
    AlertSink,
    Caller,
    ContentCatalog,
    ContentInfo,
    InMemoryContentCatalog,
    LoggingAlertSink,
    NotesCounter,
    RecordingAlertSink,
)
from .criteria import CriteriaCatalog
from .export import ScoreExporter, leaderboard_markdown
from .groups import GroupAccessControl, normalize_legacy_group
from .judges import JudgeRegistry
from .notes import NotesService
from .scores import ScoreStore, validate_score
from .status import SubmissionStatusTracker
from .submissions import SubmissionRegistry

__all__ = [
    "AggregationEngine",
    "AlertSink",
    "Caller",
    "ContentCatalog",
    "ContentInfo",
    "CriteriaCatalog",
    "GroupAccessControl",
    "InMemoryContentCatalog",
    "JudgeRegistry",
    "LoggingAlertSink",
    "NotesCounter",
    "NotesService",
    "RecordingAlertSink",
    "ScoreExporter",
    "ScoreStore",
    "SubmissionRegistry",
    "SubmissionStatusTracker",
    "leaderboard_markdown",
    "normalize_legacy_group",
    "validate_score",
]
