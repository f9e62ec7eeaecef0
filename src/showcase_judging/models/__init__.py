from .access import (
    AccessPolicy,
    AdminOnlyAccess,
    OpenAccess,
    PasswordAccess,
    build_policy,
    describe_policy,
    parse_policy,
    policy_allows,
)
from .criterion import Criterion
from .group import JudgingGroup
from .judge import Judge
from .note import SubmissionNote
from .score import Score
from .submission import GroupSubmission, SubmissionState, SubmissionStatus

__all__ = [
    "AccessPolicy",
    "AdminOnlyAccess",
    "Criterion",
    "GroupSubmission",
    "Judge",
    "JudgingGroup",
    "OpenAccess",
    "PasswordAccess",
    "Score",
    "SubmissionNote",
    "SubmissionState",
    "SubmissionStatus",
    "build_policy",
    "describe_policy",
    "parse_policy",
    "policy_allows",
]
