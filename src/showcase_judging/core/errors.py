"""Exceptions raised by the judging services."""

from __future__ import annotations


class ConfigurationError(Exception):
    """Base exception for configuration errors with optional suggestions."""

    def __init__(self, message: str, suggestion: str | None = None) -> None:
        self.message = message
        self.suggestion = suggestion
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        msg = f"[Configuration Error] {self.message}"
        if self.suggestion:
            msg += f"\n[Suggestion] {self.suggestion}"
        return msg


class JudgingError(Exception):
    """Base exception for rejected judging operations."""

    def __init__(self, message: str, suggestion: str | None = None) -> None:
        self.message = message
        self.suggestion = suggestion
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        if self.suggestion:
            return f"{self.message} ({self.suggestion})"
        return self.message


class NotAuthenticated(JudgingError):
    """Error when an operation needs a signed-in caller."""

    def __init__(self) -> None:
        super().__init__("Authentication required")


class NotAuthorized(JudgingError):
    """Error when a non-admin attempts an admin action."""

    def __init__(self, action: str | None = None) -> None:
        message = "Admin access required"
        if action:
            message = f"Admin access required to {action}"
        super().__init__(message)


class GroupNotFound(JudgingError):
    """Error when a judging group does not exist or is not visible."""

    def __init__(self, group_ref: str | None = None) -> None:
        message = "Judging group not found"
        if group_ref:
            message = f"Judging group not found: {group_ref}"
        super().__init__(message)


class GroupInactive(JudgingError):
    """Error when judging for a group is switched off."""

    def __init__(self) -> None:
        super().__init__("Judging for this group is not currently active")


class GroupNotStarted(JudgingError):
    """Error when the judging window has not opened yet."""

    def __init__(self) -> None:
        super().__init__("Judging has not started yet")


class GroupEnded(JudgingError):
    """Error when the judging window has closed."""

    def __init__(self) -> None:
        super().__init__("Judging period has ended")


class InvalidScoreRange(JudgingError):
    """Error when a score is not an integer inside the allowed range."""

    def __init__(self, value: object, low: int = 1, high: int = 5) -> None:
        self.value = value
        super().__init__(f"Score must be an integer between {low} and {high}, got {value!r}")


class CriterionGroupMismatch(JudgingError):
    """Error when a criterion is used outside its own group."""

    def __init__(self, criteria_id: str) -> None:
        self.criteria_id = criteria_id
        super().__init__(f"Invalid criteria for this judging group: {criteria_id}")


class SubmissionNotInGroup(JudgingError):
    """Error when a story is not linked into the judge's group."""

    def __init__(self, story_id: str) -> None:
        self.story_id = story_id
        super().__init__(f"Story {story_id} is not part of this judging group")


class SessionNotFound(JudgingError):
    """Error when a judge session id does not resolve to a judge."""

    def __init__(self) -> None:
        super().__init__("Invalid judge session", "Register again to get a new session.")


class DuplicateReferenceConflict(JudgingError):
    """Error when a criterion still referenced by scores would be removed."""

    def __init__(self, question: str) -> None:
        self.question = question
        super().__init__(
            f'Cannot delete criterion "{question}" because it has existing scores',
            "Remove all scores for this criterion first.",
        )


class InvalidJudgeName(JudgingError):
    """Error when a judge name is too short after trimming."""

    def __init__(self, min_length: int = 2) -> None:
        super().__init__(f"Name must be at least {min_length} characters long")


class JudgeNameTaken(JudgingError):
    """Error when a judge name belongs to another signed-in account."""

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(
            f'The judge name "{name}" is already taken in this group',
            "Sign in with the account that registered it or pick another name.",
        )


class JudgeNotFound(JudgingError):
    """Error when a judge id does not exist."""

    def __init__(self, judge_id: str) -> None:
        super().__init__(f"Judge not found: {judge_id}")


class ScoreNotFound(JudgingError):
    """Error when a score id does not exist."""

    def __init__(self, score_id: str) -> None:
        super().__init__(f"Score not found: {score_id}")


class CriterionNotFound(JudgingError):
    """Error when a criterion id does not exist."""

    def __init__(self, criteria_id: str) -> None:
        super().__init__(f"Criterion not found: {criteria_id}")


class SubmissionNotFound(JudgingError):
    """Error when a submission link does not exist."""

    def __init__(self, story_id: str) -> None:
        super().__init__(f"Submission not found in judging group: {story_id}")


class ContentNotFound(JudgingError):
    """Error when the content catalog has no entry for a story."""

    def __init__(self, story_id: str) -> None:
        super().__init__(f"Story not found: {story_id}")


class InvalidNote(JudgingError):
    """Error when a submission note cannot be stored."""
