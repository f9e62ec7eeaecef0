"""Session-level queries shared by the judging services.

Each helper takes an open Session and is meant to be called from inside a
``_run_session`` callback, so it shares that call's transaction.
"""

from __future__ import annotations

from datetime import datetime

from sqlmodel import Session, col, select

from showcase_judging.core.errors import (
    GroupEnded,
    GroupInactive,
    GroupNotFound,
    GroupNotStarted,
    SessionNotFound,
)
from showcase_judging.models import (
    Criterion,
    GroupSubmission,
    Judge,
    JudgingGroup,
    Score,
    SubmissionStatus,
)


def get_group(session: Session, group_id: str) -> JudgingGroup:
    group = session.get(JudgingGroup, group_id)
    if group is None:
        raise GroupNotFound(group_id)
    return group


def group_by_slug(session: Session, slug: str) -> JudgingGroup | None:
    return session.exec(select(JudgingGroup).where(JudgingGroup.slug == slug)).first()


def ensure_judging_open(group: JudgingGroup, now: datetime) -> None:
    """Raise if judging for ``group`` is closed at ``now``."""
    state = group.window_state(now)
    if state == "inactive":
        raise GroupInactive()
    if state == "not_started":
        raise GroupNotStarted()
    if state == "ended":
        raise GroupEnded()


def judge_by_session(session: Session, session_id: str) -> Judge | None:
    if not session_id:
        return None
    return session.exec(select(Judge).where(Judge.session_id == session_id)).first()


def require_judge(session: Session, session_id: str) -> Judge:
    judge = judge_by_session(session, session_id)
    if judge is None:
        raise SessionNotFound()
    return judge


def group_criteria(session: Session, group_id: str) -> list[Criterion]:
    statement = (
        select(Criterion)
        .where(Criterion.group_id == group_id)
        .order_by(col(Criterion.order), col(Criterion.id))
    )
    return list(session.exec(statement).all())


def group_judges(session: Session, group_id: str) -> list[Judge]:
    statement = (
        select(Judge).where(Judge.group_id == group_id).order_by(col(Judge.created_at))
    )
    return list(session.exec(statement).all())


def group_submissions(session: Session, group_id: str) -> list[GroupSubmission]:
    statement = (
        select(GroupSubmission)
        .where(GroupSubmission.group_id == group_id)
        .order_by(col(GroupSubmission.added_at), col(GroupSubmission.id))
    )
    return list(session.exec(statement).all())


def group_scores(
    session: Session, group_id: str, *, include_hidden: bool = False
) -> list[Score]:
    statement = select(Score).where(Score.group_id == group_id)
    if not include_hidden:
        statement = statement.where(col(Score.is_hidden) == False)  # noqa: E712
    statement = statement.order_by(col(Score.created_at), col(Score.id))
    return list(session.exec(statement).all())


def get_submission_link(session: Session, group_id: str, story_id: str) -> GroupSubmission | None:
    statement = select(GroupSubmission).where(
        GroupSubmission.group_id == group_id,
        GroupSubmission.story_id == story_id,
    )
    return session.exec(statement).first()


def get_status_row(session: Session, group_id: str, story_id: str) -> SubmissionStatus | None:
    statement = select(SubmissionStatus).where(
        SubmissionStatus.group_id == group_id,
        SubmissionStatus.story_id == story_id,
    )
    return session.exec(statement).first()


def completion_percentage(actual: int, expected: int) -> float:
    """``actual / expected`` as a percentage clamped to [0, 100]; 0 when nothing is expected."""
    if expected <= 0:
        return 0.0
    return max(0.0, min(100.0, actual / expected * 100))


def average(values: list[int]) -> float | None:
    if not values:
        return None
    return sum(values) / len(values)
