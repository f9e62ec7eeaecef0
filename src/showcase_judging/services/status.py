"""Per-submission judging status and its reconciliation against scores."""

from __future__ import annotations

from typing import TYPE_CHECKING

import structlog
from sqlmodel import Session, col, select

from showcase_judging.core.clock import Clock
from showcase_judging.core.errors import SubmissionNotInGroup
from showcase_judging.models import (
    GroupSubmission,
    Judge,
    JudgingGroup,
    Score,
    SubmissionState,
    SubmissionStatus,
)
from showcase_judging.models.views import JudgeStatusView, StatusView, StoryGroupStatus
from showcase_judging.services.collaborators import AlertSink, ContentCatalog
from showcase_judging.services.lookups import (
    get_status_row,
    get_submission_link,
    group_criteria,
    require_judge,
)
from showcase_judging.services.storage import AsyncRepository

if TYPE_CHECKING:
    from sqlalchemy import Engine

logger = structlog.get_logger()


def _visible_criteria_scored(
    session: Session, judge_id: str, group_id: str, story_id: str
) -> set[str]:
    scores = session.exec(
        select(Score).where(
            Score.judge_id == judge_id,
            Score.group_id == group_id,
            Score.story_id == story_id,
            col(Score.is_hidden) == False,  # noqa: E712
        )
    ).all()
    return {score.criteria_id for score in scores}


def _judge_names(session: Session, judge_ids: set[str]) -> dict[str, str]:
    if not judge_ids:
        return {}
    judges = session.exec(select(Judge).where(col(Judge.id).in_(judge_ids))).all()
    return {judge.id: judge.name for judge in judges}


class SubmissionStatusTracker(AsyncRepository):
    """Tracks pending / skip / completed per submission.

    ``completed`` is only trusted while the assigned judge still has a
    visible score for every criterion; ``reconcile`` and ``release_judge``
    run inside the caller's transaction after every score removal.
    """

    def __init__(
        self,
        engine: Engine,
        catalog: ContentCatalog,
        alerts: AlertSink,
        clock: Clock | None = None,
    ) -> None:
        super().__init__(engine, clock)
        self._catalog = catalog
        self._alerts = alerts

    async def update_status(self, session_id: str, story_id: str, status: str) -> bool:
        """Set a submission's status on behalf of the session's judge.

        ``completed`` is refused (returns False, nothing changes) unless the
        judge has a visible score for every criterion in the group.
        """
        state = SubmissionState(status)
        now = self._now()

        def _update(session: Session) -> tuple[bool, str]:
            judge = require_judge(session, session_id)
            if get_submission_link(session, judge.group_id, story_id) is None:
                raise SubmissionNotInGroup(story_id)

            if state is SubmissionState.COMPLETED:
                criteria_ids = {c.id for c in group_criteria(session, judge.group_id)}
                scored = _visible_criteria_scored(session, judge.id, judge.group_id, story_id)
                if not criteria_ids or not criteria_ids <= scored:
                    logger.info(
                        "status_completion_refused",
                        judge_id=judge.id,
                        story_id=story_id,
                        scored=len(scored & criteria_ids),
                        required=len(criteria_ids),
                    )
                    return False, judge.group_id

            row = get_status_row(session, judge.group_id, story_id)
            if row is None:
                row = SubmissionStatus(group_id=judge.group_id, story_id=story_id)
            row.status = state.value
            row.assigned_judge_id = judge.id if state is SubmissionState.COMPLETED else None
            row.last_updated_by = judge.id
            row.last_updated_at = now
            session.add(row)
            return True, judge.group_id

        changed, group_id = await self._run_session(_update)
        if not changed:
            return False

        logger.info("status_updated", group_id=group_id, story_id=story_id, status=state.value)
        if state is SubmissionState.COMPLETED:
            contents = await self._catalog.get_many([story_id])
            content = contents.get(story_id)
            if content is not None and content.owner_id:
                await self._alerts.notify(
                    "judged", recipient_user_id=content.owner_id, story_id=story_id
                )
        return True

    # ==================== In-transaction bookkeeping ====================

    def reconcile(self, session: Session, group_id: str, story_id: str) -> bool:
        """Revert a stale ``completed`` status to ``pending``.

        Returns True when the status was reset.
        """
        row = get_status_row(session, group_id, story_id)
        if row is None or row.status != SubmissionState.COMPLETED.value:
            return False

        judge = session.get(Judge, row.assigned_judge_id) if row.assigned_judge_id else None
        if judge is not None:
            criteria_ids = {c.id for c in group_criteria(session, group_id)}
            scored = _visible_criteria_scored(session, judge.id, group_id, story_id)
            if criteria_ids and criteria_ids <= scored:
                return False

        row.status = SubmissionState.PENDING.value
        row.assigned_judge_id = None
        row.last_updated_at = self._now()
        session.add(row)
        session.flush()
        logger.info(
            "status_reset",
            group_id=group_id,
            story_id=story_id,
            reason="incomplete_scores" if judge is not None else "judge_missing",
        )
        return True

    def release_judge(self, session: Session, judge_id: str) -> list[str]:
        """Reset every status assigned to ``judge_id``; returns the story ids."""
        rows = session.exec(
            select(SubmissionStatus).where(SubmissionStatus.assigned_judge_id == judge_id)
        ).all()
        now = self._now()
        for row in rows:
            row.status = SubmissionState.PENDING.value
            row.assigned_judge_id = None
            row.last_updated_at = now
            session.add(row)
        session.flush()
        if rows:
            logger.info("status_released", judge_id=judge_id, count=len(rows))
        return [row.story_id for row in rows]

    # ==================== Reads ====================

    async def get_statuses(self, group_id: str) -> list[StatusView]:
        """Statuses in a group joined with titles and judge names."""

        def _get(session: Session) -> tuple[list[SubmissionStatus], dict[str, str]]:
            rows = list(
                session.exec(
                    select(SubmissionStatus).where(SubmissionStatus.group_id == group_id)
                ).all()
            )
            ids = {r.assigned_judge_id for r in rows if r.assigned_judge_id}
            ids |= {r.last_updated_by for r in rows if r.last_updated_by}
            return rows, _judge_names(session, ids)

        rows, names = await self._run_session(_get)
        contents = await self._catalog.get_many(r.story_id for r in rows)

        views = []
        for row in rows:
            content = contents.get(row.story_id)
            if content is None:
                continue
            views.append(
                StatusView(
                    story_id=row.story_id,
                    story_title=content.title,
                    story_slug=content.slug,
                    status=row.status,
                    assigned_judge_name=names.get(row.assigned_judge_id or ""),
                    last_updated_by_name=names.get(row.last_updated_by or ""),
                    last_updated_at=row.last_updated_at,
                )
            )
        return views

    async def get_status_for_judge(
        self, group_id: str, story_id: str, judge_id: str
    ) -> JudgeStatusView | None:
        """Status as seen by one judge; None when the judge is not in the group."""

        def _get(session: Session) -> JudgeStatusView | None:
            judge = session.get(Judge, judge_id)
            if judge is None or judge.group_id != group_id:
                return None
            row = get_status_row(session, group_id, story_id)
            if row is None:
                return None
            assigned = None
            if row.assigned_judge_id:
                assigned = _judge_names(session, {row.assigned_judge_id}).get(
                    row.assigned_judge_id
                )
            return JudgeStatusView(
                status=row.status,
                can_judge=row.status in (SubmissionState.PENDING, SubmissionState.SKIP),
                assigned_judge_name=assigned,
            )

        return await self._run_session(_get)

    async def get_story_statuses(self, story_id: str) -> list[StoryGroupStatus]:
        """Status of one story in every group it was submitted to."""

        def _get(session: Session) -> list[StoryGroupStatus]:
            links = session.exec(
                select(GroupSubmission).where(GroupSubmission.story_id == story_id)
            ).all()
            group_ids = {link.group_id for link in links}
            if not group_ids:
                return []
            groups = {
                g.id: g
                for g in session.exec(
                    select(JudgingGroup).where(col(JudgingGroup.id).in_(group_ids))
                ).all()
            }
            rows = session.exec(
                select(SubmissionStatus).where(
                    SubmissionStatus.story_id == story_id,
                    col(SubmissionStatus.group_id).in_(group_ids),
                )
            ).all()
            ids = {r.assigned_judge_id for r in rows if r.assigned_judge_id}
            ids |= {r.last_updated_by for r in rows if r.last_updated_by}
            names = _judge_names(session, ids)

            result = []
            for row in rows:
                group = groups.get(row.group_id)
                if group is None:
                    continue
                result.append(
                    StoryGroupStatus(
                        group_id=group.id,
                        group_name=group.name,
                        status=row.status,
                        assigned_judge_name=names.get(row.assigned_judge_id or ""),
                        last_updated_by_name=names.get(row.last_updated_by or ""),
                        last_updated_at=row.last_updated_at,
                    )
                )
            return result

        return await self._run_session(_get)
