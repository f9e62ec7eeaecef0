"""Score writes: the judge scoring path and the admin override path."""

from __future__ import annotations

from typing import TYPE_CHECKING

import structlog
from sqlmodel import Session, col, select

from showcase_judging.core.clock import Clock
from showcase_judging.core.config import JudgingConfig
from showcase_judging.core.errors import (
    CriterionGroupMismatch,
    InvalidScoreRange,
    JudgeNotFound,
    ScoreNotFound,
    SubmissionNotInGroup,
)
from showcase_judging.models import Criterion, Judge, Score, SubmissionNote
from showcase_judging.models.views import DetailedScore, JudgeScoreView, ScoreRecord
from showcase_judging.services.collaborators import Caller, ContentCatalog, require_admin
from showcase_judging.services.lookups import (
    ensure_judging_open,
    get_group,
    get_submission_link,
    require_judge,
)
from showcase_judging.services.status import SubmissionStatusTracker
from showcase_judging.services.storage import AsyncRepository

if TYPE_CHECKING:
    from sqlalchemy import Engine

logger = structlog.get_logger()


def validate_score(value: object, low: int = 1, high: int = 5) -> int:
    """Return ``value`` if it is an int in [low, high], else raise InvalidScoreRange.

    Booleans and floats are rejected even when integral.
    """
    if isinstance(value, bool) or not isinstance(value, int):
        raise InvalidScoreRange(value, low, high)
    if value < low or value > high:
        raise InvalidScoreRange(value, low, high)
    return value


def clean_comment(comments: str | None) -> str | None:
    if comments is None:
        return None
    return comments.strip() or None


def _record(score: Score) -> ScoreRecord:
    return ScoreRecord(
        id=score.id,
        judge_id=score.judge_id,
        group_id=score.group_id,
        story_id=score.story_id,
        criteria_id=score.criteria_id,
        score=score.score,
        comments=score.comments,
        is_hidden=score.is_hidden,
        created_at=score.created_at,
        updated_at=score.updated_at,
    )


class ScoreStore(AsyncRepository):
    """The only write path into scores.

    Judges write through ``submit_score``. Admin overrides (update, hide,
    delete, judge removal) reconcile submission statuses in the same
    transaction.
    """

    def __init__(
        self,
        engine: Engine,
        config: JudgingConfig,
        catalog: ContentCatalog,
        tracker: SubmissionStatusTracker,
        clock: Clock | None = None,
    ) -> None:
        super().__init__(engine, clock)
        self.config = config
        self._catalog = catalog
        self._tracker = tracker

    def _validate(self, value: object) -> int:
        return validate_score(value, self.config.score_min, self.config.score_max)

    # ==================== Judge path ====================

    async def submit_score(
        self,
        session_id: str,
        story_id: str,
        criteria_id: str,
        score: int,
        comments: str | None = None,
    ) -> ScoreRecord:
        """Insert or overwrite the judge's score for (story, criterion)."""
        value = self._validate(score)
        comment = clean_comment(comments)
        now = self._now()

        def _submit(session: Session) -> ScoreRecord:
            judge = require_judge(session, session_id)
            group = get_group(session, judge.group_id)
            ensure_judging_open(group, now)

            criterion = session.get(Criterion, criteria_id)
            if criterion is None or criterion.group_id != judge.group_id:
                raise CriterionGroupMismatch(criteria_id)
            if get_submission_link(session, judge.group_id, story_id) is None:
                raise SubmissionNotInGroup(story_id)

            existing = session.exec(
                select(Score).where(
                    Score.judge_id == judge.id,
                    Score.story_id == story_id,
                    Score.criteria_id == criteria_id,
                )
            ).first()
            if existing is None:
                existing = Score(
                    judge_id=judge.id,
                    group_id=judge.group_id,
                    story_id=story_id,
                    criteria_id=criteria_id,
                    score=value,
                    comments=comment,
                    created_at=now,
                    updated_at=now,
                )
            else:
                existing.score = value
                existing.comments = comment
                existing.updated_at = now
            session.add(existing)

            judge.last_active_at = now
            session.add(judge)
            session.flush()
            return _record(existing)

        record = await self._run_upsert(_submit)
        logger.info(
            "score_submitted",
            judge_id=record.judge_id,
            story_id=story_id,
            criteria_id=criteria_id,
            score=value,
        )
        return record

    async def get_judge_submission_scores(
        self, session_id: str, story_id: str
    ) -> list[JudgeScoreView]:
        """The session judge's scores for one story, in criterion order."""

        def _get(session: Session) -> list[JudgeScoreView]:
            judge = require_judge(session, session_id)
            scores = session.exec(
                select(Score).where(Score.judge_id == judge.id, Score.story_id == story_id)
            ).all()
            criteria_ids = {s.criteria_id for s in scores}
            criteria = {
                c.id: c
                for c in session.exec(
                    select(Criterion).where(col(Criterion.id).in_(criteria_ids))
                ).all()
            }
            views = [
                JudgeScoreView(
                    id=s.id,
                    criteria_id=s.criteria_id,
                    score=s.score,
                    comments=s.comments,
                    question=criteria[s.criteria_id].question,
                    description=criteria[s.criteria_id].description,
                    order=criteria[s.criteria_id].order,
                )
                for s in scores
                if s.criteria_id in criteria
            ]
            return sorted(views, key=lambda v: v.order)

        return await self._run_session(_get)

    # ==================== Admin path ====================

    async def update_score(
        self, caller: Caller, score_id: str, score: int, comments: str | None = None
    ) -> ScoreRecord:
        """Overwrite a score's value and comment."""
        require_admin(caller, "edit scores")
        value = self._validate(score)
        comment = clean_comment(comments)
        now = self._now()

        def _update(session: Session) -> ScoreRecord:
            existing = self._get_score(session, score_id)
            existing.score = value
            existing.comments = comment
            existing.updated_at = now
            session.add(existing)
            session.flush()
            self._tracker.reconcile(session, existing.group_id, existing.story_id)
            return _record(existing)

        record = await self._run_session(_update)
        logger.info("score_updated", score_id=score_id, score=value)
        return record

    async def set_score_visibility(
        self, caller: Caller, score_id: str, hidden: bool
    ) -> ScoreRecord:
        require_admin(caller, "hide scores")
        now = self._now()

        def _toggle(session: Session) -> ScoreRecord:
            existing = self._get_score(session, score_id)
            existing.is_hidden = hidden
            existing.updated_at = now
            session.add(existing)
            session.flush()
            self._tracker.reconcile(session, existing.group_id, existing.story_id)
            return _record(existing)

        record = await self._run_session(_toggle)
        logger.info("score_visibility_changed", score_id=score_id, hidden=hidden)
        return record

    async def delete_score(self, caller: Caller, score_id: str) -> None:
        require_admin(caller, "delete scores")

        def _delete(session: Session) -> None:
            existing = self._get_score(session, score_id)
            group_id, story_id = existing.group_id, existing.story_id
            session.delete(existing)
            session.flush()
            self._tracker.reconcile(session, group_id, story_id)

        await self._run_session(_delete)
        logger.info("score_deleted", score_id=score_id)

    async def delete_judge(self, caller: Caller, judge_id: str) -> None:
        """Remove a judge with their scores and notes.

        Statuses assigned to the judge go back to pending unconditionally,
        then every submission the judge had scored is reconciled.
        """
        require_admin(caller, "delete judges")

        def _delete(session: Session) -> dict[str, int]:
            judge = session.get(Judge, judge_id)
            if judge is None:
                raise JudgeNotFound(judge_id)

            scores = session.exec(select(Score).where(Score.judge_id == judge_id)).all()
            affected = {(s.group_id, s.story_id) for s in scores}
            for score in scores:
                session.delete(score)
            session.flush()

            released = self._tracker.release_judge(session, judge_id)

            notes = session.exec(
                select(SubmissionNote).where(SubmissionNote.judge_id == judge_id)
            ).all()
            for note in notes:
                session.delete(note)
            session.flush()

            for group_id, story_id in sorted(affected):
                self._tracker.reconcile(session, group_id, story_id)

            session.delete(judge)
            session.flush()
            return {"scores": len(scores), "notes": len(notes), "released": len(released)}

        removed = await self._run_session(_delete)
        logger.info("judge_deleted", judge_id=judge_id, **removed)

    async def get_judge_detailed_scores(self, caller: Caller, judge_id: str) -> list[DetailedScore]:
        """All of a judge's scores, newest first, hidden ones included."""
        require_admin(caller, "view judge scores")

        def _get(session: Session) -> tuple[list[Score], dict[str, Criterion]]:
            scores = list(session.exec(select(Score).where(Score.judge_id == judge_id)).all())
            criteria_ids = {s.criteria_id for s in scores}
            criteria = {
                c.id: c
                for c in session.exec(
                    select(Criterion).where(col(Criterion.id).in_(criteria_ids))
                ).all()
            }
            return scores, criteria

        scores, criteria = await self._run_session(_get)
        contents = await self._catalog.get_many(s.story_id for s in scores)

        detailed = []
        for score in scores:
            content = contents.get(score.story_id)
            criterion = criteria.get(score.criteria_id)
            if content is None or criterion is None:
                continue
            detailed.append(
                DetailedScore(
                    id=score.id,
                    score=score.score,
                    comments=score.comments,
                    is_hidden=score.is_hidden,
                    created_at=score.created_at,
                    story_id=content.id,
                    story_title=content.title,
                    story_slug=content.slug,
                    criteria_id=criterion.id,
                    question=criterion.question,
                    criteria_description=criterion.description,
                )
            )
        return sorted(detailed, key=lambda d: d.created_at, reverse=True)

    @staticmethod
    def _get_score(session: Session, score_id: str) -> Score:
        score = session.get(Score, score_id)
        if score is None:
            raise ScoreNotFound(score_id)
        return score
