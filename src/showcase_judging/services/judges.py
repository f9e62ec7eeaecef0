"""Judge registration, sessions and progress."""

from __future__ import annotations

from collections import Counter
from datetime import timedelta
from typing import TYPE_CHECKING

import structlog
from sqlmodel import Session, col, select

from showcase_judging.core.clock import Clock
from showcase_judging.core.config import JudgingConfig
from showcase_judging.core.errors import InvalidJudgeName, JudgeNameTaken, JudgeNotFound
from showcase_judging.core.security import generate_session_id
from showcase_judging.models import GroupSubmission, Judge, JudgingGroup, Score
from showcase_judging.models.views import (
    GroupRef,
    JudgeListEntry,
    JudgeProgress,
    JudgeRegistration,
    JudgeSession,
    SubmissionProgress,
)
from showcase_judging.services.collaborators import Caller, ContentCatalog, require_admin
from showcase_judging.services.lookups import (
    completion_percentage,
    ensure_judging_open,
    get_group,
    group_criteria,
    group_scores,
    group_submissions,
    judge_by_session,
    require_judge,
)
from showcase_judging.services.storage import AsyncRepository

if TYPE_CHECKING:
    from sqlalchemy import Engine

logger = structlog.get_logger()

MIN_NAME_LENGTH = 2


class JudgeRegistry(AsyncRepository):
    """Register judges into groups and manage their sessions."""

    def __init__(
        self,
        engine: Engine,
        config: JudgingConfig,
        catalog: ContentCatalog,
        clock: Clock | None = None,
    ) -> None:
        super().__init__(engine, clock)
        self.config = config
        self._catalog = catalog

    async def register(
        self,
        group_id: str,
        name: str,
        email: str | None = None,
        caller: Caller | None = None,
    ) -> JudgeRegistration:
        """Register a judge, or hand back the existing session.

        An identity already linked to a judge in the group gets that judge
        back with refreshed details. Otherwise an unlinked judge with the
        same trimmed name is reused (and linked when the caller is signed
        in). A same-name judge linked to a different account raises
        JudgeNameTaken. Only when neither exists is a new judge created.
        """
        trimmed = name.strip()
        clean_email = email.strip() if email else None
        clean_email = clean_email or None
        user_id = caller.user_id if caller is not None else None
        now = self._now()

        def _register(session: Session) -> JudgeRegistration:
            group = get_group(session, group_id)
            ensure_judging_open(group, now)
            if len(trimmed) < MIN_NAME_LENGTH:
                raise InvalidJudgeName(MIN_NAME_LENGTH)

            same_name = session.exec(
                select(Judge).where(Judge.group_id == group_id, Judge.name == trimmed)
            ).first()

            if user_id is not None:
                linked = session.exec(
                    select(Judge).where(Judge.group_id == group_id, Judge.user_id == user_id)
                ).first()
                if linked is not None:
                    if same_name is None or same_name.id == linked.id:
                        linked.name = trimmed
                    if clean_email is not None:
                        linked.email = clean_email
                    linked.last_active_at = now
                    session.add(linked)
                    logger.info("judge_session_resumed", judge_id=linked.id, group_id=group_id)
                    return JudgeRegistration(judge_id=linked.id, session_id=linked.session_id)

            if same_name is not None:
                if same_name.user_id is not None and same_name.user_id != user_id:
                    raise JudgeNameTaken(trimmed)
                if user_id is not None and same_name.user_id is None:
                    same_name.user_id = user_id
                    same_name.last_active_at = now
                    session.add(same_name)
                    logger.info("judge_linked", judge_id=same_name.id, user_id=user_id)
                return JudgeRegistration(judge_id=same_name.id, session_id=same_name.session_id)

            judge = Judge(
                group_id=group_id,
                name=trimmed,
                email=clean_email,
                session_id=generate_session_id(),
                user_id=user_id,
                last_active_at=now,
                created_at=now,
            )
            session.add(judge)
            session.flush()
            logger.info("judge_registered", judge_id=judge.id, group_id=group_id)
            return JudgeRegistration(judge_id=judge.id, session_id=judge.session_id)

        return await self._run_upsert(_register)

    async def validate_session(self, session_id: str) -> bool:
        """True when the session's judge belongs to a group open for judging."""
        return await self._check_session(session_id, check_age=False)

    async def is_session_valid(self, session_id: str) -> bool:
        """Like validate_session, and the judge was active within the max age."""
        return await self._check_session(session_id, check_age=True)

    async def _check_session(self, session_id: str, *, check_age: bool) -> bool:
        now = self._now()
        max_age = timedelta(seconds=self.config.session_max_age_seconds)

        def _check(session: Session) -> bool:
            judge = judge_by_session(session, session_id)
            if judge is None:
                return False
            if check_age and now - judge.last_active_at > max_age:
                return False
            group = session.get(JudgingGroup, judge.group_id)
            return group is not None and group.window_state(now) == "open"

        return await self._run_session(_check)

    async def update_activity(self, session_id: str) -> bool:
        """Refresh last activity, at most once per throttle interval.

        Returns True when a new timestamp was written.
        """
        now = self._now()
        throttle = timedelta(seconds=self.config.activity_throttle_seconds)

        def _touch(session: Session) -> bool:
            judge = require_judge(session, session_id)
            if now - judge.last_active_at < throttle:
                return False
            judge.last_active_at = now
            session.add(judge)
            return True

        written = await self._run_session(_touch)
        if written:
            logger.debug("judge_activity_updated")
        return written

    async def get_session(self, session_id: str) -> JudgeSession | None:
        def _get(session: Session) -> JudgeSession | None:
            judge = judge_by_session(session, session_id)
            if judge is None:
                return None
            group = get_group(session, judge.group_id)
            return JudgeSession(
                judge_id=judge.id,
                name=judge.name,
                email=judge.email,
                group_id=judge.group_id,
                last_active_at=judge.last_active_at,
                group=GroupRef(
                    id=group.id,
                    name=group.name,
                    slug=group.slug,
                    description=group.description,
                    is_active=group.is_active,
                    start_date=group.start_date,
                    end_date=group.end_date,
                ),
            )

        return await self._run_session(_get)

    async def get_progress(self, session_id: str) -> JudgeProgress | None:
        """Scoring progress for the session's judge, or None for unknown sessions."""

        def _get(
            session: Session,
        ) -> tuple[list[GroupSubmission], int, list[Score]] | None:
            judge = judge_by_session(session, session_id)
            if judge is None:
                return None
            submissions = group_submissions(session, judge.group_id)
            criteria = group_criteria(session, judge.group_id)
            scores = session.exec(
                select(Score).where(
                    Score.judge_id == judge.id,
                    col(Score.is_hidden) == False,  # noqa: E712
                )
            ).all()
            return submissions, len(criteria), list(scores)

        loaded = await self._run_session(_get)
        if loaded is None:
            return None
        submissions, total_criteria, scores = loaded
        contents = await self._catalog.get_many(s.story_id for s in submissions)

        scored_per_story = Counter(score.story_id for score in scores)
        progress = []
        for submission in submissions:
            content = contents.get(submission.story_id)
            if content is None:
                continue
            scored = scored_per_story[submission.story_id]
            progress.append(
                SubmissionProgress(
                    story_id=submission.story_id,
                    story_title=content.title,
                    criteria_scored=scored,
                    total_criteria=total_criteria,
                    is_complete=total_criteria > 0 and scored >= total_criteria,
                )
            )

        expected = len(submissions) * total_criteria
        return JudgeProgress(
            total_submissions=len(submissions),
            total_criteria=total_criteria,
            expected_scores=expected,
            completed_scores=len(scores),
            completion_percentage=completion_percentage(len(scores), expected),
            submission_progress=progress,
        )

    # ==================== Admin ====================

    async def list_by_group(self, caller: Caller, group_id: str) -> list[JudgeListEntry]:
        """Judges of a group, newest first, with score counts and completion."""
        require_admin(caller, "list judges")

        def _list(session: Session) -> list[JudgeListEntry]:
            get_group(session, group_id)
            judges = session.exec(
                select(Judge)
                .where(Judge.group_id == group_id)
                .order_by(col(Judge.created_at).desc())
            ).all()
            expected = len(group_criteria(session, group_id)) * len(
                group_submissions(session, group_id)
            )
            score_counts = Counter(score.judge_id for score in group_scores(session, group_id))
            return [
                JudgeListEntry(
                    id=judge.id,
                    name=judge.name,
                    email=judge.email,
                    group_id=judge.group_id,
                    user_id=judge.user_id,
                    last_active_at=judge.last_active_at,
                    created_at=judge.created_at,
                    score_count=score_counts[judge.id],
                    completion_percentage=completion_percentage(score_counts[judge.id], expected),
                )
                for judge in judges
            ]

        return await self._run_session(_list)

    async def link_to_user(self, caller: Caller, judge_id: str, user_id: str) -> None:
        """Attach a judge row to a user account."""
        require_admin(caller, "link judges")

        def _link(session: Session) -> None:
            judge = session.get(Judge, judge_id)
            if judge is None:
                raise JudgeNotFound(judge_id)
            judge.user_id = user_id
            session.add(judge)

        await self._run_session(_link)
        logger.info("judge_linked", judge_id=judge_id, user_id=user_id)

    async def unlink_user(self, caller: Caller, judge_id: str) -> None:
        require_admin(caller, "unlink judges")

        def _unlink(session: Session) -> None:
            judge = session.get(Judge, judge_id)
            if judge is None:
                raise JudgeNotFound(judge_id)
            judge.user_id = None
            session.add(judge)

        await self._run_session(_unlink)
        logger.info("judge_unlinked", judge_id=judge_id)
