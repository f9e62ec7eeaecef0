"""Links between judging groups and catalog content."""

from __future__ import annotations

from collections import defaultdict
from collections.abc import Iterable
from typing import TYPE_CHECKING

import structlog
from sqlmodel import Session, col, select

from showcase_judging.core.clock import Clock
from showcase_judging.core.config import JudgingConfig
from showcase_judging.core.errors import GroupInactive, SubmissionNotFound
from showcase_judging.models import (
    GroupSubmission,
    JudgingGroup,
    Score,
    SubmissionNote,
    SubmissionState,
    SubmissionStatus,
)
from showcase_judging.models.views import (
    AddSubmissionsResult,
    ScoringSummary,
    StoryGroupMembership,
    SubmissionListing,
)
from showcase_judging.services.collaborators import (
    Caller,
    ContentCatalog,
    ContentInfo,
    require_admin,
)
from showcase_judging.services.lookups import (
    average,
    get_group,
    get_status_row,
    get_submission_link,
    group_criteria,
    group_judges,
    group_scores,
    group_submissions,
)
from showcase_judging.services.storage import AsyncRepository

if TYPE_CHECKING:
    from sqlalchemy import Engine

logger = structlog.get_logger()


class SubmissionRegistry(AsyncRepository):
    """Add content to groups, remove it, and list it for admins and judges."""

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

    async def add_submissions(
        self, caller: Caller, group_id: str, story_ids: Iterable[str]
    ) -> AddSubmissionsResult:
        """Link stories into a group, each with a pending status.

        Stories already in the group are skipped; unknown stories are
        reported in ``errors``.
        """
        admin_id = require_admin(caller, "add submissions")
        wanted = list(dict.fromkeys(story_ids))
        contents = await self._catalog.get_many(wanted)
        now = self._now()

        def _add(session: Session) -> AddSubmissionsResult:
            get_group(session, group_id)
            result = AddSubmissionsResult()
            for story_id in wanted:
                if story_id not in contents:
                    result.errors.append(f"Story {story_id} not found")
                    continue
                if get_submission_link(session, group_id, story_id) is not None:
                    result.skipped += 1
                    continue
                session.add(
                    GroupSubmission(
                        group_id=group_id, story_id=story_id, added_by=admin_id, added_at=now
                    )
                )
                if get_status_row(session, group_id, story_id) is None:
                    session.add(
                        SubmissionStatus(
                            group_id=group_id,
                            story_id=story_id,
                            status=SubmissionState.PENDING.value,
                            last_updated_at=now,
                        )
                    )
                session.flush()
                result.added += 1
            return result

        result = await self._run_session(_add)
        logger.info(
            "submissions_added",
            group_id=group_id,
            added=result.added,
            skipped=result.skipped,
            errors=len(result.errors),
        )
        return result

    async def remove_submission(self, caller: Caller, group_id: str, story_id: str) -> None:
        """Unlink a story, dropping its scores, status and notes in the group."""
        require_admin(caller, "remove submissions")

        def _remove(session: Session) -> None:
            link = get_submission_link(session, group_id, story_id)
            if link is None:
                raise SubmissionNotFound(story_id)
            for model in (Score, SubmissionStatus, SubmissionNote):
                rows = session.exec(
                    select(model).where(model.group_id == group_id, model.story_id == story_id)
                ).all()
                for row in rows:
                    session.delete(row)
                session.flush()
            session.delete(link)

        await self._run_session(_remove)
        logger.info("submission_removed", group_id=group_id, story_id=story_id)

    async def list_by_group(
        self, caller: Caller, group_id: str, limit: int | None = None
    ) -> list[SubmissionListing]:
        """Newest submissions first, each with a scoring summary."""
        require_admin(caller, "list submissions")
        limit = limit or self.config.default_submission_limit
        score_max = self.config.score_max

        def _get(session: Session):
            get_group(session, group_id)
            links = session.exec(
                select(GroupSubmission)
                .where(GroupSubmission.group_id == group_id)
                .order_by(col(GroupSubmission.added_at).desc(), col(GroupSubmission.id))
                .limit(limit)
            ).all()
            statuses = {
                row.story_id: row.status
                for row in session.exec(
                    select(SubmissionStatus).where(SubmissionStatus.group_id == group_id)
                ).all()
            }
            return (
                list(links),
                statuses,
                group_scores(session, group_id),
                len(group_criteria(session, group_id)),
                len(group_judges(session, group_id)),
            )

        links, statuses, scores, criteria_count, judge_count = await self._run_session(_get)
        contents = await self._catalog.get_many(link.story_id for link in links)

        by_story: dict[str, list[Score]] = defaultdict(list)
        for score in scores:
            by_story[score.story_id].append(score)

        listings = []
        for link in links:
            content = contents.get(link.story_id)
            if content is None:
                continue
            story_scores = by_story[link.story_id]
            status = statuses.get(link.story_id, SubmissionState.PENDING.value)
            listings.append(
                SubmissionListing(
                    id=link.id,
                    group_id=link.group_id,
                    story_id=link.story_id,
                    added_by=link.added_by,
                    added_at=link.added_at,
                    story_title=content.title,
                    story_slug=content.slug,
                    story_url=content.url,
                    status=status,
                    scoring_summary=ScoringSummary(
                        total_score=sum(s.score for s in story_scores),
                        average_score=average([s.score for s in story_scores]),
                        judge_count=len({s.judge_id for s in story_scores}),
                        max_possible_score=criteria_count * score_max * judge_count,
                        completion_percentage=(
                            100.0 if status == SubmissionState.COMPLETED else 0.0
                        ),
                    ),
                )
            )
        return listings

    async def get_group_submissions(self, group_id: str) -> list[ContentInfo]:
        """Content judges can score in an active group; missing content is skipped."""

        def _get(session: Session) -> list[str]:
            group = get_group(session, group_id)
            if not group.is_active:
                raise GroupInactive()
            return [link.story_id for link in group_submissions(session, group_id)]

        story_ids = await self._run_session(_get)
        contents = await self._catalog.get_many(story_ids)
        return [contents[sid] for sid in story_ids if sid in contents]

    async def get_story_groups(self, caller: Caller, story_id: str) -> list[StoryGroupMembership]:
        """Groups a story belongs to, most recently added first."""
        require_admin(caller, "view story groups")

        def _get(session: Session) -> list[StoryGroupMembership]:
            links = session.exec(
                select(GroupSubmission).where(GroupSubmission.story_id == story_id)
            ).all()
            group_ids = {link.group_id for link in links}
            groups = {
                g.id: g
                for g in session.exec(
                    select(JudgingGroup).where(col(JudgingGroup.id).in_(group_ids))
                ).all()
            }
            memberships = [
                StoryGroupMembership(
                    group_id=link.group_id,
                    name=groups[link.group_id].name,
                    slug=groups[link.group_id].slug,
                    is_active=groups[link.group_id].is_active,
                    scoring_mode=groups[link.group_id].scoring_policy.mode,
                    added_at=link.added_at,
                )
                for link in links
                if link.group_id in groups
            ]
            return sorted(memberships, key=lambda m: m.added_at, reverse=True)

        return await self._run_session(_get)
