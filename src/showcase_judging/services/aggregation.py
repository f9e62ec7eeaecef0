"""Score rollups for admins and public results pages."""

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass
from typing import TYPE_CHECKING

import structlog
from sqlmodel import Session

from showcase_judging.core.clock import Clock
from showcase_judging.core.config import JudgingConfig
from showcase_judging.core.errors import ContentNotFound, GroupNotFound
from showcase_judging.models import (
    Criterion,
    GroupSubmission,
    Judge,
    JudgingGroup,
    Score,
    policy_allows,
)
from showcase_judging.models.views import (
    CriterionBreakdown,
    CriterionScoreGroup,
    CriterionScoreLine,
    GroupScoreRollup,
    JudgeDetail,
    JudgeRollupEntry,
    JudgeScoreEntry,
    JudgeScoreGroup,
    JudgeScoreLine,
    PublicCriterionBreakdown,
    PublicGroupScores,
    PublicJudgeDetail,
    PublicRanking,
    SubmissionDetail,
    SubmissionRanking,
)
from showcase_judging.services.collaborators import (
    Caller,
    ContentCatalog,
    ContentInfo,
    NotesCounter,
    require_admin,
)
from showcase_judging.services.lookups import (
    average,
    completion_percentage,
    get_group,
    group_criteria,
    group_judges,
    group_scores,
    group_submissions,
)
from showcase_judging.services.storage import AsyncRepository

if TYPE_CHECKING:
    from sqlalchemy import Engine

logger = structlog.get_logger()


@dataclass
class GroupSnapshot:
    """Everything a rollup needs, fetched in one transaction."""

    group: JudgingGroup
    criteria: list[Criterion]
    judges: list[Judge]
    submissions: list[GroupSubmission]
    scores: list[Score]

    @property
    def expected_per_submission(self) -> int:
        return len(self.judges) * len(self.criteria)


def ranking_key(ranking: SubmissionRanking, added_at: dict[str, object]) -> tuple:
    """Total desc, then average desc, then earliest added, then story id."""
    return (
        -ranking.total_score,
        -ranking.average_score,
        added_at[ranking.story_id],
        ranking.story_id,
    )


def build_group_rollup(
    snapshot: GroupSnapshot, contents: dict[str, ContentInfo], score_max: int
) -> GroupScoreRollup:
    """Compute the admin rollup from visible scores."""
    scores = snapshot.scores
    judge_count = len(snapshot.judges)
    criteria_count = len(snapshot.criteria)
    submission_count = len(snapshot.submissions)
    per_submission = snapshot.expected_per_submission

    by_story: dict[str, list[int]] = defaultdict(list)
    by_criterion: dict[str, list[int]] = defaultdict(list)
    for score in scores:
        by_story[score.story_id].append(score.score)
        by_criterion[score.criteria_id].append(score.score)

    rankings = []
    for submission in snapshot.submissions:
        content = contents.get(submission.story_id)
        if content is None:
            continue
        values = by_story[submission.story_id]
        rankings.append(
            SubmissionRanking(
                story_id=submission.story_id,
                story_title=content.title,
                story_slug=content.slug,
                story_url=content.url,
                total_score=sum(values),
                average_score=average(values) or 0.0,
                score_count=len(values),
                completion_percentage=completion_percentage(len(values), per_submission),
                max_possible_score=per_submission * score_max,
            )
        )
    added_at = {s.story_id: s.added_at for s in snapshot.submissions}
    rankings.sort(key=lambda r: ranking_key(r, added_at))

    breakdown = [
        CriterionBreakdown(
            criteria_id=criterion.id,
            question=criterion.question,
            average_score=average(by_criterion[criterion.id]) or 0.0,
            score_count=len(by_criterion[criterion.id]),
        )
        for criterion in snapshot.criteria
    ]

    return GroupScoreRollup(
        total_scores=len(scores),
        average_score=average([s.score for s in scores]),
        judge_count=judge_count,
        submission_count=submission_count,
        criteria_count=criteria_count,
        completion_percentage=completion_percentage(
            len(scores), per_submission * submission_count
        ),
        submission_rankings=rankings,
        criteria_breakdown=breakdown,
    )


def _score_lines(
    scores: list[Score], contents: dict[str, ContentInfo], criteria: dict[str, Criterion]
) -> list[JudgeScoreLine]:
    lines = []
    for score in scores:
        content = contents.get(score.story_id)
        criterion = criteria.get(score.criteria_id)
        if content is None or criterion is None:
            continue
        lines.append(
            JudgeScoreLine(
                story_id=score.story_id,
                story_title=content.title,
                criteria_id=score.criteria_id,
                criteria_question=criterion.question,
                score=score.score,
                comments=score.comments,
                submitted_at=score.created_at,
            )
        )
    return lines


class AggregationEngine(AsyncRepository):
    """Read-only rollups over visible scores.

    Each query loads the group's judges, criteria, submissions and scores
    once, fetches content in one catalog call and joins in memory.
    """

    def __init__(
        self,
        engine: Engine,
        config: JudgingConfig,
        catalog: ContentCatalog,
        notes: NotesCounter,
        clock: Clock | None = None,
    ) -> None:
        super().__init__(engine, clock)
        self.config = config
        self._catalog = catalog
        self._notes = notes

    async def _snapshot(self, group_id: str) -> GroupSnapshot:
        def _load(session: Session) -> GroupSnapshot:
            return GroupSnapshot(
                group=get_group(session, group_id),
                criteria=group_criteria(session, group_id),
                judges=group_judges(session, group_id),
                submissions=group_submissions(session, group_id),
                scores=group_scores(session, group_id),
            )

        return await self._run_session(_load)

    async def _public_snapshot(self, group_id: str, password: str | None) -> GroupSnapshot:
        try:
            snapshot = await self._snapshot(group_id)
        except GroupNotFound:
            raise GroupNotFound() from None
        # Private and missing groups look the same to public callers
        if not policy_allows(snapshot.group.results_policy, password):
            logger.debug("public_results_denied", group_id=group_id)
            raise GroupNotFound()
        return snapshot

    async def _contents(self, snapshot: GroupSnapshot) -> dict[str, ContentInfo]:
        story_ids = {s.story_id for s in snapshot.submissions}
        story_ids |= {s.story_id for s in snapshot.scores}
        return await self._catalog.get_many(story_ids)

    # ==================== Admin ====================

    async def group_scores(self, caller: Caller, group_id: str) -> GroupScoreRollup:
        require_admin(caller, "view group scores")
        snapshot = await self._snapshot(group_id)
        contents = await self._contents(snapshot)
        return build_group_rollup(snapshot, contents, self.config.score_max)

    async def judge_rollup(self, caller: Caller, group_id: str) -> list[JudgeRollupEntry]:
        """Per-judge activity: totals, averages, stories judged and notes written."""
        require_admin(caller, "view judge tracking")
        snapshot = await self._snapshot(group_id)
        note_counts = await self._notes.count_by_judge(group_id)

        by_judge: dict[str, list[Score]] = defaultdict(list)
        for score in snapshot.scores:
            by_judge[score.judge_id].append(score)

        entries = []
        for judge in snapshot.judges:
            scores = by_judge[judge.id]
            values = [s.score for s in scores]
            entries.append(
                JudgeRollupEntry(
                    judge_id=judge.id,
                    name=judge.name,
                    email=judge.email,
                    user_id=judge.user_id,
                    last_active_at=judge.last_active_at,
                    scores_count=len(scores),
                    total_score=sum(values),
                    average_score=average(values),
                    submissions_judged=len({s.story_id for s in scores}),
                    notes_count=note_counts.get(judge.id, 0),
                    last_score_at=max((s.created_at for s in scores), default=None),
                )
            )
        return entries

    async def submission_detail(
        self, caller: Caller, group_id: str, story_id: str
    ) -> SubmissionDetail:
        """One story's scores grouped by judge and by criterion."""
        require_admin(caller, "view submission scores")
        snapshot = await self._snapshot(group_id)
        contents = await self._catalog.get_many([story_id])
        content = contents.get(story_id)
        if content is None:
            raise ContentNotFound(story_id)

        scores = [s for s in snapshot.scores if s.story_id == story_id]
        criteria = {c.id: c for c in snapshot.criteria}
        judges = {j.id: j for j in snapshot.judges}
        values = [s.score for s in scores]

        by_judge = []
        for judge in snapshot.judges:
            own = sorted(
                (s for s in scores if s.judge_id == judge.id and s.criteria_id in criteria),
                key=lambda s: criteria[s.criteria_id].order,
            )
            own_values = [s.score for s in own]
            by_judge.append(
                JudgeScoreGroup(
                    judge_id=judge.id,
                    judge_name=judge.name,
                    scores=[
                        CriterionScoreLine(
                            criteria_id=s.criteria_id,
                            question=criteria[s.criteria_id].question,
                            score=s.score,
                            comments=s.comments,
                        )
                        for s in own
                    ],
                    judge_total=sum(own_values),
                    judge_average=average(own_values) or 0.0,
                )
            )

        by_criterion = []
        for criterion in snapshot.criteria:
            matching = [s for s in scores if s.criteria_id == criterion.id and s.judge_id in judges]
            by_criterion.append(
                CriterionScoreGroup(
                    criteria_id=criterion.id,
                    question=criterion.question,
                    scores=[
                        JudgeScoreEntry(
                            judge_id=s.judge_id,
                            judge_name=judges[s.judge_id].name,
                            score=s.score,
                            comments=s.comments,
                        )
                        for s in matching
                    ],
                    criteria_average=average([s.score for s in matching]) or 0.0,
                )
            )

        return SubmissionDetail(
            story_id=content.id,
            story_title=content.title,
            story_slug=content.slug,
            story_url=content.url,
            total_score=sum(values),
            average_score=average(values) or 0.0,
            score_count=len(values),
            max_possible_score=snapshot.expected_per_submission * self.config.score_max,
            scores_by_judge=by_judge,
            scores_by_criteria=by_criterion,
        )

    async def judge_details(self, caller: Caller, group_id: str) -> list[JudgeDetail]:
        """Every judge with their scores joined to story and criterion."""
        require_admin(caller, "view judge details")
        snapshot = await self._snapshot(group_id)
        contents = await self._contents(snapshot)
        criteria = {c.id: c for c in snapshot.criteria}

        details = []
        for judge in snapshot.judges:
            lines = _score_lines(
                [s for s in snapshot.scores if s.judge_id == judge.id], contents, criteria
            )
            details.append(
                JudgeDetail(
                    judge_id=judge.id,
                    judge_name=judge.name,
                    judge_email=judge.email,
                    scores=lines,
                    total_scores=len(lines),
                    average_score=average([line.score for line in lines]),
                )
            )
        return details

    # ==================== Public ====================

    async def public_group_scores(
        self, group_id: str, password: str | None = None
    ) -> PublicGroupScores:
        """Results page rollup; raises GroupNotFound unless results are visible."""
        snapshot = await self._public_snapshot(group_id, password)
        contents = await self._contents(snapshot)
        rollup = build_group_rollup(snapshot, contents, self.config.score_max)
        return PublicGroupScores(
            total_scores=rollup.total_scores,
            average_score=rollup.average_score,
            judge_count=rollup.judge_count,
            submission_count=rollup.submission_count,
            criteria_count=rollup.criteria_count,
            completion_percentage=rollup.completion_percentage,
            rankings=[
                PublicRanking(
                    story_id=r.story_id,
                    story_title=r.story_title,
                    story_url=r.story_url,
                    total_score=r.total_score,
                    average_score=r.average_score,
                    score_count=r.score_count,
                )
                for r in rollup.submission_rankings
            ],
            criteria_breakdown=[
                PublicCriterionBreakdown(
                    criteria_id=b.criteria_id,
                    criteria_name=b.question,
                    average_score=b.average_score,
                    score_count=b.score_count,
                )
                for b in rollup.criteria_breakdown
            ],
        )

    async def public_judge_details(
        self, group_id: str, password: str | None = None
    ) -> list[PublicJudgeDetail]:
        """Judges by total score, without emails or ids."""
        snapshot = await self._public_snapshot(group_id, password)
        contents = await self._contents(snapshot)
        criteria = {c.id: c for c in snapshot.criteria}

        details = []
        for judge in snapshot.judges:
            lines = _score_lines(
                [s for s in snapshot.scores if s.judge_id == judge.id], contents, criteria
            )
            values = [line.score for line in lines]
            details.append(
                PublicJudgeDetail(
                    judge_name=judge.name,
                    last_active_at=judge.last_active_at,
                    scores=lines,
                    total_score=sum(values),
                    average_score=average(values) or 0.0,
                    score_count=len(values),
                )
            )
        return sorted(details, key=lambda d: d.total_score, reverse=True)
