"""Tests for score rollups and public results."""

import pytest

from showcase_judging.core.errors import ContentNotFound, GroupNotFound, NotAuthorized
from showcase_judging.models.views import CriterionInput
from showcase_judging.services.collaborators import Caller


async def _score(system, demo, story_id, values, session_id=None):
    for criteria_id, value in zip(demo.criteria_ids, values, strict=False):
        await system.scores.submit_score(
            session_id or demo.session_id, story_id, criteria_id, value
        )


class TestGroupScores:
    """Tests for the admin group rollup."""

    async def test_single_judge_full_coverage(self, system, admin, demo):
        """Test totals, averages and completion for one fully scored submission."""
        await _score(system, demo, "story-1", [4, 5])

        rollup = await system.aggregation.group_scores(admin, demo.group_id)

        assert rollup.total_scores == 2
        assert rollup.average_score == 4.5
        assert rollup.judge_count == 1
        assert rollup.submission_count == 1
        assert rollup.criteria_count == 2
        assert rollup.completion_percentage == 100.0

        [ranking] = rollup.submission_rankings
        assert ranking.story_title == "Alpha App"
        assert ranking.total_score == 9
        assert ranking.average_score == 4.5
        assert ranking.max_possible_score == 10
        assert ranking.completion_percentage == 100.0

        breakdown = rollup.criteria_breakdown
        assert [(b.question, b.average_score, b.score_count) for b in breakdown] == [
            ("C1", 4.0, 1),
            ("C2", 5.0, 1),
        ]

    async def test_empty_group(self, system, admin):
        """Test a group with nothing in it has zero completion."""
        group = await system.groups.create_group(admin, "Empty")
        rollup = await system.aggregation.group_scores(admin, group.id)
        assert rollup.total_scores == 0
        assert rollup.average_score is None
        assert rollup.completion_percentage == 0.0
        assert rollup.submission_rankings == []

    async def test_unscored_criterion_still_listed(self, system, admin, demo):
        """Test every criterion appears in the breakdown."""
        await _score(system, demo, "story-1", [3])
        rollup = await system.aggregation.group_scores(admin, demo.group_id)
        assert [b.score_count for b in rollup.criteria_breakdown] == [1, 0]
        assert rollup.completion_percentage == 50.0

    async def test_registered_judges_count_toward_completion(self, system, admin, demo):
        """Test idle judges lower completion."""
        await system.judges.register(demo.group_id, "J2")
        await _score(system, demo, "story-1", [4, 5])
        rollup = await system.aggregation.group_scores(admin, demo.group_id)
        assert rollup.judge_count == 2
        assert rollup.completion_percentage == 50.0

    async def test_hidden_scores_excluded(self, system, admin, demo):
        """Test hidden scores do not count anywhere in the rollup."""
        await _score(system, demo, "story-1", [4, 1])
        [_, low] = await system.scores.get_judge_submission_scores(demo.session_id, "story-1")
        await system.scores.set_score_visibility(admin, low.id, True)

        rollup = await system.aggregation.group_scores(admin, demo.group_id)
        assert rollup.total_scores == 1
        assert rollup.average_score == 4.0
        assert rollup.submission_rankings[0].total_score == 4

    async def test_ranking_tie_breaks(self, system, admin, demo, clock):
        """Test ties fall back to average, then earliest added."""
        clock.advance(minutes=1)
        await system.submissions.add_submissions(admin, demo.group_id, ["story-2", "story-3"])
        # Same total, story-2 has the better average
        await _score(system, demo, "story-1", [2, 2])
        await _score(system, demo, "story-2", [4])
        # Same total and average as story-1, added later
        await _score(system, demo, "story-3", [2, 2])

        rollup = await system.aggregation.group_scores(admin, demo.group_id)
        assert [r.story_id for r in rollup.submission_rankings] == [
            "story-2",
            "story-1",
            "story-3",
        ]

    async def test_missing_content_skipped(self, system, admin, catalog, demo):
        """Test rankings leave out stories gone from the catalog."""
        await _score(system, demo, "story-1", [4, 4])
        catalog.remove("story-1")
        rollup = await system.aggregation.group_scores(admin, demo.group_id)
        assert rollup.submission_rankings == []
        assert rollup.total_scores == 2

    async def test_requires_admin(self, system, demo):
        """Test the admin rollup is admin only."""
        with pytest.raises(NotAuthorized):
            await system.aggregation.group_scores(Caller(user_id="u-1"), demo.group_id)


class TestJudgeViews:
    """Tests for per-judge rollups."""

    async def test_judge_rollup(self, system, admin, demo):
        """Test per-judge totals and note counts."""
        idle = await system.judges.register(demo.group_id, "Idle")
        await _score(system, demo, "story-1", [3, 5])
        note_id = await system.notes.add_note(demo.session_id, "story-1", "First")
        await system.notes.add_note(demo.session_id, "story-1", "Reply", note_id)

        rollup = await system.aggregation.judge_rollup(admin, demo.group_id)
        entries = {e.judge_id: e for e in rollup}

        active = entries[demo.judge_id]
        assert active.scores_count == 2
        assert active.total_score == 8
        assert active.average_score == 4.0
        assert active.submissions_judged == 1
        assert active.notes_count == 2
        assert active.last_score_at is not None

        assert entries[idle.judge_id].scores_count == 0
        assert entries[idle.judge_id].average_score is None
        assert entries[idle.judge_id].last_score_at is None

    async def test_judge_details(self, system, admin, demo):
        """Test judge details join scores to stories and criteria."""
        await _score(system, demo, "story-1", [3, 5])
        [detail] = await system.aggregation.judge_details(admin, demo.group_id)
        assert detail.judge_name == "J1"
        assert detail.total_scores == 2
        assert detail.average_score == 4.0
        assert {line.criteria_question for line in detail.scores} == {"C1", "C2"}

    async def test_submission_detail(self, system, admin, demo):
        """Test one story's scores grouped by judge and by criterion."""
        other = await system.judges.register(demo.group_id, "J2")
        await _score(system, demo, "story-1", [4, 5])
        await _score(system, demo, "story-1", [2], session_id=other.session_id)

        detail = await system.aggregation.submission_detail(admin, demo.group_id, "story-1")

        assert detail.total_score == 11
        assert detail.score_count == 3
        assert detail.max_possible_score == 20
        by_judge = {g.judge_name: g for g in detail.scores_by_judge}
        assert by_judge["J1"].judge_total == 9
        assert [line.question for line in by_judge["J1"].scores] == ["C1", "C2"]
        assert by_judge["J2"].judge_average == 2.0
        by_criterion = {g.question: g for g in detail.scores_by_criteria}
        assert by_criterion["C1"].criteria_average == 3.0
        assert len(by_criterion["C2"].scores) == 1

    async def test_submission_detail_missing_content(self, system, admin, catalog, demo):
        """Test unknown stories raise ContentNotFound."""
        catalog.remove("story-1")
        with pytest.raises(ContentNotFound):
            await system.aggregation.submission_detail(admin, demo.group_id, "story-1")


class TestPublicResults:
    """Tests for password-gated public results."""

    async def test_private_results_look_missing(self, system, demo):
        """Test admin-only results raise the same error as a missing group."""
        with pytest.raises(GroupNotFound) as private:
            await system.aggregation.public_group_scores(demo.group_id)
        with pytest.raises(GroupNotFound) as missing:
            await system.aggregation.public_group_scores("missing")
        assert str(private.value) == str(missing.value) == "Judging group not found"

    async def test_password_results(self, system, admin, demo):
        """Test password-gated results need the right password."""
        await system.groups.update_group(admin, demo.group_id, results_password="pw")
        await _score(system, demo, "story-1", [4, 5])

        with pytest.raises(GroupNotFound):
            await system.aggregation.public_group_scores(demo.group_id, "wrong")
        with pytest.raises(GroupNotFound):
            await system.aggregation.public_group_scores(demo.group_id)

        scores = await system.aggregation.public_group_scores(demo.group_id, "pw")
        assert scores.rankings[0].story_title == "Alpha App"
        assert scores.rankings[0].total_score == 9
        assert [b.criteria_name for b in scores.criteria_breakdown] == ["C1", "C2"]

    async def test_open_results(self, system, admin, demo):
        """Test open results need no password."""
        await system.groups.update_group(admin, demo.group_id, results_public=True)
        scores = await system.aggregation.public_group_scores(demo.group_id)
        assert scores.submission_count == 1

    async def test_public_judge_details_sorted_by_total(self, system, admin, demo):
        """Test public judge details are ordered by total and omit emails."""
        await system.groups.update_group(admin, demo.group_id, results_public=True)
        top = await system.judges.register(demo.group_id, "Top", "top@example.com")
        await _score(system, demo, "story-1", [1, 1])
        await _score(system, demo, "story-1", [5, 5], session_id=top.session_id)

        details = await system.aggregation.public_judge_details(demo.group_id)
        assert [d.judge_name for d in details] == ["Top", "J1"]
        assert details[0].total_score == 10
        assert "judge_email" not in details[0].model_dump()

    async def test_public_judge_details_gated(self, system, demo):
        """Test public judge details share the results gate."""
        with pytest.raises(GroupNotFound):
            await system.aggregation.public_judge_details(demo.group_id)

    async def test_rollup_scoped_to_group(self, system, admin, demo):
        """Test another group's scores do not leak into the rollup."""
        other = await system.groups.create_group(admin, "Other")
        [criterion] = await system.criteria.save_criteria(
            admin, other.id, [CriterionInput(question="Q")]
        )
        await system.submissions.add_submissions(admin, other.id, ["story-1"])
        judge = await system.judges.register(other.id, "Outsider")
        await system.scores.submit_score(judge.session_id, "story-1", criterion.id, 1)

        rollup = await system.aggregation.group_scores(admin, demo.group_id)
        assert rollup.total_scores == 0
