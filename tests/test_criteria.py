"""Tests for the criteria catalog."""

import pytest

from showcase_judging.core.errors import (
    CriterionGroupMismatch,
    CriterionNotFound,
    DuplicateReferenceConflict,
    GroupInactive,
    NotAuthorized,
)
from showcase_judging.models.views import CriterionInput
from showcase_judging.services.collaborators import Caller


class TestSaveCriteria:
    """Tests for bulk criteria saves."""

    async def test_patch_insert_and_remove(self, system, admin, demo):
        """Test known ids are patched, new items inserted and missing ones removed."""
        c1, c2 = demo.criteria_ids
        saved = await system.criteria.save_criteria(
            admin,
            demo.group_id,
            [
                CriterionInput(id=c1, question="Polish", weight=2.0, order=1),
                CriterionInput(question="Originality", description="New idea?", order=0),
            ],
        )

        assert [c.question for c in saved] == ["Originality", "Polish"]
        assert saved[0].weight == 1.0
        assert saved[1].id == c1
        assert saved[1].weight == 2.0
        assert await system.criteria.get_criterion(c2) is None

    async def test_unknown_ids_ignored(self, system, admin, demo):
        """Test ids from elsewhere are neither inserted nor patched."""
        c1, c2 = demo.criteria_ids
        saved = await system.criteria.save_criteria(
            admin,
            demo.group_id,
            [
                CriterionInput(id=c1, question="C1", order=0),
                CriterionInput(id=c2, question="C2", order=1),
                CriterionInput(id="bogus", question="Ghost", order=2),
            ],
        )
        assert [c.question for c in saved] == ["C1", "C2"]

    async def test_removing_scored_criterion_conflicts(self, system, admin, demo):
        """Test nothing is saved when a removed criterion has scores."""
        c1, c2 = demo.criteria_ids
        await system.scores.submit_score(demo.session_id, "story-1", c2, 3)

        with pytest.raises(DuplicateReferenceConflict) as exc_info:
            await system.criteria.save_criteria(
                admin,
                demo.group_id,
                [CriterionInput(id=c1, question="Renamed", order=0)],
            )
        assert 'Cannot delete criterion "C2" because it has existing scores' in str(
            exc_info.value
        )

        criteria = await system.criteria.list_by_group(admin, demo.group_id)
        assert [c.question for c in criteria] == ["C1", "C2"]

    async def test_requires_admin(self, system, demo):
        """Test criteria edits are admin only."""
        with pytest.raises(NotAuthorized):
            await system.criteria.save_criteria(Caller(user_id="u-1"), demo.group_id, [])


class TestDeleteCriterion:
    """Tests for single criterion deletion."""

    async def test_delete(self, system, admin, demo):
        """Test an unscored criterion can be deleted."""
        await system.criteria.delete_criterion(admin, demo.criteria_ids[1])
        criteria = await system.criteria.list_by_group(admin, demo.group_id)
        assert [c.id for c in criteria] == demo.criteria_ids[:1]

    async def test_delete_scored(self, system, admin, demo):
        """Test a scored criterion cannot be deleted."""
        await system.scores.submit_score(demo.session_id, "story-1", demo.criteria_ids[0], 3)
        with pytest.raises(DuplicateReferenceConflict):
            await system.criteria.delete_criterion(admin, demo.criteria_ids[0])

    async def test_delete_missing(self, system, admin):
        """Test deleting an unknown criterion raises CriterionNotFound."""
        with pytest.raises(CriterionNotFound):
            await system.criteria.delete_criterion(admin, "missing")


class TestReorder:
    """Tests for criterion reordering."""

    async def test_reorder(self, system, admin, demo):
        """Test new positions change list order."""
        c1, c2 = demo.criteria_ids
        await system.criteria.reorder(admin, demo.group_id, [(c1, 5), (c2, 0)])
        criteria = await system.criteria.list_by_group(admin, demo.group_id)
        assert [c.id for c in criteria] == [c2, c1]
        assert criteria[1].order == 5

    async def test_foreign_criterion_rejected(self, system, admin, demo):
        """Test criteria from another group cannot be reordered here."""
        other = await system.groups.create_group(admin, "Other")
        [foreign] = await system.criteria.save_criteria(
            admin, other.id, [CriterionInput(question="Elsewhere")]
        )
        with pytest.raises(CriterionGroupMismatch):
            await system.criteria.reorder(
                admin, demo.group_id, [(demo.criteria_ids[0], 1), (foreign.id, 0)]
            )

        criteria = await system.criteria.list_by_group(admin, demo.group_id)
        assert criteria[0].order == 0


class TestJudgeFacingCriteria:
    """Tests for the criteria judges see."""

    async def test_get_group_criteria(self, system, demo):
        """Test judges get criteria in order."""
        criteria = await system.criteria.get_group_criteria(demo.group_id)
        assert [c.question for c in criteria] == ["C1", "C2"]

    async def test_inactive_group(self, system, admin, demo):
        """Test inactive groups hide their criteria from judges."""
        await system.groups.update_group(admin, demo.group_id, is_active=False)
        with pytest.raises(GroupInactive):
            await system.criteria.get_group_criteria(demo.group_id)
