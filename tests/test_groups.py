"""Tests for judging group lifecycle and access control."""

import base64
from datetime import datetime, timedelta

import pytest

from showcase_judging.core.clock import timestamp_suffix
from showcase_judging.core.errors import GroupNotFound, NotAuthenticated, NotAuthorized
from showcase_judging.models import AdminOnlyAccess, OpenAccess, PasswordAccess, build_policy
from showcase_judging.services.collaborators import Caller, ContentInfo
from showcase_judging.services.groups import normalize_legacy_group, resolve_policy


def _b64(value: str) -> str:
    return base64.b64encode(value.encode()).decode()


class TestResolvePolicy:
    """Tests for admin form updates to one surface policy."""

    def test_nothing_sent_keeps_policy(self):
        """Test None flag and None password leave the policy untouched."""
        current = build_policy(False, "pw")
        assert resolve_policy(current, None, None) is current

    def test_password_wins_over_flag(self):
        """Test a new password produces a password policy."""
        assert isinstance(resolve_policy(OpenAccess(), True, "new"), PasswordAccess)

    def test_clearing_password_without_flag_is_admin_only(self):
        """Test an empty password with no flag falls back to admin only."""
        assert isinstance(resolve_policy(build_policy(False, "pw"), None, ""), AdminOnlyAccess)

    def test_clearing_password_with_flag(self):
        """Test an empty password with a public flag opens the surface."""
        assert isinstance(resolve_policy(build_policy(False, "pw"), True, ""), OpenAccess)

    def test_flag_only_keeps_existing_password(self):
        """Test toggling the flag does not drop a password."""
        current = build_policy(False, "pw")
        assert resolve_policy(current, True, None) is current

    def test_flag_only_without_password(self):
        """Test the flag switches between open and admin only."""
        assert isinstance(resolve_policy(OpenAccess(), False, None), AdminOnlyAccess)
        assert isinstance(resolve_policy(AdminOnlyAccess(), True, None), OpenAccess)


class TestCreateGroup:
    """Tests for group creation."""

    async def test_create_group(self, system, admin):
        """Test a new group gets a slug and default policies."""
        group = await system.groups.create_group(admin, "Spring Showcase", description="Apps")
        assert group.slug == "spring-showcase"
        assert group.created_by == "admin-1"
        assert group.is_active
        assert group.scoring_access.mode == "open"
        assert group.intake_access.mode == "open"
        assert group.results_access.mode == "admin_only"
        assert group.submission_count == 0

    async def test_duplicate_name_gets_suffix(self, system, admin, clock):
        """Test a colliding slug gets the timestamp suffix."""
        await system.groups.create_group(admin, "Demo")
        second = await system.groups.create_group(admin, "Demo")
        assert second.slug == f"demo-{timestamp_suffix(clock.now)}"

    async def test_password_sets_password_mode(self, system, admin):
        """Test a judge password gates scoring."""
        group = await system.groups.create_group(
            admin, "Locked", scoring_public=False, judge_password="pw"
        )
        assert group.scoring_access.mode == "password"
        assert group.scoring_access.has_password

    async def test_non_admin_rejected(self, system):
        """Test plain users cannot create groups."""
        with pytest.raises(NotAuthorized):
            await system.groups.create_group(Caller(user_id="user-1"), "Nope")

    async def test_anonymous_rejected(self, system):
        """Test anonymous callers must sign in first."""
        with pytest.raises(NotAuthenticated):
            await system.groups.create_group(Caller.anonymous(), "Nope")


class TestUpdateGroup:
    """Tests for group updates."""

    async def test_update_fields(self, system, admin):
        """Test plain fields are patched and None is ignored."""
        group = await system.groups.create_group(admin, "Demo", description="old")
        updated = await system.groups.update_group(
            admin, group.id, name="Renamed", description=None
        )
        assert updated.name == "Renamed"
        assert updated.description == "old"
        # Slug stays stable across renames
        assert updated.slug == "demo"

    async def test_clear_password_without_flag(self, system, admin):
        """Test clearing the judge password leaves scoring admin only."""
        group = await system.groups.create_group(admin, "Demo", judge_password="pw")
        updated = await system.groups.update_group(admin, group.id, judge_password="")
        assert updated.scoring_access.mode == "admin_only"
        assert not await system.groups.validate_password(group.id, "pw")

    async def test_dates_set_and_cleared(self, system, admin, clock):
        """Test dates can be set and explicitly cleared."""
        group = await system.groups.create_group(admin, "Demo")
        end = clock.now + timedelta(days=3)
        updated = await system.groups.update_group(admin, group.id, end_date=end)
        assert updated.end_date == end
        cleared = await system.groups.update_group(admin, group.id, clear_end_date=True)
        assert cleared.end_date is None

    async def test_unknown_field_rejected(self, system, admin):
        """Test fields outside the editable set raise ValueError."""
        group = await system.groups.create_group(admin, "Demo")
        with pytest.raises(ValueError, match="Unknown group fields"):
            await system.groups.update_group(admin, group.id, slug="other")

    async def test_bad_layout_rejected(self, system, admin):
        """Test the page layout must be a known value."""
        group = await system.groups.create_group(admin, "Demo")
        with pytest.raises(ValueError, match="submission_page_layout"):
            await system.groups.update_group(admin, group.id, submission_page_layout="grid")

    async def test_missing_group(self, system, admin):
        """Test updating an unknown group raises GroupNotFound."""
        with pytest.raises(GroupNotFound):
            await system.groups.update_group(admin, "missing", name="x")


class TestPasswords:
    """Tests for the three password checks."""

    async def test_validate_passwords(self, system, admin):
        """Test each surface checks its own password."""
        group = await system.groups.create_group(
            admin,
            "Demo",
            judge_password="judge",
            submission_page_password="intake",
            results_password="results",
        )
        assert await system.groups.validate_password(group.id, "judge")
        assert not await system.groups.validate_password(group.id, "intake")
        assert await system.groups.validate_submission_page_password(group.id, "intake")
        assert await system.groups.validate_results_password(group.id, "results")
        assert not await system.groups.validate_results_password(group.id, "judge")

    async def test_open_surface_has_no_password(self, system, admin):
        """Test validation is False when the surface has no password."""
        group = await system.groups.create_group(admin, "Demo")
        assert not await system.groups.validate_password(group.id, "anything")

    async def test_unknown_group_is_false(self, system):
        """Test validation never raises for unknown groups."""
        assert not await system.groups.validate_password("missing", "pw")


class TestDeleteGroup:
    """Tests for cascading group deletion."""

    async def test_delete_removes_everything(self, system, admin, demo):
        """Test scores, judges, links, statuses, notes and criteria go with the group."""
        await system.scores.submit_score(demo.session_id, "story-1", demo.criteria_ids[0], 4)
        await system.notes.add_note(demo.session_id, "story-1", "Looks good")

        await system.groups.delete_group(admin, demo.group_id)

        with pytest.raises(GroupNotFound):
            await system.groups.get_group(admin, demo.group_id)
        assert await system.judges.get_session(demo.session_id) is None
        assert await system.status.get_story_statuses("story-1") == []
        assert await system.notes.get_notes(demo.group_id, "story-1") == []
        assert await system.criteria.get_criterion(demo.criteria_ids[0]) is None

    async def test_delete_leaves_other_groups(self, system, admin, demo):
        """Test deletion is scoped to one group."""
        other = await system.groups.create_group(admin, "Other")
        await system.submissions.add_submissions(admin, other.id, ["story-1"])

        await system.groups.delete_group(admin, demo.group_id)

        statuses = await system.status.get_story_statuses("story-1")
        assert [s.group_id for s in statuses] == [other.id]


class TestAdminReads:
    """Tests for admin group listings."""

    async def test_list_groups_newest_first_with_counts(self, system, admin, catalog, clock):
        """Test ordering and that only valid submissions are counted."""
        first = await system.groups.create_group(admin, "First")
        clock.advance(minutes=1)
        second = await system.groups.create_group(admin, "Second")
        await system.submissions.add_submissions(admin, first.id, ["story-1", "story-2"])
        await system.judges.register(first.id, "Judge One")
        catalog.add(
            ContentInfo(id="story-2", title="Beta App", slug="beta-app", is_archived=True)
        )

        groups = await system.groups.list_groups(admin)

        assert [g.id for g in groups] == [second.id, first.id]
        assert groups[1].submission_count == 1
        assert groups[1].judge_count == 1

    async def test_get_group_includes_criteria(self, system, admin, demo):
        """Test details carry criteria in order."""
        details = await system.groups.get_group(admin, demo.group_id)
        assert [c.question for c in details.criteria] == ["C1", "C2"]
        assert details.submission_count == 1
        assert details.judge_count == 1

    async def test_get_group_by_slug(self, system, admin, demo):
        """Test slug lookup returns None for unknown slugs."""
        found = await system.groups.get_group_by_slug(admin, "demo")
        assert found.id == demo.group_id
        assert await system.groups.get_group_by_slug(admin, "nope") is None


class TestPublicReads:
    """Tests for public group pages."""

    async def test_public_group(self, system, admin):
        """Test the judge entry page shows the scoring mode only."""
        await system.groups.create_group(admin, "Demo", judge_password="pw")
        public = await system.groups.get_public_group("demo")
        assert public.scoring_mode == "password"
        assert public.has_judge_password
        assert "password_hash" not in public.model_dump()

    async def test_inactive_hidden_from_public(self, system, admin):
        """Test inactive groups are only visible to admins."""
        await system.groups.create_group(admin, "Demo", is_active=False)
        assert await system.groups.get_public_group("demo") is None
        assert await system.groups.get_public_group("demo", Caller(user_id="u1")) is None
        assert (await system.groups.get_public_group("demo", admin)).slug == "demo"

    async def test_results_group(self, system, admin):
        """Test the results header reports the results mode."""
        await system.groups.create_group(admin, "Demo", results_password="pw")
        results = await system.groups.get_public_group_for_results("demo")
        assert results.results_mode == "password"
        assert results.has_results_password
        assert await system.groups.get_public_group_for_results("nope") is None

    async def test_submission_page(self, system, admin):
        """Test the intake page needs the custom page flag."""
        group = await system.groups.create_group(admin, "Demo")
        assert await system.groups.get_submission_page("demo") is None

        await system.groups.update_group(
            admin,
            group.id,
            has_custom_submission_page=True,
            submission_page_layout="one-third",
            submission_page_links=[{"label": "Rules", "url": "https://example.com/rules"}],
        )
        page = await system.groups.get_submission_page("demo")
        assert page.title == "Demo"
        assert page.page_description == "Submit your app to Demo"
        assert page.layout == "one-third"
        assert page.links[0]["label"] == "Rules"

    async def test_admin_only_intake_hides_page(self, system, admin):
        """Test an admin-only intake surface has no public page."""
        group = await system.groups.create_group(admin, "Demo", intake_public=False)
        await system.groups.update_group(admin, group.id, has_custom_submission_page=True)
        assert await system.groups.get_submission_page("demo") is None


class TestLegacyImport:
    """Tests for legacy record normalization."""

    def test_normalize_password_and_dates(self):
        """Test base64 passwords become hashes and ms epochs become datetimes."""
        data = normalize_legacy_group(
            {
                "name": " Legacy ",
                "isPublic": False,
                "judgePassword": _b64("judge"),
                "resultsIsPublic": True,
                "startDate": 1767225600000,
                "hasCustomSubmissionPage": True,
            }
        )
        assert data["name"] == "Legacy"
        assert data["scoring_access"]["mode"] == "password"
        assert data["results_access"] == {"mode": "open"}
        assert data["intake_access"] == {"mode": "open"}
        assert data["start_date"] == datetime(2026, 1, 1)
        assert data["end_date"] is None
        assert data["has_custom_submission_page"]

    def test_old_password_key(self):
        """Test older records keep the judge password under ``password``."""
        data = normalize_legacy_group({"name": "Old", "password": _b64("pw")})
        assert data["scoring_access"]["mode"] == "password"

    def test_undecodable_password_is_admin_only(self):
        """Test garbage legacy passwords lock the surface."""
        data = normalize_legacy_group({"name": "Bad", "isPublic": True, "judgePassword": "%%%"})
        assert data["scoring_access"] == {"mode": "admin_only"}

    async def test_import_legacy_groups(self, system, admin):
        """Test imported groups are stored and their passwords still work."""
        imported = await system.groups.import_legacy_groups(
            admin,
            [
                {"name": "Legacy", "slug": "legacy", "judgePassword": _b64("judge")},
                {"name": "Legacy", "isPublic": True},
            ],
        )
        assert imported[0].slug == "legacy"
        assert imported[1].slug != "legacy"
        assert imported[0].created_by == "admin-1"
        assert await system.groups.validate_password(imported[0].id, "judge")
        assert imported[1].scoring_access.mode == "open"
