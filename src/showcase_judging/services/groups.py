"""Judging group lifecycle and access control."""

from __future__ import annotations

from collections import Counter
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

import structlog
from sqlmodel import Session, col, select

from showcase_judging.core.clock import Clock, as_utc_naive, timestamp_suffix
from showcase_judging.core.config import JudgingConfig
from showcase_judging.core.errors import GroupNotFound
from showcase_judging.core.security import decode_legacy_password, hash_password
from showcase_judging.core.slug import SlugGenerator
from showcase_judging.models import (
    AdminOnlyAccess,
    Criterion,
    GroupSubmission,
    Judge,
    JudgingGroup,
    OpenAccess,
    PasswordAccess,
    Score,
    SubmissionNote,
    SubmissionStatus,
    build_policy,
    describe_policy,
    policy_allows,
)
from showcase_judging.models.views import (
    AccessView,
    CriterionView,
    GroupDetails,
    GroupSummary,
    PublicGroup,
    PublicResultsGroup,
    SubmissionPage,
)
from showcase_judging.services.collaborators import (
    Caller,
    ContentCatalog,
    is_admin,
    require_admin,
)
from showcase_judging.services.lookups import get_group, group_by_slug, group_criteria
from showcase_judging.services.storage import AsyncRepository

if TYPE_CHECKING:
    from sqlalchemy import Engine

logger = structlog.get_logger()

Policy = OpenAccess | PasswordAccess | AdminOnlyAccess

_UPDATABLE_FIELDS = (
    "name",
    "description",
    "is_active",
    "has_custom_submission_page",
    "submission_page_title",
    "submission_page_description",
    "submission_page_layout",
    "submission_page_links",
    "submission_form_title",
    "submission_form_subtitle",
)
_PAGE_LAYOUTS = ("two-column", "one-third")


def resolve_policy(current: Policy, is_public: bool | None, password: str | None) -> Policy:
    """Apply an admin form update to one surface policy.

    ``None`` leaves a value unchanged and ``""`` clears the password. A
    password always wins over the public flag; clearing it falls back to the
    flag, or admin-only when no flag was sent.
    """
    if password is None and is_public is None:
        return current
    if password:
        return PasswordAccess(password_hash=hash_password(password))
    if password == "":
        return build_policy(bool(is_public))
    if isinstance(current, PasswordAccess):
        return current
    return build_policy(bool(is_public))


def _legacy_policy(is_public: bool, encoded_password: str | None, group_name: str) -> Policy:
    if not encoded_password:
        return build_policy(is_public)
    plain = decode_legacy_password(encoded_password)
    if plain is None:
        logger.warning("legacy_password_undecodable", group=group_name)
        return AdminOnlyAccess()
    return PasswordAccess(password_hash=hash_password(plain))


def _legacy_datetime(value: Any) -> datetime | None:
    if value is None:
        return None
    if isinstance(value, datetime):
        return as_utc_naive(value)
    # Millisecond epoch values
    return datetime.fromtimestamp(float(value) / 1000, tz=UTC).replace(tzinfo=None)


def normalize_legacy_group(record: dict[str, Any]) -> dict[str, Any]:
    """Convert an exported legacy group record into JudgingGroup fields.

    Legacy records carry loose booleans plus base64-encoded passwords, and
    older ones keep the judge password under ``password``. This is the only
    place those field names are understood.
    """
    name = str(record["name"]).strip()
    judge_password = record.get("judgePassword") or record.get("password")
    return {
        "name": name,
        "slug": record.get("slug"),
        "description": record.get("description"),
        "is_active": bool(record.get("isActive", True)),
        "start_date": _legacy_datetime(record.get("startDate")),
        "end_date": _legacy_datetime(record.get("endDate")),
        "created_by": str(record.get("createdBy") or "legacy-import"),
        "scoring_access": _legacy_policy(
            bool(record.get("isPublic", False)), judge_password, name
        ).model_dump(),
        "intake_access": _legacy_policy(
            True, record.get("submissionPagePassword"), name
        ).model_dump(),
        "results_access": _legacy_policy(
            bool(record.get("resultsIsPublic", False)), record.get("resultsPassword"), name
        ).model_dump(),
        "has_custom_submission_page": bool(record.get("hasCustomSubmissionPage", False)),
        "submission_page_title": record.get("submissionPageTitle"),
        "submission_page_description": record.get("submissionPageDescription"),
        "submission_page_layout": record.get("submissionPageLayout") or "two-column",
        "submission_page_links": list(record.get("submissionPageLinks") or []),
        "submission_form_title": record.get("submissionFormTitle"),
        "submission_form_subtitle": record.get("submissionFormSubtitle"),
    }


def _access_view(policy: Policy) -> AccessView:
    return AccessView(**describe_policy(policy))


def _summary(group: JudgingGroup, submission_count: int, judge_count: int) -> GroupSummary:
    return GroupSummary(
        id=group.id,
        name=group.name,
        slug=group.slug,
        description=group.description,
        is_active=group.is_active,
        start_date=group.start_date,
        end_date=group.end_date,
        created_by=group.created_by,
        created_at=group.created_at,
        scoring_access=_access_view(group.scoring_policy),
        intake_access=_access_view(group.intake_policy),
        results_access=_access_view(group.results_policy),
        has_custom_submission_page=group.has_custom_submission_page,
        submission_count=submission_count,
        judge_count=judge_count,
    )


class GroupAccessControl(AsyncRepository):
    """Create, update and delete judging groups and check their passwords."""

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
        self._slugs = SlugGenerator(max_length=config.slug_max_length)

    # ==================== Admin writes ====================

    async def create_group(
        self,
        caller: Caller,
        name: str,
        *,
        description: str | None = None,
        scoring_public: bool = True,
        judge_password: str | None = None,
        intake_public: bool = True,
        submission_page_password: str | None = None,
        results_public: bool = False,
        results_password: str | None = None,
        is_active: bool = True,
        start_date: datetime | None = None,
        end_date: datetime | None = None,
    ) -> GroupSummary:
        """Create a group with a unique slug derived from ``name``."""
        admin_id = require_admin(caller, "create judging groups")
        now = self._now()

        def _create(session: Session) -> GroupSummary:
            slug = self._unique_slug(session, name, now)
            group = JudgingGroup(
                name=name.strip(),
                slug=slug,
                description=description,
                scoring_access=build_policy(scoring_public, judge_password).model_dump(),
                intake_access=build_policy(intake_public, submission_page_password).model_dump(),
                results_access=build_policy(results_public, results_password).model_dump(),
                is_active=is_active,
                start_date=as_utc_naive(start_date),
                end_date=as_utc_naive(end_date),
                created_by=admin_id,
                created_at=now,
            )
            session.add(group)
            session.flush()
            logger.info("group_created", group_id=group.id, slug=slug)
            return _summary(group, 0, 0)

        return await self._run_session(_create)

    async def update_group(
        self,
        caller: Caller,
        group_id: str,
        *,
        scoring_public: bool | None = None,
        judge_password: str | None = None,
        intake_public: bool | None = None,
        submission_page_password: str | None = None,
        results_public: bool | None = None,
        results_password: str | None = None,
        start_date: datetime | None = None,
        end_date: datetime | None = None,
        clear_start_date: bool = False,
        clear_end_date: bool = False,
        **fields: Any,
    ) -> GroupSummary:
        """Patch a group. Fields left as None keep their current value."""
        require_admin(caller, "update judging groups")
        unknown = set(fields) - set(_UPDATABLE_FIELDS)
        if unknown:
            msg = f"Unknown group fields: {', '.join(sorted(unknown))}"
            raise ValueError(msg)
        layout = fields.get("submission_page_layout")
        if layout is not None and layout not in _PAGE_LAYOUTS:
            msg = f"submission_page_layout must be one of {_PAGE_LAYOUTS}"
            raise ValueError(msg)

        def _update(session: Session) -> GroupSummary:
            group = get_group(session, group_id)
            for key, value in fields.items():
                if value is not None:
                    setattr(group, key, value)

            group.scoring_access = resolve_policy(
                group.scoring_policy, scoring_public, judge_password
            ).model_dump()
            group.intake_access = resolve_policy(
                group.intake_policy, intake_public, submission_page_password
            ).model_dump()
            group.results_access = resolve_policy(
                group.results_policy, results_public, results_password
            ).model_dump()

            if clear_start_date:
                group.start_date = None
            elif start_date is not None:
                group.start_date = as_utc_naive(start_date)
            if clear_end_date:
                group.end_date = None
            elif end_date is not None:
                group.end_date = as_utc_naive(end_date)

            session.add(group)
            session.flush()
            logger.info("group_updated", group_id=group_id)
            return _summary(group, *self._counts(session, group_id))

        return await self._run_session(_update)

    async def delete_group(self, caller: Caller, group_id: str) -> None:
        """Delete a group and everything that belongs to it.

        Rows go in dependency order (scores, judges, submission links with
        their statuses and notes, criteria, then the group) and each step is
        flushed before the next.
        """
        require_admin(caller, "delete judging groups")

        def _delete(session: Session) -> dict[str, int]:
            group = get_group(session, group_id)
            removed: dict[str, int] = {}
            steps = (
                ("scores", select(Score).where(Score.group_id == group_id)),
                ("judges", select(Judge).where(Judge.group_id == group_id)),
                (
                    "submissions",
                    select(GroupSubmission).where(GroupSubmission.group_id == group_id),
                ),
                (
                    "statuses",
                    select(SubmissionStatus).where(SubmissionStatus.group_id == group_id),
                ),
                ("notes", select(SubmissionNote).where(SubmissionNote.group_id == group_id)),
                ("criteria", select(Criterion).where(Criterion.group_id == group_id)),
            )
            for label, statement in steps:
                rows = session.exec(statement).all()
                for row in rows:
                    session.delete(row)
                session.flush()
                removed[label] = len(rows)

            session.delete(group)
            session.flush()
            return removed

        removed = await self._run_session(_delete)
        logger.info("group_deleted", group_id=group_id, **removed)

    async def import_legacy_groups(
        self, caller: Caller, records: list[dict[str, Any]]
    ) -> list[GroupSummary]:
        """Normalize and store legacy group records in one transaction."""
        admin_id = require_admin(caller, "import judging groups")
        normalized = [normalize_legacy_group(record) for record in records]
        now = self._now()

        def _import(session: Session) -> list[GroupSummary]:
            imported = []
            for data in normalized:
                wanted = data.pop("slug") or data["name"]
                if data["created_by"] == "legacy-import":
                    data["created_by"] = admin_id
                slug = self._unique_slug(session, wanted, now)
                group = JudgingGroup(slug=slug, created_at=now, **data)
                session.add(group)
                session.flush()
                imported.append(_summary(group, 0, 0))
            return imported

        imported = await self._run_session(_import)
        logger.info("legacy_groups_imported", count=len(imported))
        return imported

    # ==================== Password checks ====================

    async def validate_password(self, group_id: str, password: str) -> bool:
        """Check the judge scoring password. Never raises on mismatch."""
        return await self._check_password(group_id, password, "scoring")

    async def validate_submission_page_password(self, group_id: str, password: str) -> bool:
        """Check the submission intake page password."""
        return await self._check_password(group_id, password, "intake")

    async def validate_results_password(self, group_id: str, password: str) -> bool:
        """Check the public results page password."""
        return await self._check_password(group_id, password, "results")

    async def _check_password(self, group_id: str, password: str, surface: str) -> bool:
        def _check(session: Session) -> bool:
            group = session.get(JudgingGroup, group_id)
            if group is None:
                return False
            policy = getattr(group, f"{surface}_policy")
            # Open surfaces have no password to match
            if not isinstance(policy, PasswordAccess):
                return False
            return policy_allows(policy, password)

        return await self._run_session(_check)

    # ==================== Admin reads ====================

    async def list_groups(self, caller: Caller) -> list[GroupSummary]:
        """All groups, newest first, with judge and valid submission counts."""
        require_admin(caller, "list judging groups")

        def _get(session: Session) -> tuple[list[JudgingGroup], list[GroupSubmission], Counter]:
            groups = list(
                session.exec(
                    select(JudgingGroup).order_by(col(JudgingGroup.created_at).desc())
                ).all()
            )
            links = list(session.exec(select(GroupSubmission)).all())
            judge_counts = Counter(j.group_id for j in session.exec(select(Judge)).all())
            return groups, links, judge_counts

        groups, links, judge_counts = await self._run_session(_get)
        contents = await self._catalog.get_many(link.story_id for link in links)

        valid_counts: Counter = Counter()
        for link in links:
            content = contents.get(link.story_id)
            if content is not None and content.is_valid_for_judging:
                valid_counts[link.group_id] += 1

        return [_summary(g, valid_counts[g.id], judge_counts[g.id]) for g in groups]

    async def get_group(self, caller: Caller, group_id: str) -> GroupDetails:
        """Full group details for the admin editor, criteria included."""
        require_admin(caller, "view judging groups")

        def _get(session: Session) -> tuple[JudgingGroup, list[Criterion], list[str], int]:
            group = get_group(session, group_id)
            criteria = group_criteria(session, group_id)
            story_ids = [
                link.story_id
                for link in session.exec(
                    select(GroupSubmission).where(GroupSubmission.group_id == group_id)
                ).all()
            ]
            judge_count = len(session.exec(select(Judge).where(Judge.group_id == group_id)).all())
            return group, criteria, story_ids, judge_count

        group, criteria, story_ids, judge_count = await self._run_session(_get)
        contents = await self._catalog.get_many(story_ids)
        submission_count = sum(
            1 for sid in story_ids if sid in contents and contents[sid].is_valid_for_judging
        )
        summary = _summary(group, submission_count, judge_count)
        return GroupDetails(
            **summary.model_dump(),
            submission_page_title=group.submission_page_title,
            submission_page_description=group.submission_page_description,
            submission_page_layout=group.submission_page_layout,
            submission_page_links=list(group.submission_page_links or []),
            submission_form_title=group.submission_form_title,
            submission_form_subtitle=group.submission_form_subtitle,
            criteria=[
                CriterionView(
                    id=c.id,
                    question=c.question,
                    description=c.description,
                    weight=c.weight,
                    order=c.order,
                )
                for c in criteria
            ],
        )

    async def get_group_by_slug(self, caller: Caller, slug: str) -> GroupSummary | None:
        require_admin(caller, "view judging groups")

        def _get(session: Session) -> GroupSummary | None:
            group = group_by_slug(session, slug)
            if group is None:
                return None
            return _summary(group, *self._counts(session, group.id))

        return await self._run_session(_get)

    # ==================== Public reads ====================

    async def get_public_group(self, slug: str, caller: Caller | None = None) -> PublicGroup | None:
        """Judge entry page data. Inactive groups are hidden from non-admins."""

        def _get(session: Session) -> JudgingGroup | None:
            return group_by_slug(session, slug)

        group = await self._run_session(_get)
        if group is None:
            return None
        if not group.is_active and not is_admin(caller):
            return None
        policy = group.scoring_policy
        return PublicGroup(
            id=group.id,
            name=group.name,
            slug=group.slug,
            description=group.description,
            is_active=group.is_active,
            scoring_mode=policy.mode,
            has_judge_password=isinstance(policy, PasswordAccess),
        )

    async def get_public_group_for_results(self, slug: str) -> PublicResultsGroup | None:
        """Results page header data; password checks happen separately."""

        def _get(session: Session) -> JudgingGroup | None:
            return group_by_slug(session, slug)

        group = await self._run_session(_get)
        if group is None:
            return None
        policy = group.results_policy
        return PublicResultsGroup(
            id=group.id,
            name=group.name,
            slug=group.slug,
            description=group.description,
            is_active=group.is_active,
            results_mode=policy.mode,
            has_results_password=isinstance(policy, PasswordAccess),
        )

    async def get_submission_page(self, slug: str) -> SubmissionPage | None:
        """Custom intake page data, or None when the page is disabled."""

        def _get(session: Session) -> JudgingGroup | None:
            return group_by_slug(session, slug)

        group = await self._run_session(_get)
        if group is None or not group.has_custom_submission_page:
            return None
        policy = group.intake_policy
        if isinstance(policy, AdminOnlyAccess):
            return None
        return SubmissionPage(
            id=group.id,
            name=group.name,
            slug=group.slug,
            description=group.description,
            intake_mode=policy.mode,
            has_submission_page_password=isinstance(policy, PasswordAccess),
            title=group.submission_page_title or group.name,
            page_description=(
                group.submission_page_description
                or group.description
                or f"Submit your app to {group.name}"
            ),
            layout=group.submission_page_layout or "two-column",
            links=list(group.submission_page_links or []),
            form_title=group.submission_form_title,
            form_subtitle=group.submission_form_subtitle,
        )

    # ==================== Helpers ====================

    def _unique_slug(self, session: Session, name: str, now: datetime) -> str:
        def _exists(candidate: str) -> bool:
            return group_by_slug(session, candidate) is not None

        return self._slugs.unique_slug(name, _exists, lambda: timestamp_suffix(now))

    @staticmethod
    def _counts(session: Session, group_id: str) -> tuple[int, int]:
        submissions = session.exec(
            select(GroupSubmission).where(GroupSubmission.group_id == group_id)
        ).all()
        judges = session.exec(select(Judge).where(Judge.group_id == group_id)).all()
        return len(submissions), len(judges)
