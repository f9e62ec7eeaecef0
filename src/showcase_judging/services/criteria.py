"""Scoring criteria per judging group."""

from __future__ import annotations

from collections.abc import Iterable, Sequence

import structlog
from sqlmodel import Session, select

from showcase_judging.core.errors import (
    CriterionGroupMismatch,
    CriterionNotFound,
    DuplicateReferenceConflict,
    GroupInactive,
)
from showcase_judging.models import Criterion, Score
from showcase_judging.models.views import CriterionInput, CriterionView
from showcase_judging.services.collaborators import Caller, require_admin
from showcase_judging.services.lookups import get_group, group_criteria
from showcase_judging.services.storage import AsyncRepository

logger = structlog.get_logger()


def _view(criterion: Criterion) -> CriterionView:
    return CriterionView(
        id=criterion.id,
        question=criterion.question,
        description=criterion.description,
        weight=criterion.weight,
        order=criterion.order,
    )


def _has_scores(session: Session, criteria_id: str) -> bool:
    return session.exec(select(Score).where(Score.criteria_id == criteria_id)).first() is not None


class CriteriaCatalog(AsyncRepository):
    """Ordered, weighted scoring questions for each group."""

    async def list_by_group(self, caller: Caller, group_id: str) -> list[CriterionView]:
        require_admin(caller, "list criteria")

        def _list(session: Session) -> list[CriterionView]:
            get_group(session, group_id)
            return [_view(c) for c in group_criteria(session, group_id)]

        return await self._run_session(_list)

    async def get_group_criteria(self, group_id: str) -> list[CriterionView]:
        """Criteria shown to judges; the group must be active."""

        def _list(session: Session) -> list[CriterionView]:
            group = get_group(session, group_id)
            if not group.is_active:
                raise GroupInactive()
            return [_view(c) for c in group_criteria(session, group_id)]

        return await self._run_session(_list)

    async def get_criterion(self, criteria_id: str) -> CriterionView | None:
        def _get(session: Session) -> CriterionView | None:
            criterion = session.get(Criterion, criteria_id)
            return _view(criterion) if criterion is not None else None

        return await self._run_session(_get)

    async def save_criteria(
        self, caller: Caller, group_id: str, items: Sequence[CriterionInput]
    ) -> list[CriterionView]:
        """Replace the group's criteria with ``items``.

        Items with a known id are patched, items without an id are inserted
        and ids that do not belong to the group are ignored. Existing
        criteria missing from ``items`` are deleted, unless any score still
        points at one, in which case nothing is saved.
        """
        require_admin(caller, "edit criteria")

        def _save(session: Session) -> list[CriterionView]:
            get_group(session, group_id)
            existing = {c.id: c for c in group_criteria(session, group_id)}
            kept = {item.id for item in items if item.id in existing}

            removed = [c for cid, c in existing.items() if cid not in kept]
            for criterion in removed:
                if _has_scores(session, criterion.id):
                    raise DuplicateReferenceConflict(criterion.question)

            for item in items:
                weight = item.weight or 1.0
                if item.id is None:
                    session.add(
                        Criterion(
                            group_id=group_id,
                            question=item.question,
                            description=item.description,
                            weight=weight,
                            order=item.order,
                        )
                    )
                elif item.id in existing:
                    criterion = existing[item.id]
                    criterion.question = item.question
                    criterion.description = item.description
                    criterion.weight = weight
                    criterion.order = item.order
                    session.add(criterion)

            for criterion in removed:
                session.delete(criterion)
            session.flush()

            logger.info(
                "criteria_saved",
                group_id=group_id,
                count=len(items),
                removed=len(removed),
            )
            return [_view(c) for c in group_criteria(session, group_id)]

        return await self._run_session(_save)

    async def delete_criterion(self, caller: Caller, criteria_id: str) -> None:
        require_admin(caller, "delete criteria")

        def _delete(session: Session) -> None:
            criterion = session.get(Criterion, criteria_id)
            if criterion is None:
                raise CriterionNotFound(criteria_id)
            if _has_scores(session, criteria_id):
                raise DuplicateReferenceConflict(criterion.question)
            session.delete(criterion)

        await self._run_session(_delete)
        logger.info("criterion_deleted", criteria_id=criteria_id)

    async def reorder(
        self, caller: Caller, group_id: str, order: Iterable[tuple[str, int]]
    ) -> None:
        """Set the ``order`` of each listed criterion; nothing else changes."""
        require_admin(caller, "reorder criteria")
        pairs = list(order)

        def _reorder(session: Session) -> None:
            get_group(session, group_id)
            existing = {c.id: c for c in group_criteria(session, group_id)}
            for criteria_id, _ in pairs:
                if criteria_id not in existing:
                    raise CriterionGroupMismatch(criteria_id)
            for criteria_id, position in pairs:
                existing[criteria_id].order = position
                session.add(existing[criteria_id])

        await self._run_session(_reorder)
