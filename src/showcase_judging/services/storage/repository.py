"""Shared async repository helpers for SQLModel session work."""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from datetime import datetime
from typing import TYPE_CHECKING, TypeVar

import structlog
from sqlalchemy.exc import IntegrityError
from sqlmodel import Session

from showcase_judging.core.clock import Clock, utcnow

if TYPE_CHECKING:
    from sqlalchemy import Engine

logger = structlog.get_logger()

T = TypeVar("T")


class AsyncRepository:
    """Wrap sync SQLModel session work for async callers.

    Every call to ``_run_session`` is one transaction: the function runs
    inside a fresh Session, which is committed on return and rolled back if
    the function raises.
    """

    def __init__(self, engine: Engine, clock: Clock | None = None) -> None:
        self._engine = engine
        self._clock = clock or utcnow

    def _now(self) -> datetime:
        return self._clock()

    async def _run_session(self, fn: Callable[[Session], T]) -> T:
        """Run a sync function inside a Session on a worker thread."""

        def _run() -> T:
            with Session(self._engine, expire_on_commit=False) as session:
                try:
                    result = fn(session)
                    session.commit()
                except Exception:
                    session.rollback()
                    raise
                return result

        return await asyncio.to_thread(_run)

    async def _run_upsert(self, fn: Callable[[Session], T]) -> T:
        """Run a select-then-insert transaction, retrying once on a unique clash.

        A concurrent writer may insert the same natural key between our
        select and our insert. The retry runs in a fresh transaction, sees
        the committed row and takes the update branch.
        """
        try:
            return await self._run_session(fn)
        except IntegrityError as exc:
            logger.info("upsert_retry", reason=str(exc.orig))
            return await self._run_session(fn)
