"""Narrow interfaces to the systems judging depends on.

Identity, the story catalog, alerts and note counts live outside this
package. Services only see the small protocols defined here; the in-memory
implementations back the CLI and the tests.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import Any, Protocol

import structlog
from pydantic import BaseModel

from showcase_judging.core.errors import NotAuthenticated, NotAuthorized

logger = structlog.get_logger()


@dataclass(frozen=True)
class Caller:
    """Who is calling, as resolved by the identity provider."""

    user_id: str | None = None
    is_admin: bool = False

    @classmethod
    def anonymous(cls) -> Caller:
        return cls()

    @classmethod
    def admin(cls, user_id: str) -> Caller:
        return cls(user_id=user_id, is_admin=True)

    @property
    def is_authenticated(self) -> bool:
        return self.user_id is not None


def require_admin(caller: Caller | None, action: str | None = None) -> str:
    """Return the admin's user id or raise NotAuthenticated / NotAuthorized."""
    if caller is None or not caller.is_authenticated:
        raise NotAuthenticated()
    if not caller.is_admin:
        raise NotAuthorized(action)
    return caller.user_id  # type: ignore[return-value]


def is_admin(caller: Caller | None) -> bool:
    return caller is not None and caller.is_authenticated and caller.is_admin


class ContentInfo(BaseModel):
    """Display data for one story in the content catalog."""

    id: str
    title: str
    slug: str
    url: str | None = None
    description: str | None = None
    owner_id: str | None = None
    is_hidden: bool = False
    is_archived: bool = False
    status: str = "approved"

    @property
    def is_valid_for_judging(self) -> bool:
        """False for hidden, archived or rejected stories."""
        return not (self.is_hidden or self.is_archived or self.status == "rejected")


class ContentCatalog(Protocol):
    async def get_many(self, story_ids: Iterable[str]) -> dict[str, ContentInfo]: ...


class AlertSink(Protocol):
    async def notify(self, event: str, **payload: Any) -> None: ...


class NotesCounter(Protocol):
    async def count_by_judge(self, group_id: str) -> dict[str, int]: ...


class InMemoryContentCatalog:
    """Content catalog backed by a dict, used by the CLI and tests."""

    def __init__(self, items: Iterable[ContentInfo] = ()) -> None:
        self._items: dict[str, ContentInfo] = {item.id: item for item in items}

    def add(self, item: ContentInfo) -> None:
        self._items[item.id] = item

    def remove(self, story_id: str) -> None:
        self._items.pop(story_id, None)

    async def get_many(self, story_ids: Iterable[str]) -> dict[str, ContentInfo]:
        return {sid: self._items[sid] for sid in set(story_ids) if sid in self._items}


class LoggingAlertSink:
    """Alert sink that only logs events."""

    async def notify(self, event: str, **payload: Any) -> None:
        logger.info("alert", alert_event=event, **payload)


@dataclass
class RecordingAlertSink:
    """Alert sink that keeps every event, for tests."""

    events: list[tuple[str, dict[str, Any]]] = field(default_factory=list)

    async def notify(self, event: str, **payload: Any) -> None:
        self.events.append((event, payload))
