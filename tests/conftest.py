"""Shared fixtures: an in-memory judging system with a controllable clock."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta

import pytest

from showcase_judging.core.config import JudgingConfig
from showcase_judging.models.views import CriterionInput
from showcase_judging.services.collaborators import (
    Caller,
    ContentInfo,
    InMemoryContentCatalog,
    RecordingAlertSink,
)
from showcase_judging.services.storage import create_db_engine
from showcase_judging.system import JudgingSystem

START = datetime(2026, 3, 1, 12, 0, 0)


class FakeClock:
    """Clock that only moves when told to."""

    def __init__(self, start: datetime = START) -> None:
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> None:
        self.now += timedelta(**kwargs)


@dataclass
class DemoGroup:
    group_id: str
    criteria_ids: list[str]
    judge_id: str
    session_id: str
    story_id: str = "story-1"


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def catalog() -> InMemoryContentCatalog:
    return InMemoryContentCatalog(
        [
            ContentInfo(id="story-1", title="Alpha App", slug="alpha-app", owner_id="owner-1"),
            ContentInfo(id="story-2", title="Beta App", slug="beta-app", owner_id="owner-2"),
            ContentInfo(id="story-3", title="Gamma App", slug="gamma-app"),
        ]
    )


@pytest.fixture
def alerts() -> RecordingAlertSink:
    return RecordingAlertSink()


@pytest.fixture
def config() -> JudgingConfig:
    return JudgingConfig(database_url="sqlite://")


@pytest.fixture
def system(config, catalog, alerts, clock):
    engine = create_db_engine(config.database_url)
    judging = JudgingSystem(config, engine, catalog, alerts, clock)
    yield judging
    judging.close()


@pytest.fixture
def admin() -> Caller:
    return Caller.admin("admin-1")


@pytest.fixture
async def demo(system: JudgingSystem, admin: Caller) -> DemoGroup:
    """Group "Demo" with criteria C1, C2, story-1 linked and judge J1 registered."""
    group = await system.groups.create_group(admin, "Demo")
    criteria = await system.criteria.save_criteria(
        admin,
        group.id,
        [
            CriterionInput(question="C1", order=0),
            CriterionInput(question="C2", order=1),
        ],
    )
    await system.submissions.add_submissions(admin, group.id, ["story-1"])
    registration = await system.judges.register(group.id, "J1")
    return DemoGroup(
        group_id=group.id,
        criteria_ids=[c.id for c in criteria],
        judge_id=registration.judge_id,
        session_id=registration.session_id,
    )
