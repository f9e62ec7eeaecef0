import uuid
from datetime import datetime
from enum import StrEnum

from sqlalchemy import DateTime
from sqlmodel import Field, SQLModel, UniqueConstraint

from showcase_judging.core.clock import utcnow


class SubmissionState(StrEnum):
    PENDING = "pending"
    SKIP = "skip"
    COMPLETED = "completed"


class GroupSubmission(SQLModel, table=True):
    """Link between a judging group and a piece of content."""

    __tablename__ = "group_submissions"
    __table_args__ = (UniqueConstraint("group_id", "story_id", name="uq_group_story"),)

    id: str = Field(default_factory=lambda: str(uuid.uuid4()), primary_key=True)
    group_id: str = Field(foreign_key="judging_groups.id", index=True)
    story_id: str = Field(index=True)
    added_by: str
    added_at: datetime = Field(default_factory=utcnow, sa_type=DateTime(timezone=False))


class SubmissionStatus(SQLModel, table=True):
    """Derived judging state of one submission within one group."""

    __tablename__ = "submission_statuses"
    __table_args__ = (UniqueConstraint("group_id", "story_id", name="uq_status_group_story"),)

    id: str = Field(default_factory=lambda: str(uuid.uuid4()), primary_key=True)
    group_id: str = Field(index=True)
    story_id: str = Field(index=True)
    status: str = Field(default=SubmissionState.PENDING.value)
    # Plain ids: judge deletion resets these rather than cascading.
    assigned_judge_id: str | None = Field(default=None, index=True)
    last_updated_by: str | None = None
    last_updated_at: datetime = Field(default_factory=utcnow, sa_type=DateTime(timezone=False))
