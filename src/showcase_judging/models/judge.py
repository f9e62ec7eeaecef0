import uuid
from datetime import datetime

from sqlalchemy import DateTime
from sqlmodel import Field, SQLModel, UniqueConstraint

from showcase_judging.core.clock import utcnow


class Judge(SQLModel, table=True):
    """A session-authenticated participant scoring within one group."""

    __tablename__ = "judges"
    __table_args__ = (UniqueConstraint("group_id", "name", name="uq_judge_group_name"),)

    id: str = Field(default_factory=lambda: str(uuid.uuid4()), primary_key=True)
    group_id: str = Field(foreign_key="judging_groups.id", index=True)
    name: str
    email: str | None = None
    session_id: str = Field(unique=True, index=True)
    last_active_at: datetime = Field(default_factory=utcnow, sa_type=DateTime(timezone=False))
    user_id: str | None = Field(default=None, index=True)
    created_at: datetime = Field(default_factory=utcnow, sa_type=DateTime(timezone=False))
