import uuid
from datetime import datetime

from sqlalchemy import DateTime
from sqlmodel import Field, SQLModel, UniqueConstraint

from showcase_judging.core.clock import utcnow


class Score(SQLModel, table=True):
    """One judge's rating of one submission against one criterion."""

    __tablename__ = "judge_scores"
    __table_args__ = (
        UniqueConstraint("judge_id", "story_id", "criteria_id", name="uq_score_triple"),
    )

    id: str = Field(default_factory=lambda: str(uuid.uuid4()), primary_key=True)
    judge_id: str = Field(foreign_key="judges.id", index=True)
    group_id: str = Field(index=True)
    story_id: str = Field(index=True)
    criteria_id: str = Field(foreign_key="judging_criteria.id", index=True)
    score: int
    comments: str | None = None
    is_hidden: bool = False
    created_at: datetime = Field(default_factory=utcnow, sa_type=DateTime(timezone=False))
    updated_at: datetime = Field(default_factory=utcnow, sa_type=DateTime(timezone=False))
