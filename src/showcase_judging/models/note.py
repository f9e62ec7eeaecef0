import uuid
from datetime import datetime

from sqlalchemy import DateTime
from sqlmodel import Field, SQLModel

from showcase_judging.core.clock import utcnow


class SubmissionNote(SQLModel, table=True):
    """Judge discussion note on a submission, optionally replying to another note."""

    __tablename__ = "submission_notes"

    id: str = Field(default_factory=lambda: str(uuid.uuid4()), primary_key=True)
    group_id: str = Field(index=True)
    story_id: str = Field(index=True)
    judge_id: str = Field(index=True)
    content: str
    reply_to_id: str | None = None
    created_at: datetime = Field(default_factory=utcnow, sa_type=DateTime(timezone=False))
