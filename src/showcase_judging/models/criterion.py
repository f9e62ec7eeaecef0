import uuid

from sqlmodel import Field, SQLModel


class Criterion(SQLModel, table=True):
    """One weighted scoring question within a group."""

    __tablename__ = "judging_criteria"

    id: str = Field(default_factory=lambda: str(uuid.uuid4()), primary_key=True)
    group_id: str = Field(foreign_key="judging_groups.id", index=True)
    question: str
    description: str | None = None
    weight: float = 1.0
    order: int = 0
