import uuid
from datetime import datetime
from typing import Any

from sqlalchemy import Column, DateTime
from sqlmodel import JSON, Field, SQLModel

from showcase_judging.core.clock import utcnow
from showcase_judging.models.access import AdminOnlyAccess, OpenAccess, PasswordAccess, parse_policy


class JudgingGroup(SQLModel, table=True):
    """A named contest scope with its own criteria, judges and submissions."""

    __tablename__ = "judging_groups"

    id: str = Field(default_factory=lambda: str(uuid.uuid4()), primary_key=True)
    name: str
    slug: str = Field(unique=True, index=True)
    description: str | None = None
    scoring_access: dict[str, Any] = Field(default_factory=dict, sa_column=Column(JSON))
    intake_access: dict[str, Any] = Field(default_factory=dict, sa_column=Column(JSON))
    results_access: dict[str, Any] = Field(default_factory=dict, sa_column=Column(JSON))
    is_active: bool = True
    start_date: datetime | None = Field(default=None, sa_type=DateTime(timezone=False))
    end_date: datetime | None = Field(default=None, sa_type=DateTime(timezone=False))
    created_by: str
    created_at: datetime = Field(default_factory=utcnow, sa_type=DateTime(timezone=False))
    # Custom submission intake page
    has_custom_submission_page: bool = False
    submission_page_title: str | None = None
    submission_page_description: str | None = None
    submission_page_layout: str = "two-column"
    submission_page_links: list[dict[str, str]] = Field(
        default_factory=list, sa_column=Column(JSON)
    )
    submission_form_title: str | None = None
    submission_form_subtitle: str | None = None

    @property
    def scoring_policy(self) -> OpenAccess | PasswordAccess | AdminOnlyAccess:
        return parse_policy(self.scoring_access)

    @property
    def intake_policy(self) -> OpenAccess | PasswordAccess | AdminOnlyAccess:
        return parse_policy(self.intake_access)

    @property
    def results_policy(self) -> OpenAccess | PasswordAccess | AdminOnlyAccess:
        return parse_policy(self.results_access)

    def window_state(self, now: datetime) -> str:
        """Return "inactive", "not_started", "ended" or "open" for ``now``."""
        if not self.is_active:
            return "inactive"
        if self.start_date is not None and now < self.start_date:
            return "not_started"
        if self.end_date is not None and now > self.end_date:
            return "ended"
        return "open"
