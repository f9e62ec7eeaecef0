"""Read models returned by the judging services.

These are plain pydantic models, detached from the database session, so they
can be serialized with ``model_dump`` for CSV/JSON output.
"""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field


class AccessView(BaseModel):
    mode: str
    has_password: bool


class CriterionInput(BaseModel):
    """One row of a bulk criteria save; ``id`` is absent for new criteria."""

    id: str | None = None
    question: str = Field(min_length=1)
    description: str | None = None
    weight: float | None = None
    order: int = 0


class CriterionView(BaseModel):
    id: str
    question: str
    description: str | None = None
    weight: float
    order: int


class GroupSummary(BaseModel):
    id: str
    name: str
    slug: str
    description: str | None = None
    is_active: bool
    start_date: datetime | None = None
    end_date: datetime | None = None
    created_by: str
    created_at: datetime
    scoring_access: AccessView
    intake_access: AccessView
    results_access: AccessView
    has_custom_submission_page: bool = False
    submission_count: int = 0
    judge_count: int = 0


class GroupDetails(GroupSummary):
    submission_page_title: str | None = None
    submission_page_description: str | None = None
    submission_page_layout: str = "two-column"
    submission_page_links: list[dict[str, str]] = Field(default_factory=list)
    submission_form_title: str | None = None
    submission_form_subtitle: str | None = None
    criteria: list[CriterionView] = Field(default_factory=list)


class PublicGroup(BaseModel):
    """Group info shown on the judge entry page."""

    id: str
    name: str
    slug: str
    description: str | None = None
    is_active: bool
    scoring_mode: str
    has_judge_password: bool


class PublicResultsGroup(BaseModel):
    id: str
    name: str
    slug: str
    description: str | None = None
    is_active: bool
    results_mode: str
    has_results_password: bool


class SubmissionPage(BaseModel):
    id: str
    name: str
    slug: str
    description: str | None = None
    intake_mode: str
    has_submission_page_password: bool
    title: str
    page_description: str | None = None
    layout: str = "two-column"
    links: list[dict[str, str]] = Field(default_factory=list)
    form_title: str | None = None
    form_subtitle: str | None = None


class JudgeRegistration(BaseModel):
    judge_id: str
    session_id: str


class GroupRef(BaseModel):
    id: str
    name: str
    slug: str
    description: str | None = None
    is_active: bool
    start_date: datetime | None = None
    end_date: datetime | None = None


class JudgeSession(BaseModel):
    judge_id: str
    name: str
    email: str | None = None
    group_id: str
    last_active_at: datetime
    group: GroupRef


class SubmissionProgress(BaseModel):
    story_id: str
    story_title: str
    criteria_scored: int
    total_criteria: int
    is_complete: bool


class JudgeProgress(BaseModel):
    total_submissions: int
    total_criteria: int
    expected_scores: int
    completed_scores: int
    completion_percentage: float
    submission_progress: list[SubmissionProgress] = Field(default_factory=list)


class JudgeListEntry(BaseModel):
    id: str
    name: str
    email: str | None = None
    group_id: str
    user_id: str | None = None
    last_active_at: datetime
    created_at: datetime
    score_count: int
    completion_percentage: float


class JudgeScoreView(BaseModel):
    """A judge's own score, joined with its criterion."""

    id: str
    criteria_id: str
    score: int
    comments: str | None = None
    question: str
    description: str | None = None
    order: int


class ScoreRecord(BaseModel):
    id: str
    judge_id: str
    group_id: str
    story_id: str
    criteria_id: str
    score: int
    comments: str | None = None
    is_hidden: bool
    created_at: datetime
    updated_at: datetime


class DetailedScore(BaseModel):
    """Admin view of one score with story and criterion context."""

    id: str
    score: int
    comments: str | None = None
    is_hidden: bool
    created_at: datetime
    story_id: str
    story_title: str
    story_slug: str
    criteria_id: str
    question: str
    criteria_description: str | None = None


class StatusView(BaseModel):
    story_id: str
    story_title: str
    story_slug: str
    status: str
    assigned_judge_name: str | None = None
    last_updated_by_name: str | None = None
    last_updated_at: datetime


class JudgeStatusView(BaseModel):
    status: str
    can_judge: bool
    assigned_judge_name: str | None = None


class StoryGroupStatus(BaseModel):
    group_id: str
    group_name: str
    status: str
    assigned_judge_name: str | None = None
    last_updated_by_name: str | None = None
    last_updated_at: datetime


class SubmissionRanking(BaseModel):
    story_id: str
    story_title: str
    story_slug: str
    story_url: str | None = None
    total_score: int
    average_score: float
    score_count: int
    completion_percentage: float
    max_possible_score: int


class CriterionBreakdown(BaseModel):
    criteria_id: str
    question: str
    average_score: float
    score_count: int


class GroupScoreRollup(BaseModel):
    total_scores: int
    average_score: float | None = None
    judge_count: int
    submission_count: int
    criteria_count: int
    completion_percentage: float
    submission_rankings: list[SubmissionRanking] = Field(default_factory=list)
    criteria_breakdown: list[CriterionBreakdown] = Field(default_factory=list)


class PublicRanking(BaseModel):
    story_id: str
    story_title: str
    story_url: str | None = None
    total_score: int
    average_score: float
    score_count: int


class PublicCriterionBreakdown(BaseModel):
    criteria_id: str
    criteria_name: str
    average_score: float
    score_count: int


class PublicGroupScores(BaseModel):
    total_scores: int
    average_score: float | None = None
    judge_count: int
    submission_count: int
    criteria_count: int
    completion_percentage: float
    rankings: list[PublicRanking] = Field(default_factory=list)
    criteria_breakdown: list[PublicCriterionBreakdown] = Field(default_factory=list)


class JudgeRollupEntry(BaseModel):
    judge_id: str
    name: str
    email: str | None = None
    user_id: str | None = None
    last_active_at: datetime
    scores_count: int
    total_score: int
    average_score: float | None = None
    submissions_judged: int
    notes_count: int
    last_score_at: datetime | None = None


class JudgeScoreLine(BaseModel):
    story_id: str
    story_title: str
    criteria_id: str
    criteria_question: str
    score: int
    comments: str | None = None
    submitted_at: datetime


class JudgeDetail(BaseModel):
    judge_id: str
    judge_name: str
    judge_email: str | None = None
    scores: list[JudgeScoreLine] = Field(default_factory=list)
    total_scores: int
    average_score: float | None = None


class PublicJudgeDetail(BaseModel):
    judge_name: str
    last_active_at: datetime
    scores: list[JudgeScoreLine] = Field(default_factory=list)
    total_score: int
    average_score: float
    score_count: int


class CriterionScoreLine(BaseModel):
    criteria_id: str
    question: str
    score: int
    comments: str | None = None


class JudgeScoreGroup(BaseModel):
    judge_id: str
    judge_name: str
    scores: list[CriterionScoreLine] = Field(default_factory=list)
    judge_total: int
    judge_average: float


class JudgeScoreEntry(BaseModel):
    judge_id: str
    judge_name: str
    score: int
    comments: str | None = None


class CriterionScoreGroup(BaseModel):
    criteria_id: str
    question: str
    scores: list[JudgeScoreEntry] = Field(default_factory=list)
    criteria_average: float


class SubmissionDetail(BaseModel):
    story_id: str
    story_title: str
    story_slug: str
    story_url: str | None = None
    total_score: int
    average_score: float
    score_count: int
    max_possible_score: int
    scores_by_judge: list[JudgeScoreGroup] = Field(default_factory=list)
    scores_by_criteria: list[CriterionScoreGroup] = Field(default_factory=list)


class AddSubmissionsResult(BaseModel):
    added: int = 0
    skipped: int = 0
    errors: list[str] = Field(default_factory=list)


class ScoringSummary(BaseModel):
    total_score: int
    average_score: float | None = None
    judge_count: int
    max_possible_score: int
    completion_percentage: float


class SubmissionListing(BaseModel):
    id: str
    group_id: str
    story_id: str
    added_by: str
    added_at: datetime
    story_title: str
    story_slug: str
    story_url: str | None = None
    status: str
    scoring_summary: ScoringSummary


class StoryGroupMembership(BaseModel):
    group_id: str
    name: str
    slug: str
    is_active: bool
    scoring_mode: str
    added_at: datetime


class NoteView(BaseModel):
    id: str
    content: str
    judge_name: str
    created_at: datetime


class NoteThread(NoteView):
    reply_to_id: str | None = None
    replies: list[NoteView] = Field(default_factory=list)


class ExportRow(BaseModel):
    """One denormalized score row for spreadsheet export."""

    judge_id: str
    judge_name: str
    judge_email: str | None = None
    linked_user_id: str | None = None
    story_id: str
    story_title: str
    story_slug: str
    story_url: str | None = None
    criteria_id: str
    criteria_question: str
    criteria_description: str | None = None
    score: int
    total_score_for_submission: int
    comments: str | None = None
    judge_notes: str = ""
    is_hidden: bool
    submitted_at: datetime
