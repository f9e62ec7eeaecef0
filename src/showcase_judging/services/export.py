"""Spreadsheet and markdown exports of judging results."""

from __future__ import annotations

import asyncio
import csv
from collections import defaultdict
from pathlib import Path
from typing import TYPE_CHECKING

import structlog
from sqlmodel import Session, col, select
from tabulate import tabulate

from showcase_judging.core.clock import Clock
from showcase_judging.models import Criterion, Judge, Score, SubmissionNote
from showcase_judging.models.views import ExportRow, GroupScoreRollup
from showcase_judging.services.collaborators import Caller, ContentCatalog, require_admin
from showcase_judging.services.lookups import get_group
from showcase_judging.services.storage import AsyncRepository

if TYPE_CHECKING:
    from sqlalchemy import Engine

logger = structlog.get_logger()

EXPORT_COLUMNS = list(ExportRow.model_fields)
NOTE_SEPARATOR = " | "


def format_note(note: SubmissionNote) -> str:
    return f"[{note.created_at.strftime('%b %d, %H:%M')}] {note.content}"


class ScoreExporter(AsyncRepository):
    """Flat row-per-score export of a group, hidden scores included."""

    def __init__(self, engine: Engine, catalog: ContentCatalog, clock: Clock | None = None) -> None:
        super().__init__(engine, clock)
        self._catalog = catalog

    async def export_rows(self, caller: Caller, group_id: str) -> list[ExportRow]:
        """Join scores with judges, content and criteria.

        Rows whose judge, story or criterion no longer exists are skipped.
        Sorted by judge name, then newest score first.
        """
        require_admin(caller, "export scores")

        def _load(session: Session):
            get_group(session, group_id)
            scores = list(session.exec(select(Score).where(Score.group_id == group_id)).all())
            judges = {
                j.id: j
                for j in session.exec(
                    select(Judge).where(col(Judge.id).in_({s.judge_id for s in scores}))
                ).all()
            }
            criteria = {
                c.id: c
                for c in session.exec(
                    select(Criterion).where(col(Criterion.id).in_({s.criteria_id for s in scores}))
                ).all()
            }
            notes = list(
                session.exec(
                    select(SubmissionNote)
                    .where(SubmissionNote.group_id == group_id)
                    .order_by(col(SubmissionNote.created_at))
                ).all()
            )
            return scores, judges, criteria, notes

        scores, judges, criteria, notes = await self._run_session(_load)
        contents = await self._catalog.get_many(s.story_id for s in scores)

        totals: dict[tuple[str, str], int] = defaultdict(int)
        for score in scores:
            totals[(score.judge_id, score.story_id)] += score.score

        notes_by_pair: dict[tuple[str, str], list[str]] = defaultdict(list)
        for note in notes:
            if note.reply_to_id is None:
                notes_by_pair[(note.judge_id, note.story_id)].append(format_note(note))

        rows = []
        skipped = 0
        for score in scores:
            judge = judges.get(score.judge_id)
            content = contents.get(score.story_id)
            criterion = criteria.get(score.criteria_id)
            if judge is None or content is None or criterion is None:
                skipped += 1
                continue
            pair = (score.judge_id, score.story_id)
            rows.append(
                ExportRow(
                    judge_id=judge.id,
                    judge_name=judge.name,
                    judge_email=judge.email,
                    linked_user_id=judge.user_id,
                    story_id=content.id,
                    story_title=content.title,
                    story_slug=content.slug,
                    story_url=content.url,
                    criteria_id=criterion.id,
                    criteria_question=criterion.question,
                    criteria_description=criterion.description,
                    score=score.score,
                    total_score_for_submission=totals[pair],
                    comments=score.comments,
                    judge_notes=NOTE_SEPARATOR.join(notes_by_pair[pair]),
                    is_hidden=score.is_hidden,
                    submitted_at=score.created_at,
                )
            )

        if skipped:
            logger.warning("export_rows_skipped", group_id=group_id, skipped=skipped)
        # Two stable sorts: newest first, then by judge name
        rows.sort(key=lambda r: r.submitted_at, reverse=True)
        rows.sort(key=lambda r: r.judge_name.lower())
        return rows

    async def write_csv(self, rows: list[ExportRow], path: Path) -> Path:
        """Write export rows to ``path`` with a header line."""

        def _write() -> Path:
            path.parent.mkdir(parents=True, exist_ok=True)
            with path.open("w", encoding="utf-8", newline="") as f:
                writer = csv.writer(f)
                writer.writerow(EXPORT_COLUMNS)
                for row in rows:
                    data = row.model_dump()
                    data["submitted_at"] = row.submitted_at.isoformat()
                    writer.writerow(["" if data[c] is None else data[c] for c in EXPORT_COLUMNS])
            logger.info("export_written", path=str(path), rows=len(rows))
            return path

        return await asyncio.to_thread(_write)


def leaderboard_markdown(
    rollup: GroupScoreRollup, title: str, description: str | None = None
) -> str:
    """Render submission rankings as a markdown table."""
    headers = ("Rank", "Submission", "Total", "Average", "Scores", "Completion")
    rows = [
        (
            rank,
            r.story_title,
            r.total_score,
            f"{r.average_score:.2f}",
            r.score_count,
            f"{r.completion_percentage:.0f}%",
        )
        for rank, r in enumerate(rollup.submission_rankings, 1)
    ]

    lines = [f"# {title}", ""]
    if description:
        lines.extend([description, ""])
    # Keep the pre-formatted cells as written
    lines.append(tabulate(rows, headers=headers, tablefmt="github", disable_numparse=True))
    return "\n".join(lines)
