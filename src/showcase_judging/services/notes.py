"""Threaded judge notes on submissions."""

from __future__ import annotations

from collections import Counter, defaultdict

import structlog
from sqlmodel import Session, col, select

from showcase_judging.core.errors import InvalidNote, SubmissionNotInGroup
from showcase_judging.models import Judge, SubmissionNote
from showcase_judging.models.views import NoteThread, NoteView
from showcase_judging.services.collaborators import Caller, require_admin
from showcase_judging.services.lookups import get_submission_link, require_judge
from showcase_judging.services.storage import AsyncRepository

logger = structlog.get_logger()

UNKNOWN_JUDGE = "Unknown Judge"


class NotesService(AsyncRepository):
    """Judge discussion notes; also serves note counts to the aggregation engine."""

    async def add_note(
        self,
        session_id: str,
        story_id: str,
        content: str,
        reply_to_id: str | None = None,
    ) -> str:
        """Store a note from the session's judge and return its id."""
        text = content.strip()
        if not text:
            raise InvalidNote("Note content cannot be empty")
        now = self._now()

        def _add(session: Session) -> str:
            judge = require_judge(session, session_id)
            if get_submission_link(session, judge.group_id, story_id) is None:
                raise SubmissionNotInGroup(story_id)
            if reply_to_id is not None:
                parent = session.get(SubmissionNote, reply_to_id)
                if (
                    parent is None
                    or parent.group_id != judge.group_id
                    or parent.story_id != story_id
                ):
                    raise InvalidNote("Parent note not found or invalid")

            note = SubmissionNote(
                group_id=judge.group_id,
                story_id=story_id,
                judge_id=judge.id,
                content=text,
                reply_to_id=reply_to_id,
                created_at=now,
            )
            session.add(note)
            session.flush()
            return note.id

        note_id = await self._run_session(_add)
        logger.info("note_added", note_id=note_id, story_id=story_id, reply=reply_to_id is not None)
        return note_id

    async def get_notes(self, group_id: str, story_id: str) -> list[NoteThread]:
        """Top-level notes, oldest first, each carrying its replies."""

        def _get(session: Session) -> list[NoteThread]:
            notes = session.exec(
                select(SubmissionNote)
                .where(SubmissionNote.group_id == group_id, SubmissionNote.story_id == story_id)
                .order_by(col(SubmissionNote.created_at), col(SubmissionNote.id))
            ).all()
            judge_ids = {note.judge_id for note in notes}
            names = {
                judge.id: judge.name
                for judge in session.exec(select(Judge).where(col(Judge.id).in_(judge_ids))).all()
            }

            replies: dict[str, list[NoteView]] = defaultdict(list)
            for note in notes:
                if note.reply_to_id:
                    replies[note.reply_to_id].append(
                        NoteView(
                            id=note.id,
                            content=note.content,
                            judge_name=names.get(note.judge_id, UNKNOWN_JUDGE),
                            created_at=note.created_at,
                        )
                    )
            return [
                NoteThread(
                    id=note.id,
                    content=note.content,
                    judge_name=names.get(note.judge_id, UNKNOWN_JUDGE),
                    created_at=note.created_at,
                    reply_to_id=None,
                    replies=replies[note.id],
                )
                for note in notes
                if not note.reply_to_id
            ]

        return await self._run_session(_get)

    async def count_by_judge(self, group_id: str) -> dict[str, int]:
        """Notes written per judge in a group, replies included."""

        def _count(session: Session) -> dict[str, int]:
            notes = session.exec(
                select(SubmissionNote).where(SubmissionNote.group_id == group_id)
            ).all()
            return dict(Counter(note.judge_id for note in notes))

        return await self._run_session(_count)

    async def count_by_submission(self, caller: Caller, group_id: str) -> dict[str, int]:
        """Notes per story in a group, replies included."""
        require_admin(caller, "view note counts")

        def _count(session: Session) -> dict[str, int]:
            notes = session.exec(
                select(SubmissionNote).where(SubmissionNote.group_id == group_id)
            ).all()
            return dict(Counter(note.story_id for note in notes))

        return await self._run_session(_count)
