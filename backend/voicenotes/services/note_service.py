"""
VoiceNotes Backend: Note Service (Business Logic Orchestrator)
==============================================================

What:  Owner-scoped note operations: create, get, list (search/sort),
       update, delete and AI summarization.
How:   Composes NoteRepository (persistence) and an AIDelegate (summaries).
       Each method receives the request's AsyncSession and commits its own
       writes before returning.
Who:   Called by the notes and AI route handlers.

Summarize Flow (POST /api/ai/summarize):
    ┌──────────┐    ┌─────────────┐    ┌──────────────┐    ┌──────────┐
    │  Route   │───▶│  Load note  │───▶│  AIDelegate  │───▶│  Store   │
    │          │    │  (owner)    │    │  .summarize  │    │ summary  │
    └──────────┘    └─────────────┘    └──────────────┘    └──────────┘

    Missing or foreign note → NotFoundError before the provider is called.
    The read transaction is committed before the provider call, so no
    pooled connection waits on the AI.
    Provider failure → the exception propagates and nothing is written.
    A concurrent edit made during the call is kept; only summary and
    updated_at are written afterwards.

Ownership:
    Every lookup filters on owner_id. A note id belonging to another user
    behaves exactly like an id that does not exist.
"""

import logging
from datetime import timedelta
from typing import Any, Dict, List, Mapping, Optional
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from voicenotes.exceptions import NotFoundError, ValidationError
from voicenotes.models.note import TITLE_MAX_LENGTH, Note
from voicenotes.models.types import utcnow
from voicenotes.repositories.notes import NoteRepository
from voicenotes.schemas.note import NoteSort
from voicenotes.services.ai_base import AIDelegate

logger = logging.getLogger(__name__)

EDITABLE_FIELDS = ("title", "content", "summary")


def _require_text(value: Optional[str], field: str) -> str:
    if value is None or not value.strip():
        raise ValidationError(message=f"Note {field} must not be empty.", field=field)
    if field == "title" and len(value) > TITLE_MAX_LENGTH:
        raise ValidationError(
            message=f"Note title must be at most {TITLE_MAX_LENGTH} characters.",
            field=field,
            context={"length": len(value)},
        )
    return value


def _touch(note: Note) -> None:
    """Refresh ``updated_at`` so that it is strictly later than before."""
    now = utcnow()
    if note.updated_at is not None and now <= note.updated_at:
        now = note.updated_at + timedelta(microseconds=1)
    note.updated_at = now


class NoteService:
    """
    Business logic layer for notes.

    Stateless apart from its collaborators; one instance serves every
    request and lives on ``app.state``.

    Error Handling Strategy:
        Business rule violations raise ValidationError, missing or foreign
        notes NotFoundError. Database failures arrive from the repository as
        PersistenceError. AI failures (ExternalServiceError,
        ServiceTimeoutError) propagate unchanged.
    """

    def __init__(self, ai: AIDelegate, min_rank: float = 0.0):
        self.ai = ai
        self.min_rank = min_rank

    def _notes(self, db: AsyncSession) -> NoteRepository:
        return NoteRepository(db, min_rank=self.min_rank)

    async def _get_owned_or_404(self, repo: NoteRepository, owner_id: UUID, note_id: UUID) -> Note:
        note = await repo.get_owned(owner_id, note_id)
        if note is None:
            raise NotFoundError(resource="note", resource_id=str(note_id))
        return note

    async def create_note(self, db: AsyncSession, owner_id: UUID, title: str, content: str) -> Note:
        """
        Persist a new note for ``owner_id``.

        Both timestamps get the same instant; summary starts out NULL.

        Raises:
            ValidationError: blank title or content, or an over-long title
        """
        title = _require_text(title, "title")
        content = _require_text(content, "content")

        now = utcnow()
        note = Note(
            owner_id=owner_id,
            title=title,
            content=content,
            summary=None,
            created_at=now,
            updated_at=now,
        )
        await self._notes(db).add(note)
        await db.commit()

        logger.info("Note %s created for user %s (%d chars)", note.id, owner_id, len(content))
        return note

    async def get_note(self, db: AsyncSession, owner_id: UUID, note_id: UUID) -> Note:
        """
        Raises:
            NotFoundError: no note with ``note_id`` is owned by ``owner_id``
        """
        return await self._get_owned_or_404(self._notes(db), owner_id, note_id)

    async def list_notes(
        self,
        db: AsyncSession,
        owner_id: UUID,
        search: Optional[str] = None,
        sort: Optional[NoteSort] = None,
    ) -> List[Note]:
        """
        The owner's notes, filtered and ordered.

        Ordering rules:
            search only      relevance desc, then created_at desc
            sort=date        created_at desc (also when a search is given:
                             the search still filters, the sort replaces
                             relevance ordering)
            neither          created_at asc (insertion order)

        A search term with no word characters matches nothing.
        """
        repo = self._notes(db)
        newest_first = sort == NoteSort.DATE

        if search is not None and search.strip():
            notes = await repo.search_owned(owner_id, search, newest_first=newest_first)
            logger.debug(
                "Search for user %s matched %d notes (sort=%s)",
                owner_id,
                len(notes),
                sort.value if sort else None,
            )
            return notes

        return await repo.list_owned(owner_id, newest_first=newest_first)

    async def update_note(
        self,
        db: AsyncSession,
        owner_id: UUID,
        note_id: UUID,
        changes: Mapping[str, Any],
    ) -> Note:
        """
        Apply a partial update to one of the owner's notes.

        Only keys present in ``changes`` are touched. ``summary`` may be set
        to None to clear it; title and content may not be blank. The summary
        is never cleared as a side effect of a content change.

        Raises:
            ValidationError: unknown field, or blank title/content
            NotFoundError: missing note or owned by someone else
        """
        unknown = set(changes) - set(EDITABLE_FIELDS)
        if unknown:
            raise ValidationError(
                message=f"Fields cannot be updated: {', '.join(sorted(unknown))}",
                context={"fields": sorted(unknown)},
            )

        updates: Dict[str, Any] = {}
        for field in ("title", "content"):
            if field in changes:
                updates[field] = _require_text(changes[field], field)
        if "summary" in changes:
            updates["summary"] = changes["summary"]

        repo = self._notes(db)
        note = await self._get_owned_or_404(repo, owner_id, note_id)

        for field, value in updates.items():
            setattr(note, field, value)
        _touch(note)

        await repo.save(note)
        await db.commit()

        logger.info("Note %s updated (%s)", note.id, ", ".join(sorted(updates)) or "no fields")
        return note

    async def delete_note(self, db: AsyncSession, owner_id: UUID, note_id: UUID) -> bool:
        """
        Delete the note if the owner has it.

        Returns True when a row was removed. Deleting a missing or foreign
        note is not an error.
        """
        removed = await self._notes(db).delete_owned(owner_id, note_id)
        await db.commit()

        if removed:
            logger.info("Note %s deleted by user %s", note_id, owner_id)
        else:
            logger.info("Delete of note %s by user %s matched nothing", note_id, owner_id)
        return removed

    async def summarize_note(
        self,
        db: AsyncSession,
        owner_id: UUID,
        note_id: UUID,
        content: Optional[str] = None,
    ) -> Note:
        """
        Generate a summary with the AI delegate and store it on the note.

        ``content`` is the text to summarize; the note's stored content is
        used when it is None. The note's content itself is never modified.

        Raises:
            NotFoundError: missing or foreign note (checked before the AI call)
            ValidationError: nothing to summarize
            ExternalServiceError / ServiceTimeoutError: the provider failed;
                the stored note is left unchanged
        """
        repo = self._notes(db)
        note = await self._get_owned_or_404(repo, owner_id, note_id)

        text = note.content if content is None else content
        if not text or not text.strip():
            raise ValidationError(message="There is no text to summarize.", field="content")

        # Why: the provider call can take up to ai_timeout_seconds; no pooled
        # connection is held across it. The note stays readable because the
        # session does not expire on commit.
        await db.commit()

        summary = await self.ai.summarize(text)

        note.summary = summary
        _touch(note)
        await repo.save(note)
        await db.commit()

        logger.info("Note %s summarized (%d chars -> %d chars)", note.id, len(text), len(summary))
        return note
