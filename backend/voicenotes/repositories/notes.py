"""
VoiceNotes Backend: Note Repository
===================================

What:  Owner-scoped persistence for notes, including full-text search.
How:   Every statement carries ``WHERE owner_id = :owner``. Updates mutate
       the loaded row inside the request transaction (last writer wins);
       deletes are a single DELETE filtered by owner and id.

Full-text search:
    PostgreSQL
        SELECT ... WHERE owner_id = :owner
          AND to_tsvector('english', title || ' ' || content || ' ' || summary)
              @@ to_tsquery('english', 'tok1 | tok2')
          AND ts_rank(...) > :min_rank
        ORDER BY ts_rank(...) DESC, created_at DESC
        → served by idx_notes_search (GIN) and idx_notes_owner_created

    Other dialects (SQLite for development and tests)
        The owner's notes are loaded and scored in Python: the number of
        query-token occurrences among the note's tokens. Same floor, same
        ordering, same tie-break.

    In both cases a note with no matching token is excluded, not ranked low.

Tokens:
    ``tokenize`` drops the common English stopwords that PostgreSQL's
    'english' configuration ignores, so a term like "the" matches nothing on
    either backend. Stemming is PostgreSQL only: there "meetings" finds
    "meeting", while the Python scorer compares whole words.

Why:   A note must always belong to an existing user. Inserting for an
       account deleted after its token was issued violates the owner foreign
       key; ``add`` reports that as an authentication failure.
"""

import logging
import re
from collections import Counter
from contextlib import asynccontextmanager
from typing import AsyncIterator, List, Optional, Sequence
from uuid import UUID

from sqlalchemy import delete, func, literal_column, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from voicenotes.exceptions import AuthError, PersistenceError
from voicenotes.models.note import SEARCH_LANGUAGE, Note, search_vector

logger = logging.getLogger(__name__)

_TOKEN_RE = re.compile(r"[^\W_]+")

# PostgreSQL's english.stop list (snowball).
STOPWORDS = frozenset(
    """
    i me my myself we our ours ourselves you your yours yourself yourselves
    he him his himself she her hers herself it its itself they them their
    theirs themselves what which who whom this that these those am is are
    was were be been being have has had having do does did doing a an the
    and but if or because as until while of at by for with about against
    between into through during before after above below to from up down in
    out on off over under again further then once here there when where why
    how all any both each few more most other some such no nor not only own
    same so than too very s t can will just don should now
    """.split()
)


def tokenize(text: Optional[str]) -> List[str]:
    """Lower-cased alphanumeric runs of ``text`` minus stopwords; punctuation and underscores split tokens."""
    if not text:
        return []
    return [token for token in _TOKEN_RE.findall(text.lower()) if token not in STOPWORDS]


def relevance(note: Note, tokens: Sequence[str]) -> float:
    """Occurrences of any query token among the tokens of title, content and summary."""
    words = Counter(tokenize(note.title))
    words.update(tokenize(note.content))
    words.update(tokenize(note.summary))
    return float(sum(words[token] for token in set(tokens)))


@asynccontextmanager
async def _translate_errors(operation: str, **context) -> AsyncIterator[None]:
    """Re-raise driver failures as PersistenceError, keeping detail for the log."""
    try:
        yield
    except SQLAlchemyError as e:
        logger.error("Database error during %s: %s", operation, str(e))
        raise PersistenceError(
            context={"operation": operation, "error_type": type(e).__name__, **context},
        ) from e


class NoteRepository:
    """Persistence adapter for ``Note`` rows of a single session."""

    def __init__(self, session: AsyncSession, min_rank: float = 0.0):
        self.session = session
        self.min_rank = min_rank

    @property
    def dialect_name(self) -> str:
        return self.session.bind.dialect.name

    async def add(self, note: Note) -> Note:
        """
        Insert ``note``.

        Raises:
            AuthError: the owner no longer exists (owner foreign key violated)
            PersistenceError: any other database failure
        """
        async with _translate_errors("insert note"):
            self.session.add(note)
            try:
                await self.session.flush()
            except IntegrityError as e:
                # The only constraint a fresh note can break is owner_id -> users.id.
                await self.session.rollback()
                logger.warning("Note insert rejected: owner %s does not exist", note.owner_id)
                raise AuthError(context={"reason": "unknown_user"}) from e
        return note

    async def save(self, note: Note) -> Note:
        """Flush pending attribute changes of an already-loaded note."""
        async with _translate_errors("update note", note_id=str(note.id)):
            await self.session.flush()
        return note

    async def get_owned(self, owner_id: UUID, note_id: UUID) -> Optional[Note]:
        """The note with ``note_id`` if ``owner_id`` owns it, else None."""
        async with _translate_errors("get note", note_id=str(note_id)):
            result = await self.session.execute(
                select(Note).where(Note.id == note_id, Note.owner_id == owner_id)
            )
            return result.scalar_one_or_none()

    async def list_owned(self, owner_id: UUID, newest_first: bool = False) -> List[Note]:
        """All of the owner's notes, in insertion order unless ``newest_first``."""
        order = Note.created_at.desc() if newest_first else Note.created_at.asc()
        async with _translate_errors("list notes"):
            result = await self.session.execute(
                select(Note).where(Note.owner_id == owner_id).order_by(order)
            )
            return list(result.scalars().all())

    async def search_owned(
        self,
        owner_id: UUID,
        term: str,
        newest_first: bool = False,
    ) -> List[Note]:
        """
        The owner's notes matching ``term``, best match first.

        ``newest_first`` replaces relevance ordering with creation time
        (descending); the match filter and relevance floor still apply.
        """
        tokens = tokenize(term)
        if not tokens:
            return []

        if self.dialect_name == "postgresql":
            return await self._search_postgresql(owner_id, tokens, newest_first)
        return await self._search_in_python(owner_id, tokens, newest_first)

    async def _search_postgresql(
        self, owner_id: UUID, tokens: List[str], newest_first: bool
    ) -> List[Note]:
        vector = search_vector()
        query = func.to_tsquery(literal_column(f"'{SEARCH_LANGUAGE}'"), " | ".join(tokens))
        rank = func.ts_rank(vector, query)

        stmt = select(Note).where(
            Note.owner_id == owner_id,
            vector.op("@@")(query),
            rank > self.min_rank,
        )
        if newest_first:
            stmt = stmt.order_by(Note.created_at.desc())
        else:
            stmt = stmt.order_by(rank.desc(), Note.created_at.desc())

        async with _translate_errors("search notes"):
            result = await self.session.execute(stmt)
            return list(result.scalars().all())

    async def _search_in_python(
        self, owner_id: UUID, tokens: List[str], newest_first: bool
    ) -> List[Note]:
        candidates = await self.list_owned(owner_id)
        scored = [(relevance(note, tokens), note) for note in candidates]
        scored = [(score, note) for score, note in scored if score > self.min_rank]

        if newest_first:
            scored.sort(key=lambda pair: pair[1].created_at, reverse=True)
        else:
            scored.sort(key=lambda pair: (pair[0], pair[1].created_at), reverse=True)
        return [note for _, note in scored]

    async def delete_owned(self, owner_id: UUID, note_id: UUID) -> bool:
        """Delete the note if ``owner_id`` owns it. Returns whether a row was removed."""
        async with _translate_errors("delete note", note_id=str(note_id)):
            result = await self.session.execute(
                delete(Note).where(Note.id == note_id, Note.owner_id == owner_id)
            )
        return (result.rowcount or 0) > 0
