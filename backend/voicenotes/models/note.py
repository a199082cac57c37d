"""
VoiceNotes Backend: Note SQLAlchemy Model
=========================================

What:  ORM model representing the ``notes`` table.
Who:   Read and written only through ``NoteRepository``; Alembic mirrors the
       same columns and indexes in migration 001.

Table Design:
    - UUID primary key, opaque to clients
    - owner_id: immutable after insert; every query filters on it
    - title / content: required, validated non-blank by NoteService
    - summary: NULL until generated or explicitly set
    - created_at set once; updated_at refreshed by every mutation

Indexes:
    idx_notes_owner_created (owner_id, created_at)
        Serves every listing: all queries start with WHERE owner_id = :owner
        and the unsearched orders are by created_at.
    idx_notes_search (PostgreSQL only, GIN)
        to_tsvector('english', title || ' ' || content || ' ' || summary).
        ``search_vector()`` builds the identical expression for queries so the
        planner can use the index.
"""

import uuid
from datetime import datetime
from typing import Optional

from sqlalchemy import ForeignKey, Index, String, Text, Uuid, func, literal_column
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.sql.elements import ColumnElement

from voicenotes.database import Base
from voicenotes.models.types import UTCDateTime, utcnow

# Text search configuration baked into the GIN index; queries must match it.
SEARCH_LANGUAGE = "english"

TITLE_MAX_LENGTH = 200


class Note(Base):
    """
    A user-owned voice or text note with an optional AI summary.

    Lifecycle:
        1. Created with owner, title and content (summary NULL)
        2. Updated any number of times (title, content, summary)
        3. Hard-deleted; no tombstone is kept
    """

    __tablename__ = "notes"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        primary_key=True,
        default=uuid.uuid4,
        comment="Opaque note identifier",
    )

    owner_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        comment="Owning user; never changes after creation",
    )

    title: Mapped[str] = mapped_column(
        String(TITLE_MAX_LENGTH),
        nullable=False,
        comment="Note title",
    )

    # TEXT: transcripts have no natural length limit
    content: Mapped[str] = mapped_column(
        Text,
        nullable=False,
        comment="Transcript or typed note body",
    )

    summary: Mapped[Optional[str]] = mapped_column(
        Text,
        nullable=True,
        default=None,
        comment="AI-generated summary; NULL until generated",
    )

    created_at: Mapped[datetime] = mapped_column(
        UTCDateTime,
        nullable=False,
        default=utcnow,
        comment="When this note was created (UTC)",
    )

    updated_at: Mapped[datetime] = mapped_column(
        UTCDateTime,
        nullable=False,
        default=utcnow,
        comment="When this note was last modified (UTC)",
    )

    __table_args__ = (
        Index("idx_notes_owner_created", "owner_id", "created_at"),
    )

    def __repr__(self) -> str:
        return (
            f"<Note(id={self.id}, owner_id={self.owner_id}, "
            f"title='{self.title}', created_at='{self.created_at}')>"
        )


def search_vector() -> ColumnElement:
    """
    The tsvector expression over title, content and summary.

    Constants are inlined (not bound) so the SQL text matches the GIN index
    expression exactly.
    """
    table = Note.__table__
    empty = literal_column("''")
    space = literal_column("' '")
    document = (
        func.coalesce(table.c.title, empty)
        + space
        + func.coalesce(table.c.content, empty)
        + space
        + func.coalesce(table.c.summary, empty)
    )
    return func.to_tsvector(literal_column(f"'{SEARCH_LANGUAGE}'"), document)


Index("idx_notes_search", search_vector(), postgresql_using="gin").ddl_if(dialect="postgresql")
