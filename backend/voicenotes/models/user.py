"""
VoiceNotes Backend: User SQLAlchemy Model
=========================================

What:  ORM model for the ``users`` table: the accounts notes are owned by.
How:   Emails are stored lower-cased and unique; the password column holds a
       passlib hash and is never serialized by any response schema.
"""

import uuid
from datetime import datetime

from sqlalchemy import String, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from voicenotes.database import Base
from voicenotes.models.types import UTCDateTime, utcnow


class User(Base):
    """An authenticated account. Referenced by ``Note.owner_id``."""

    __tablename__ = "users"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        primary_key=True,
        default=uuid.uuid4,
        comment="Opaque account identifier, embedded as 'sub' in access tokens",
    )

    username: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
        comment="Display name chosen at signup",
    )

    email: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        unique=True,
        index=True,
        comment="Login identifier, stored lower-cased",
    )

    password_hash: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        comment="passlib hash of the account password",
    )

    created_at: Mapped[datetime] = mapped_column(
        UTCDateTime,
        nullable=False,
        default=utcnow,
        comment="When the account was created (UTC)",
    )

    updated_at: Mapped[datetime] = mapped_column(
        UTCDateTime,
        nullable=False,
        default=utcnow,
        onupdate=utcnow,
        comment="When the account was last modified (UTC)",
    )

    def __repr__(self) -> str:
        return f"<User(id={self.id}, email='{self.email}')>"
