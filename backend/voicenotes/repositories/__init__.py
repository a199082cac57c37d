"""
VoiceNotes Backend: Persistence Adapter
=======================================

Repositories wrap an ``AsyncSession`` and expose the only queries the
services are allowed to run. Every note query is filtered by owner; a
repository never returns or touches another user's rows.

SQLAlchemy failures are translated to ``PersistenceError`` here so that
services and routes never see driver exceptions.
"""

from voicenotes.repositories.notes import NoteRepository
from voicenotes.repositories.users import UserRepository

__all__ = ["NoteRepository", "UserRepository"]
