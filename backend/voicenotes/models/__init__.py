"""ORM models. Importing this package registers every table on ``Base.metadata``."""

from voicenotes.models.note import Note
from voicenotes.models.user import User

__all__ = ["Note", "User"]
