"""
VoiceNotes Backend: Note Request/Response Schemas
=================================================

What:  Pydantic models defining the notes API contract.
How:   Request bodies forbid unknown fields, so owner_id, id and timestamps
       can never be set by a client. Presence rules (required vs optional)
       are enforced here; business rules (non-blank text) in NoteService.

Update semantics:
    Only fields present in the PUT body are applied. ``"summary": null``
    clears the summary; omitting ``summary`` leaves it untouched.
"""

import uuid
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field

from voicenotes.models.note import TITLE_MAX_LENGTH


class NoteSort(str, Enum):
    """Sort overrides accepted by GET /api/notes."""

    DATE = "date"  # newest first by creation time


class NoteCreate(BaseModel):
    """Body of POST /api/notes."""

    title: str = Field(max_length=TITLE_MAX_LENGTH, description="Note title (non-blank)")
    content: str = Field(description="Transcript or typed text (non-blank)")

    model_config = {"extra": "forbid"}


class NoteUpdate(BaseModel):
    """Body of PUT /api/notes/{id}: any subset of the editable fields."""

    title: Optional[str] = Field(default=None, max_length=TITLE_MAX_LENGTH)
    content: Optional[str] = Field(default=None)
    summary: Optional[str] = Field(
        default=None,
        description="New summary text, or null to clear the stored summary",
    )

    model_config = {"extra": "forbid"}

    def changes(self) -> Dict[str, Any]:
        """Only the fields the client actually sent, explicit nulls included."""
        return self.model_dump(exclude_unset=True)


class NoteResponse(BaseModel):
    """Full representation of a note, as returned by every notes endpoint."""

    id: uuid.UUID = Field(description="Unique note identifier")
    owner_id: uuid.UUID = Field(description="Owning user")
    title: str
    content: str
    summary: Optional[str] = Field(default=None, description="AI summary, null until generated")
    created_at: datetime = Field(description="Creation timestamp (UTC ISO 8601)")
    updated_at: datetime = Field(description="Last modification timestamp (UTC ISO 8601)")

    model_config = {"from_attributes": True}


class DeleteResponse(BaseModel):
    """Returned by DELETE whether or not a note was removed."""

    message: str = Field(default="Note deleted")
