"""Schemas for the transcription and summarization endpoints."""

import uuid
from typing import Optional

from pydantic import BaseModel, Field


class TranscriptionResponse(BaseModel):
    text: str = Field(description="Transcript of the uploaded audio")


class SummarizeRequest(BaseModel):
    """
    Body of POST /api/ai/summarize.

    ``content`` is the text to summarize; when omitted the note's stored
    content is used.
    """

    note_id: uuid.UUID
    content: Optional[str] = Field(default=None)

    model_config = {"extra": "forbid"}
