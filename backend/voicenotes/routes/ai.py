"""
VoiceNotes Backend: AI Route Handlers
=====================================

What:  POST /api/ai/transcribe and POST /api/ai/summarize.
Why:   Transcription stays separate from note creation so the user can
       edit the text before saving it.
How:   Transcription validates the uploaded clip and calls the AI delegate
       directly; nothing is persisted. Summarization goes through
       NoteService, which stores the summary on the caller's note.
Who:   Called by the frontend recorder and the note editor's summary button.
When:  After each recording stops, and on demand for summaries.

Request Flow (transcribe):
    1. Client sends multipart/form-data with an ``audio`` field
    2. The clip is read into memory (bounded by MAX_AUDIO_SIZE)
    3. AudioService resolves the MIME type and checks the size
    4. AIDelegate.transcribe returns the text
    5. 200 {"text": ...}; the client decides whether to save it as a note

Both endpoints require a bearer token. Provider failures answer 503, an
elapsed AI timeout 504.
"""

import logging
from uuid import UUID

from fastapi import APIRouter, Depends, File, UploadFile
from sqlalchemy.ext.asyncio import AsyncSession

from voicenotes.database import get_db_session
from voicenotes.dependencies import (
    get_ai_delegate,
    get_audio_service,
    get_current_user_id,
    get_note_service,
)
from voicenotes.schemas.ai import SummarizeRequest, TranscriptionResponse
from voicenotes.schemas.common import ErrorResponse
from voicenotes.schemas.note import NoteResponse
from voicenotes.services.ai_base import AIDelegate
from voicenotes.services.audio_service import AudioService
from voicenotes.services.note_service import NoteService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/ai", tags=["AI"])

AI_ERRORS = {
    401: {"description": "Missing or invalid bearer token", "model": ErrorResponse},
    503: {"description": "AI service unavailable", "model": ErrorResponse},
    504: {"description": "AI service timed out", "model": ErrorResponse},
}


@router.post(
    "/transcribe",
    response_model=TranscriptionResponse,
    responses={
        400: {"description": "Empty, oversized or unsupported audio", "model": ErrorResponse},
        **AI_ERRORS,
    },
    summary="Transcribe recorded audio",
)
async def transcribe(
    audio: UploadFile = File(..., description="Recorded or uploaded audio clip"),
    owner_id: UUID = Depends(get_current_user_id),
    ai: AIDelegate = Depends(get_ai_delegate),
    audio_service: AudioService = Depends(get_audio_service),
) -> TranscriptionResponse:
    content = await audio.read()
    mime_type = audio_service.validate(audio.filename, content, audio.content_type)

    logger.info(
        "Transcription requested by user %s (%s, %d bytes)",
        owner_id,
        mime_type,
        len(content),
    )
    text = await ai.transcribe(content, mime_type)
    return TranscriptionResponse(text=text)


@router.post(
    "/summarize",
    response_model=NoteResponse,
    responses={
        400: {"description": "Nothing to summarize", "model": ErrorResponse},
        404: {"description": "Note not found", "model": ErrorResponse},
        **AI_ERRORS,
    },
    summary="Summarize a note and store the summary",
)
async def summarize(
    body: SummarizeRequest,
    owner_id: UUID = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db_session),
    notes: NoteService = Depends(get_note_service),
) -> NoteResponse:
    note = await notes.summarize_note(db, owner_id, body.note_id, content=body.content)
    return NoteResponse.model_validate(note)
