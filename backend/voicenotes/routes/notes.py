"""
VoiceNotes Backend: Notes Route Handlers
========================================

What:  CRUD endpoints for the caller's notes.
How:   Each handler resolves the caller with ``get_current_user_id`` (token
       only, no user lookup), calls one NoteService method and serializes
       the result with NoteResponse.
Who:   Called by the frontend note list, editor and search box.
Why:   Every note query is scoped by owner_id, so a token for a deleted
       account reads nothing. Creating a note for one violates the owner
       foreign key, and the repository answers 401.

Caching:
    Note responses are per-user and mutable: ``Cache-Control: no-store``.
"""

import logging
from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Response
from sqlalchemy.ext.asyncio import AsyncSession

from voicenotes.database import get_db_session
from voicenotes.dependencies import get_current_user_id, get_note_service
from voicenotes.schemas.common import ErrorResponse
from voicenotes.schemas.note import (
    DeleteResponse,
    NoteCreate,
    NoteResponse,
    NoteSort,
    NoteUpdate,
)
from voicenotes.services.note_service import NoteService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["Notes"])

AUTH_ERRORS = {401: {"description": "Missing or invalid bearer token", "model": ErrorResponse}}


@router.post(
    "/notes",
    status_code=201,
    response_model=NoteResponse,
    responses={
        400: {"description": "Blank title or content", "model": ErrorResponse},
        **AUTH_ERRORS,
    },
    summary="Create a note",
)
async def create_note(
    body: NoteCreate,
    response: Response,
    owner_id: UUID = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db_session),
    notes: NoteService = Depends(get_note_service),
) -> NoteResponse:
    note = await notes.create_note(db, owner_id, title=body.title, content=body.content)
    response.headers["Cache-Control"] = "no-store"
    return NoteResponse.model_validate(note)


@router.get(
    "/notes",
    response_model=List[NoteResponse],
    responses=AUTH_ERRORS,
    summary="List, search and sort the caller's notes",
    description=(
        "Without parameters, returns every note in creation order. `search` "
        "runs a full-text query over title, content and summary and orders "
        "by relevance. `sort=date` orders newest first and takes precedence "
        "over relevance ordering when both are given."
    ),
)
async def list_notes(
    response: Response,
    search: Optional[str] = Query(
        default=None,
        max_length=500,
        description="Full-text search terms (any word may match)",
    ),
    sort: Optional[NoteSort] = Query(
        default=None,
        description="'date' for newest first",
    ),
    owner_id: UUID = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db_session),
    notes: NoteService = Depends(get_note_service),
) -> List[NoteResponse]:
    result = await notes.list_notes(db, owner_id, search=search, sort=sort)

    response.headers["X-Total-Count"] = str(len(result))
    response.headers["Cache-Control"] = "no-store"
    return [NoteResponse.model_validate(note) for note in result]


@router.get(
    "/notes/{note_id}",
    response_model=NoteResponse,
    responses={
        404: {"description": "Note not found", "model": ErrorResponse},
        **AUTH_ERRORS,
    },
    summary="Get a single note",
)
async def get_note(
    note_id: UUID,
    response: Response,
    owner_id: UUID = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db_session),
    notes: NoteService = Depends(get_note_service),
) -> NoteResponse:
    note = await notes.get_note(db, owner_id, note_id)
    response.headers["Cache-Control"] = "no-store"
    return NoteResponse.model_validate(note)


@router.put(
    "/notes/{note_id}",
    response_model=NoteResponse,
    responses={
        400: {"description": "Blank title or content", "model": ErrorResponse},
        404: {"description": "Note not found", "model": ErrorResponse},
        **AUTH_ERRORS,
    },
    summary="Update a note",
    description=(
        "Partial update: only the fields present in the body change. "
        "Send `\"summary\": null` to clear the stored summary."
    ),
)
async def update_note(
    note_id: UUID,
    body: NoteUpdate,
    owner_id: UUID = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db_session),
    notes: NoteService = Depends(get_note_service),
) -> NoteResponse:
    note = await notes.update_note(db, owner_id, note_id, body.changes())
    return NoteResponse.model_validate(note)


@router.delete(
    "/notes/{note_id}",
    response_model=DeleteResponse,
    responses=AUTH_ERRORS,
    summary="Delete a note",
    description="Always answers 200; deleting a missing note is not an error.",
)
async def delete_note(
    note_id: UUID,
    owner_id: UUID = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db_session),
    notes: NoteService = Depends(get_note_service),
) -> DeleteResponse:
    await notes.delete_note(db, owner_id, note_id)
    return DeleteResponse()
