"""
VoiceNotes Backend: Request Dependencies
========================================

What:  FastAPI dependencies that resolve the caller and the shared services.
How:   Services live on ``app.state`` (built by ``create_app``); these
       functions hand them to route handlers through ``Depends``.

Authentication Gate:
    get_current_user_id   Bearer token → user id. Signature and expiry only,
                          no database access.
    get_current_user      Same, then loads the User row; a token for a deleted
                          account is rejected.

    Missing header, wrong scheme, bad signature, expired token and unknown
    user all raise AuthError (401 + WWW-Authenticate: Bearer).
"""

from typing import Optional
from uuid import UUID

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from voicenotes.config import Settings
from voicenotes.database import get_db_session
from voicenotes.exceptions import AuthError
from voicenotes.models.user import User
from voicenotes.security import TokenCodec
from voicenotes.services.ai_base import AIDelegate
from voicenotes.services.audio_service import AudioService
from voicenotes.services.auth_service import AuthService
from voicenotes.services.note_service import NoteService

# auto_error=False: a missing header must produce our 401 body, not
# FastAPI's default 403.
bearer_scheme = HTTPBearer(auto_error=False)


def get_settings_from_app(request: Request) -> Settings:
    return request.app.state.settings


def get_note_service(request: Request) -> NoteService:
    return request.app.state.note_service


def get_auth_service(request: Request) -> AuthService:
    return request.app.state.auth_service


def get_ai_delegate(request: Request) -> AIDelegate:
    return request.app.state.ai_delegate


def get_audio_service(request: Request) -> AudioService:
    return request.app.state.audio_service


def get_token_codec(request: Request) -> TokenCodec:
    return request.app.state.tokens


async def get_current_user_id(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    tokens: TokenCodec = Depends(get_token_codec),
) -> UUID:
    if credentials is None or not credentials.credentials:
        raise AuthError(message="Not authenticated", context={"reason": "missing_token"})
    return tokens.verify(credentials.credentials)


async def get_current_user(
    user_id: UUID = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db_session),
    auth_service: AuthService = Depends(get_auth_service),
) -> User:
    return await auth_service.get_user(db, user_id)
