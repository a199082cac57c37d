"""
VoiceNotes Backend: Auth Route Handlers
=======================================

What:  Account signup, password login and the current-user endpoint.
How:   Signup and login are public; /me requires a bearer token and loads
       the account row to confirm it still exists.
Who:   Called by the frontend login and registration forms.
When:  Once per session; the token is then sent on every other request.

Paths:
    /api/auth/register is an alias of /api/auth/signup for clients that
    use that name. It is hidden from the OpenAPI schema.
"""

import logging

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from voicenotes.database import get_db_session
from voicenotes.dependencies import get_auth_service, get_current_user
from voicenotes.models.user import User
from voicenotes.schemas.auth import LoginRequest, SignupRequest, TokenResponse, UserResponse
from voicenotes.schemas.common import ErrorResponse
from voicenotes.services.auth_service import AuthService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/auth", tags=["Auth"])


@router.post(
    "/register",
    status_code=201,
    response_model=UserResponse,
    include_in_schema=False,
)
@router.post(
    "/signup",
    status_code=201,
    response_model=UserResponse,
    responses={409: {"description": "Email already registered", "model": ErrorResponse}},
    summary="Create an account",
)
async def signup(
    body: SignupRequest,
    db: AsyncSession = Depends(get_db_session),
    auth: AuthService = Depends(get_auth_service),
) -> UserResponse:
    user = await auth.register(db, username=body.username, email=body.email, password=body.password)
    return UserResponse.model_validate(user)


@router.post(
    "/login",
    response_model=TokenResponse,
    responses={401: {"description": "Invalid email or password", "model": ErrorResponse}},
    summary="Exchange credentials for an access token",
)
async def login(
    body: LoginRequest,
    db: AsyncSession = Depends(get_db_session),
    auth: AuthService = Depends(get_auth_service),
) -> TokenResponse:
    user, token = await auth.authenticate(db, email=body.email, password=body.password)
    return TokenResponse(
        access_token=token,
        expires_in=auth.tokens.lifetime_seconds,
        user=UserResponse.model_validate(user),
    )


@router.get(
    "/me",
    response_model=UserResponse,
    responses={401: {"description": "Missing or invalid bearer token", "model": ErrorResponse}},
    summary="The authenticated account",
)
async def me(user: User = Depends(get_current_user)) -> UserResponse:
    return UserResponse.model_validate(user)
