"""
VoiceNotes Backend: Auth Service
================================

What:  Account signup, password login and current-user lookup.
How:   Passwords are hashed with ``PasswordHasher``; a successful login
       returns the user with a signed access token from ``TokenCodec``.
Who:   Called by the /api/auth routes and the ``get_current_user`` dependency.

Emails are stored lower-cased and compared lower-cased. Unknown email and
wrong password produce the same AuthError, so logins cannot be used to
discover which addresses are registered.
"""

import logging
from typing import Tuple
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from voicenotes.exceptions import AuthError, ConflictError, ValidationError
from voicenotes.models.user import User
from voicenotes.repositories.users import UserRepository
from voicenotes.security import PasswordHasher, TokenCodec

logger = logging.getLogger(__name__)

INVALID_LOGIN_MESSAGE = "Invalid email or password"


class AuthService:
    def __init__(self, hasher: PasswordHasher, tokens: TokenCodec):
        self.hasher = hasher
        self.tokens = tokens

    async def register(self, db: AsyncSession, username: str, email: str, password: str) -> User:
        """
        Create an account.

        Raises:
            ValidationError: blank username
            ConflictError: the email is already registered
        """
        if not username or not username.strip():
            raise ValidationError(message="Username must not be empty.", field="username")

        users = UserRepository(db)
        email = email.strip().lower()
        if await users.get_by_email(email) is not None:
            raise ConflictError(
                message="An account with this email already exists",
                context={"email": email},
            )

        user = User(
            username=username.strip(),
            email=email,
            password_hash=self.hasher.hash(password),
        )
        await users.add(user)
        await db.commit()

        logger.info("User %s registered", user.id)
        return user

    async def authenticate(self, db: AsyncSession, email: str, password: str) -> Tuple[User, str]:
        """
        Check credentials and issue an access token.

        Raises:
            AuthError: unknown email or wrong password
        """
        user = await UserRepository(db).get_by_email(email)
        if user is None or not self.hasher.verify(password, user.password_hash):
            logger.info("Failed login attempt")
            raise AuthError(message=INVALID_LOGIN_MESSAGE, context={"reason": "bad_credentials"})

        token = self.tokens.issue(user.id)
        logger.info("User %s logged in", user.id)
        return user, token

    async def get_user(self, db: AsyncSession, user_id: UUID) -> User:
        """
        Raises:
            AuthError: the token's user no longer exists
        """
        user = await UserRepository(db).get(user_id)
        if user is None:
            raise AuthError(context={"reason": "unknown_user", "user_id": str(user_id)})
        return user
