"""Persistence adapter for user accounts."""

import logging
from typing import Optional
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from voicenotes.exceptions import ConflictError, PersistenceError
from voicenotes.models.user import User

logger = logging.getLogger(__name__)


class UserRepository:
    """Reads and inserts ``User`` rows; emails are compared lower-cased."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def add(self, user: User) -> User:
        """
        Insert a new account.

        Raises:
            ConflictError: the email is already registered (unique index hit,
                e.g. two concurrent signups with the same address)
            PersistenceError: any other database failure
        """
        try:
            self.session.add(user)
            await self.session.flush()
        except IntegrityError as e:
            await self.session.rollback()
            raise ConflictError(
                message="An account with this email already exists",
                context={"email": user.email},
            ) from e
        except SQLAlchemyError as e:
            logger.error("Database error creating user: %s", str(e))
            raise PersistenceError(context={"operation": "insert user"}) from e
        return user

    async def get(self, user_id: UUID) -> Optional[User]:
        try:
            return await self.session.get(User, user_id)
        except SQLAlchemyError as e:
            logger.error("Database error fetching user %s: %s", user_id, str(e))
            raise PersistenceError(context={"operation": "get user"}) from e

    async def get_by_email(self, email: str) -> Optional[User]:
        try:
            result = await self.session.execute(
                select(User).where(User.email == email.strip().lower())
            )
            return result.scalar_one_or_none()
        except SQLAlchemyError as e:
            logger.error("Database error looking up user by email: %s", str(e))
            raise PersistenceError(context={"operation": "get user by email"}) from e
