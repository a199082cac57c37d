"""
VoiceNotes Backend: Credentials
===============================

What:  Password hashing and access-token issue/verification.
How:   passlib ``CryptContext`` for password hashes; python-jose HS256 JWTs
       carrying ``sub`` (user id), ``iat``, ``exp`` and ``type="access"``.

Token verification needs only the secret: signature, expiry and claim shape
are checked without touching the database.
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Dict
from uuid import UUID

from jose import ExpiredSignatureError, JWTError, jwt
from passlib.context import CryptContext

from voicenotes.config import Settings
from voicenotes.exceptions import AuthError

logger = logging.getLogger(__name__)

TOKEN_TYPE = "access"


class PasswordHasher:
    """Thin wrapper around a passlib context built from settings."""

    def __init__(self, scheme: str = "pbkdf2_sha256"):
        self._context = CryptContext(schemes=[scheme], deprecated="auto")

    def hash(self, plain: str) -> str:
        return self._context.hash(plain)

    def verify(self, plain: str, hashed: str) -> bool:
        """True when ``plain`` matches ``hashed``; unknown or corrupt hashes never match."""
        try:
            return self._context.verify(plain, hashed)
        except (ValueError, TypeError):
            logger.warning("Stored password hash could not be parsed")
            return False


class TokenCodec:
    """Issues and verifies signed access tokens."""

    def __init__(self, secret: str, algorithm: str = "HS256", expire_minutes: int = 60):
        self.secret = secret
        self.algorithm = algorithm
        self.expire_minutes = expire_minutes

    @classmethod
    def from_settings(cls, settings: Settings) -> "TokenCodec":
        return cls(
            secret=settings.jwt_secret,
            algorithm=settings.jwt_algorithm,
            expire_minutes=settings.jwt_expire_minutes,
        )

    @property
    def lifetime_seconds(self) -> int:
        return self.expire_minutes * 60

    def issue(self, user_id: UUID, expires_delta: timedelta | None = None) -> str:
        now = datetime.now(timezone.utc)
        exp = now + (expires_delta if expires_delta is not None else timedelta(minutes=self.expire_minutes))
        payload: Dict[str, Any] = {
            "sub": str(user_id),
            "type": TOKEN_TYPE,
            "iat": int(now.timestamp()),
            "exp": int(exp.timestamp()),
        }
        return jwt.encode(payload, self.secret, algorithm=self.algorithm)

    def verify(self, token: str) -> UUID:
        """
        Return the user id embedded in a valid access token.

        Raises:
            AuthError: bad signature, expired, wrong token type, or a
                missing/malformed ``sub`` claim
        """
        try:
            payload = jwt.decode(token, self.secret, algorithms=[self.algorithm])
        except ExpiredSignatureError:
            raise AuthError(message="Access token has expired", context={"reason": "expired"})
        except JWTError as e:
            raise AuthError(context={"reason": "invalid_token", "error": str(e)})

        if payload.get("type") != TOKEN_TYPE:
            raise AuthError(context={"reason": "wrong_token_type"})

        sub = payload.get("sub")
        try:
            return UUID(str(sub))
        except (TypeError, ValueError):
            raise AuthError(context={"reason": "invalid_subject"})
