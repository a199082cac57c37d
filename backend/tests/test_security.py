"""Password hashing and access-token tests."""

import pytest
from datetime import timedelta
from uuid import uuid4

from jose import jwt

from voicenotes.exceptions import AuthError
from voicenotes.security import PasswordHasher, TokenCodec


class TestPasswordHasher:
    def setup_method(self):
        self.hasher = PasswordHasher()

    def test_hash_is_not_the_password(self):
        hashed = self.hasher.hash("s3cret-password")
        assert hashed != "s3cret-password"
        assert self.hasher.verify("s3cret-password", hashed)

    def test_wrong_password_rejected(self):
        hashed = self.hasher.hash("s3cret-password")
        assert not self.hasher.verify("other-password", hashed)

    def test_unparseable_hash_never_matches(self):
        assert not self.hasher.verify("s3cret-password", "not-a-hash")


class TestTokenCodec:
    def setup_method(self):
        self.codec = TokenCodec(secret="unit-test-secret", expire_minutes=5)

    def test_round_trip_returns_user_id(self):
        user_id = uuid4()
        assert self.codec.verify(self.codec.issue(user_id)) == user_id

    def test_lifetime_seconds(self):
        assert self.codec.lifetime_seconds == 300

    def test_expired_token_rejected(self):
        token = self.codec.issue(uuid4(), expires_delta=timedelta(seconds=-10))

        with pytest.raises(AuthError) as exc_info:
            self.codec.verify(token)
        assert exc_info.value.message == "Access token has expired"

    def test_token_signed_with_other_secret_rejected(self):
        token = TokenCodec(secret="someone-else").issue(uuid4())

        with pytest.raises(AuthError):
            self.codec.verify(token)

    def test_garbage_rejected(self):
        with pytest.raises(AuthError):
            self.codec.verify("definitely.not.a-jwt")

    def test_wrong_token_type_rejected(self):
        token = jwt.encode(
            {"sub": str(uuid4()), "type": "refresh"},
            "unit-test-secret",
            algorithm="HS256",
        )
        with pytest.raises(AuthError):
            self.codec.verify(token)

    def test_malformed_subject_rejected(self):
        token = jwt.encode(
            {"sub": "not-a-uuid", "type": "access"},
            "unit-test-secret",
            algorithm="HS256",
        )
        with pytest.raises(AuthError):
            self.codec.verify(token)
