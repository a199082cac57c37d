"""
VoiceNotes Backend: Test Configuration (conftest.py)
====================================================

What:  Shared pytest fixtures for the whole suite.
How:   Every test gets its own SQLite file under ``tmp_path`` (aiosqlite
       driver), explicit Settings and a deterministic fake AI delegate.
       API tests drive the app through httpx's ASGITransport.

Fixture Hierarchy (all function-scoped):
    settings ─┬─ engine ── session_factory ── db
              └─ app ── client ─┬─ auth_headers
                                └─ other_auth_headers
    fake_ai   (shared by app and the service-level fixtures)
"""

import os
from typing import AsyncGenerator, List, Optional, Tuple

# Before any voicenotes import: the module-level app in voicenotes.main reads
# settings at import time.
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///./test.db")
os.environ.setdefault("GEMINI_API_KEY", "test-key-not-real")
os.environ.setdefault("LOG_LEVEL", "WARNING")

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from voicenotes.config import Settings
from voicenotes.database import create_engine_from_settings, create_schema, create_session_factory
from voicenotes.main import create_app
from voicenotes.models.user import User
from voicenotes.services.ai_base import AIDelegate
from voicenotes.services.note_service import NoteService

TEST_PASSWORD = "correct-horse-battery"


class FakeAIDelegate(AIDelegate):
    """
    Deterministic stand-in for the AI provider.

    Records every call. Set ``error`` to make the next calls raise it.
    """

    def __init__(self):
        self.transcript = "remember to buy milk and eggs"
        self.error: Optional[Exception] = None
        self.healthy = True
        self.transcribe_calls: List[Tuple[bytes, str]] = []
        self.summarize_calls: List[str] = []

    async def transcribe(self, audio: bytes, mime_type: str) -> str:
        self.transcribe_calls.append((audio, mime_type))
        if self.error is not None:
            raise self.error
        return self.transcript

    async def summarize(self, text: str) -> str:
        self.summarize_calls.append(text)
        if self.error is not None:
            raise self.error
        return f"Summary: {text[:40]}"

    async def health_check(self) -> bool:
        return self.healthy


@pytest.fixture
def settings(tmp_path) -> Settings:
    return Settings(
        _env_file=None,
        database_url=f"sqlite+aiosqlite:///{tmp_path / 'voicenotes_test.db'}",
        gemini_api_key="test-key-not-real",
        jwt_secret="test-secret-not-for-production",
        log_level="WARNING",
    )


@pytest.fixture
def fake_ai() -> FakeAIDelegate:
    return FakeAIDelegate()


# ══════════════════════════════════════════════════════════════════════════
# Service-level fixtures (no HTTP)
# ══════════════════════════════════════════════════════════════════════════

@pytest_asyncio.fixture
async def engine(settings):
    engine = create_engine_from_settings(settings)
    await create_schema(engine)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return create_session_factory(engine)


@pytest_asyncio.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
def note_service(fake_ai) -> NoteService:
    return NoteService(fake_ai)


async def _make_user(db, username: str, email: str) -> User:
    user = User(username=username, email=email, password_hash="not-a-real-hash")
    db.add(user)
    await db.commit()
    return user


@pytest_asyncio.fixture
async def owner(db) -> User:
    return await _make_user(db, "alice", "alice@example.com")


@pytest_asyncio.fixture
async def other_owner(db) -> User:
    return await _make_user(db, "bob", "bob@example.com")


# ══════════════════════════════════════════════════════════════════════════
# API fixtures
# ══════════════════════════════════════════════════════════════════════════

@pytest_asyncio.fixture
async def app(settings, fake_ai):
    app = create_app(settings, ai_delegate=fake_ai)
    # ASGITransport does not run the lifespan; create the tables here.
    await create_schema(app.state.engine)
    yield app
    await app.state.engine.dispose()


@pytest_asyncio.fixture
async def client(app) -> AsyncGenerator[AsyncClient, None]:
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


async def _signup_and_login(client: AsyncClient, username: str, email: str) -> dict:
    response = await client.post(
        "/api/auth/signup",
        json={"username": username, "email": email, "password": TEST_PASSWORD},
    )
    assert response.status_code == 201, response.text
    response = await client.post(
        "/api/auth/login",
        json={"email": email, "password": TEST_PASSWORD},
    )
    assert response.status_code == 200, response.text
    return {"Authorization": f"Bearer {response.json()['access_token']}"}


@pytest_asyncio.fixture
async def auth_headers(client) -> dict:
    return await _signup_and_login(client, "alice", "alice@example.com")


@pytest_asyncio.fixture
async def other_auth_headers(client) -> dict:
    return await _signup_and_login(client, "bob", "bob@example.com")
