"""
VoiceNotes Backend: Full-Text Search Tests
==========================================

What:  Search behaviour through NoteService on SQLite (scored in Python),
       plus the SQL the PostgreSQL path emits.
"""

import pytest
from unittest.mock import AsyncMock, MagicMock
from uuid import uuid4

from sqlalchemy.dialects import postgresql

from voicenotes.models.note import Note, search_vector
from voicenotes.repositories.notes import NoteRepository, relevance, tokenize
from voicenotes.schemas.note import NoteSort


class TestTokenize:
    def test_lowercases_and_splits_on_punctuation(self):
        assert tokenize("Buy MILK, eggs & bread!") == ["buy", "milk", "eggs", "bread"]

    def test_underscores_split_tokens(self):
        assert tokenize("snake_case") == ["snake", "case"]

    def test_empty_inputs(self):
        assert tokenize(None) == []
        assert tokenize("") == []
        assert tokenize("?!...") == []

    def test_english_stopwords_dropped(self):
        assert tokenize("The minutes of THE meeting") == ["minutes", "meeting"]
        assert tokenize("and or the") == []

    def test_relevance_counts_occurrences_across_fields(self):
        note = Note(title="Milk run", content="milk and more milk", summary="Buy milk")
        assert relevance(note, ["milk"]) == 4.0
        assert relevance(note, ["eggs"]) == 0.0


class TestSearchOnSqlite:
    @pytest.mark.asyncio
    async def test_ranked_by_relevance(self, db, note_service, owner):
        heavy = await note_service.create_note(db, owner.id, "Milk run", "milk milk eggs")
        light = await note_service.create_note(db, owner.id, "Groceries", "buy milk")
        await note_service.create_note(db, owner.id, "Meeting", "quarterly plan")

        notes = await note_service.list_notes(db, owner.id, search="milk")

        assert [n.id for n in notes] == [heavy.id, light.id]

    @pytest.mark.asyncio
    async def test_ties_broken_by_newest_first(self, db, note_service, owner):
        older = await note_service.create_note(db, owner.id, "Trip", "pack the tent")
        newer = await note_service.create_note(db, owner.id, "Camping", "borrow a tent")

        notes = await note_service.list_notes(db, owner.id, search="tent")

        assert [n.id for n in notes] == [newer.id, older.id]

    @pytest.mark.asyncio
    async def test_date_sort_replaces_relevance_but_keeps_filter(self, db, note_service, owner):
        heavy = await note_service.create_note(db, owner.id, "Milk run", "milk milk eggs")
        light = await note_service.create_note(db, owner.id, "Groceries", "buy milk")
        await note_service.create_note(db, owner.id, "Meeting", "quarterly plan")

        notes = await note_service.list_notes(db, owner.id, search="milk", sort=NoteSort.DATE)

        assert [n.id for n in notes] == [light.id, heavy.id]

    @pytest.mark.asyncio
    async def test_any_token_may_match(self, db, note_service, owner):
        milk = await note_service.create_note(db, owner.id, "Groceries", "milk")
        plan = await note_service.create_note(db, owner.id, "Meeting", "quarterly plan")
        await note_service.create_note(db, owner.id, "Other", "nothing relevant")

        notes = await note_service.list_notes(db, owner.id, search="plan milk")

        assert {n.id for n in notes} == {milk.id, plan.id}

    @pytest.mark.asyncio
    async def test_matches_words_not_substrings(self, db, note_service, owner):
        await note_service.create_note(db, owner.id, "Groceries", "milk")

        assert await note_service.list_notes(db, owner.id, search="mil") == []

    @pytest.mark.asyncio
    async def test_summary_is_searched(self, db, note_service, owner):
        note = await note_service.create_note(db, owner.id, "Call", "talked for an hour")
        await note_service.update_note(db, owner.id, note.id, {"summary": "Agreed on the budget"})

        notes = await note_service.list_notes(db, owner.id, search="BUDGET")

        assert [n.id for n in notes] == [note.id]

    @pytest.mark.asyncio
    async def test_other_owners_never_match(self, db, note_service, owner, other_owner):
        await note_service.create_note(db, other_owner.id, "Secret", "launch codes")

        assert await note_service.list_notes(db, owner.id, search="launch") == []

    @pytest.mark.asyncio
    async def test_stopwords_never_match(self, db, note_service, owner):
        tent = await note_service.create_note(db, owner.id, "Trip", "pack the tent")

        assert await note_service.list_notes(db, owner.id, search="the") == []
        notes = await note_service.list_notes(db, owner.id, search="the tent")
        assert [n.id for n in notes] == [tent.id]

    @pytest.mark.asyncio
    async def test_punctuation_only_term_matches_nothing(self, db, note_service, owner):
        await note_service.create_note(db, owner.id, "Groceries", "milk")

        assert await note_service.list_notes(db, owner.id, search="!!!") == []


class TestPostgresqlQuery:
    """The PostgreSQL path is checked by compiling the statement it executes."""

    @staticmethod
    def _fake_session():
        session = MagicMock()
        session.bind.dialect.name = "postgresql"
        result = MagicMock()
        result.scalars.return_value.all.return_value = []
        session.execute = AsyncMock(return_value=result)
        return session

    @pytest.mark.asyncio
    async def test_uses_tsquery_match_and_rank(self):
        session = self._fake_session()
        repo = NoteRepository(session, min_rank=0.0)

        assert await repo.search_owned(uuid4(), "Milk, eggs") == []

        stmt = session.execute.await_args.args[0]
        sql = str(stmt.compile(dialect=postgresql.dialect()))
        assert "@@ to_tsquery('english'" in sql
        assert "ts_rank(" in sql
        assert "notes.owner_id =" in sql
        assert "ORDER BY ts_rank(" in sql
        assert sql.rstrip().endswith("notes.created_at DESC")

        params = stmt.compile(dialect=postgresql.dialect()).params
        assert "milk | eggs" in params.values()

    @pytest.mark.asyncio
    async def test_date_sort_orders_by_created_at_only(self):
        session = self._fake_session()
        repo = NoteRepository(session)

        await repo.search_owned(uuid4(), "milk", newest_first=True)

        sql = str(session.execute.await_args.args[0].compile(dialect=postgresql.dialect()))
        order_by = sql.split("ORDER BY", 1)[1]
        assert "ts_rank" not in order_by
        assert "notes.created_at DESC" in order_by

    @pytest.mark.asyncio
    async def test_no_tokens_skips_the_database(self):
        session = self._fake_session()

        assert await NoteRepository(session).search_owned(uuid4(), "--") == []
        assert await NoteRepository(session).search_owned(uuid4(), "the of") == []
        session.execute.assert_not_awaited()

    def test_search_vector_matches_index_expression(self):
        sql = str(search_vector().compile(dialect=postgresql.dialect()))
        assert sql.startswith("to_tsvector('english', coalesce(notes.title, '')")
        assert "coalesce(notes.content, '')" in sql
        assert "coalesce(notes.summary, '')" in sql
