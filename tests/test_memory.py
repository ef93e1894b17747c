import pytest

from legianos.config import settings
from legianos.services import memory
from legianos.services.memory import SQLConversationStore, SupabaseConversationStore, get_conversation_store

pytestmark = pytest.mark.asyncio


async def test_history_is_oldest_first(sql_store):
    await sql_store.append_message("t1", "u1", "user", "first")
    await sql_store.append_message("t1", "u1", "assistant", "second")
    await sql_store.append_message("t1", "u1", "user", "third")

    turns = await sql_store.fetch_history("t1", "u1")
    assert [(t.role, t.content) for t in turns] == [
        ("user", "first"),
        ("assistant", "second"),
        ("user", "third"),
    ]


async def test_history_limit_keeps_most_recent(sql_store):
    for i in range(5):
        await sql_store.append_message("t1", "u1", "user", f"m{i}")

    turns = await sql_store.fetch_history("t1", "u1", limit=2)
    assert [t.content for t in turns] == ["m3", "m4"]


async def test_history_is_scoped_to_thread_and_user(sql_store):
    await sql_store.append_message("t1", "u1", "user", "mine")
    await sql_store.append_message("t2", "u1", "user", "other thread")
    await sql_store.append_message("t1", "u2", "user", "other user")

    turns = await sql_store.fetch_history("t1", "u1")
    assert [t.content for t in turns] == ["mine"]


async def test_list_threads(sql_store):
    await sql_store.append_message("t1", "u1", "user", "a")
    await sql_store.append_message("t2", "u1", "user", "b")
    await sql_store.append_message("t3", "u2", "user", "c")

    threads = await sql_store.list_threads("u1")
    assert {t.thread_id for t in threads} == {"t1", "t2"}
    assert all(t.last_message_at is not None for t in threads)


async def test_store_selection(monkeypatch):
    monkeypatch.setattr(memory, "_store", None)
    monkeypatch.setattr(settings, "supabase_url", None)
    assert isinstance(get_conversation_store(), SQLConversationStore)

    monkeypatch.setattr(memory, "_store", None)
    monkeypatch.setattr(settings, "supabase_url", "https://example.supabase.co")
    monkeypatch.setattr(settings, "supabase_service_key", "service-key")
    assert isinstance(get_conversation_store(), SupabaseConversationStore)
