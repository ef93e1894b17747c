import pytest
from datetime import datetime, timedelta, timezone
from typing import List, Optional

from fastapi.testclient import TestClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from legianos.db import create_db_and_tables
from legianos.errors import CollaboratorError
from legianos.main import app
from legianos.models import Goal, GoalType, Milestone, MilestoneStatus
from legianos.services.llm_client import get_llm_client
from legianos.services.memory import (
    ConversationStore,
    ConversationTurn,
    SQLConversationStore,
    ThreadInfo,
    get_conversation_store,
)

NOW = datetime(2025, 3, 1, 9, 0, tzinfo=timezone.utc)


class FakeStore(ConversationStore):
    """In-memory store; set `broken` to make every call fail."""

    def __init__(self):
        self.messages: List[tuple] = []
        self.broken = False

    def _check(self):
        if self.broken:
            raise CollaboratorError("store offline")

    async def append_message(self, thread_id, user_id, role, content):
        self._check()
        self.messages.append((thread_id, user_id, role, content))

    async def fetch_history(self, thread_id, user_id, limit=None):
        self._check()
        turns = [
            ConversationTurn(role=r, content=c)
            for t, u, r, c in self.messages
            if t == thread_id and u == user_id
        ]
        return turns[-limit:] if limit else turns

    async def list_threads(self, user_id):
        self._check()
        seen = []
        for t, u, _, _ in reversed(self.messages):
            if u == user_id and t not in seen:
                seen.append(t)
        return [ThreadInfo(thread_id=t) for t in seen]


class FakeLLM:
    """Records prompts; answers with `reply` or raises `error`."""

    def __init__(self, reply: str = "LLM says hi", error: Optional[Exception] = None):
        self.reply = reply
        self.error = error
        self.calls: List[dict] = []

    async def complete(self, prompt, thread_id, user_id, history=()):
        self.calls.append({"prompt": prompt, "thread_id": thread_id, "user_id": user_id, "history": list(history)})
        if self.error:
            raise self.error
        return self.reply


@pytest.fixture
def now() -> datetime:
    return NOW


@pytest.fixture
def store() -> FakeStore:
    return FakeStore()


@pytest.fixture
def llm() -> FakeLLM:
    return FakeLLM()


@pytest.fixture
def client(store: FakeStore, llm: FakeLLM) -> TestClient:
    app.dependency_overrides[get_conversation_store] = lambda: store
    app.dependency_overrides[get_llm_client] = lambda: llm
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
async def sql_store(tmp_path) -> SQLConversationStore:
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'memory.db'}")
    await create_db_and_tables(bind=engine)
    yield SQLConversationStore(async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False))
    await engine.dispose()


def make_goal(
    title: str = "Read more books",
    goal_type: GoalType = GoalType.LEARNING,
    milestone_statuses: tuple = (),
    **fields,
) -> Goal:
    milestones = [
        Milestone(id=f"milestone_{i}", title=f"Step {i}", status=status, created_at=NOW, updated_at=NOW)
        for i, status in enumerate(milestone_statuses, 1)
    ]
    data = dict(
        id=f"goal_{title.lower().replace(' ', '_')}",
        title=title,
        type=goal_type,
        start_date=NOW,
        end_date=NOW + timedelta(days=30),
        milestones=milestones,
        created_at=NOW,
        updated_at=NOW,
    )
    data.update(fields)
    return Goal(**data)


@pytest.fixture
def goal() -> Goal:
    return make_goal(
        milestone_statuses=(MilestoneStatus.COMPLETED, MilestoneStatus.NOT_STARTED,
                            MilestoneStatus.IN_PROGRESS, MilestoneStatus.NOT_STARTED),
        tags=["learning", "reading"],
        motivation="Grow every day",
    )


@pytest.fixture
def goal_factory():
    return make_goal


@pytest.fixture
def broken_llm() -> FakeLLM:
    return FakeLLM(error=CollaboratorError("no key", hint="Check that OPENAI_API_KEY is set to a valid key."))
