"""
Test fixtures for Ultramagnus conversation tests.
"""

import os
from datetime import datetime, timedelta

import pytest
from httpx import ASGITransport, AsyncClient

# Set test database before importing app
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"

from ultramagnus.main import app
from ultramagnus.api.deps import get_chat_model, get_clock, get_summarizer
from ultramagnus.config import ConversationLimits
from ultramagnus.conversation import build_components
from ultramagnus.db import Base, Report, get_session
from ultramagnus.db.session import make_engine, make_sessionmaker

OWNER_ID = "user-owner"
OTHER_USER_ID = "user-other"
REPORT_ID = "report-1"


class FakeClock:
    """Deterministic clock; every reading advances by `step`."""

    def __init__(self, start: datetime, step: timedelta = timedelta(seconds=1)):
        self.now = start
        self.step = step

    def __call__(self) -> datetime:
        current = self.now
        self.now += self.step
        return current

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


class RecordingSummarizer:
    """Returns a short numbered summary and remembers what it was asked."""

    def __init__(self):
        self.calls: list[str] = []

    async def summarize(self, text: str) -> str:
        self.calls.append(text)
        return f"summary #{len(self.calls)}"


class FailingSummarizer:
    async def summarize(self, text: str) -> str:
        raise TimeoutError("provider timed out")


class FakeChatModel:
    """Chat capability returning canned text and recording the turns it saw."""

    def __init__(self, reply: str = "**AAPL** looks strong.", chunks: list[str] | None = None, error: Exception | None = None):
        self.reply = reply
        self.chunks = chunks or ["**AAPL** ", "looks ", "strong."]
        self.error = error
        self.seen: list = []

    async def complete(self, turns) -> str:
        self.seen.append(list(turns))
        if self.error:
            raise self.error
        return self.reply

    async def stream(self, turns):
        self.seen.append(list(turns))
        if self.error:
            raise self.error
        for chunk in self.chunks:
            yield chunk


@pytest.fixture
async def engine():
    """In-memory database with all tables, one per test."""
    engine = make_engine("sqlite+aiosqlite:///:memory:")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return make_sessionmaker(engine)


@pytest.fixture
async def db_session(session_factory):
    """Direct database session for test setup/assertions."""
    async with session_factory() as session:
        yield session


@pytest.fixture
async def report(db_session):
    report = Report(id=REPORT_ID, owner_id=OWNER_ID, ticker="AAPL", title="Apple deep dive")
    db_session.add(report)
    await db_session.commit()
    return report


@pytest.fixture
def clock():
    return FakeClock(datetime(2026, 1, 5, 9, 30, 0))


@pytest.fixture
def limits():
    return ConversationLimits()


@pytest.fixture
def summarizer():
    return RecordingSummarizer()


@pytest.fixture
def chat_model():
    return FakeChatModel()


@pytest.fixture
def components(db_session, summarizer, limits, clock):
    return build_components(db_session, summarizer, limits, clock=clock)


@pytest.fixture
async def client(session_factory, summarizer, clock, chat_model):
    """Async HTTP client for testing FastAPI app."""

    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_session] = override_get_db
    app.dependency_overrides[get_summarizer] = lambda: summarizer
    app.dependency_overrides[get_clock] = lambda: clock
    app.dependency_overrides[get_chat_model] = lambda: chat_model

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()
