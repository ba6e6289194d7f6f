"""
Shared fixtures for the mind map backend tests.

The database defaults to a throwaway SQLite file (via aiosqlite); point
TEST_DATABASE_URL at a Postgres test database to run against the real driver.
Tables are created before and dropped after every test.

The LLM is never called: generation tests use ``httpx.MockTransport`` or a
stub pipeline injected through FastAPI's dependency overrides.
"""
from __future__ import annotations

import json
import os
import tempfile
from typing import Any, AsyncGenerator, Callable, Dict, Optional

import httpx
import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import (
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import NullPool

# Override settings *before* any app module is imported, so that
# settings.DATABASE_URL and the global engine point at the test DB.
TEST_DATABASE_URL = os.environ.get(
    "TEST_DATABASE_URL",
    "sqlite+aiosqlite:///" + os.path.join(tempfile.gettempdir(), "mindmap_test.db"),
)
os.environ["DATABASE_URL"] = TEST_DATABASE_URL
os.environ["LLM_API_KEY"] = "test-key"
os.environ["LLM_BASE_URL"] = "https://llm.test/v1"

from app.database import Base, get_db  # noqa: E402
from app.main import app  # noqa: E402
from app.models import database_models  # noqa: E402,F401
from app.services.llm_client import OutlineGenerationClient  # noqa: E402


# ---------------------------------------------------------------------------
# Per-test fixtures
# ---------------------------------------------------------------------------

@pytest_asyncio.fixture
async def db_session() -> AsyncGenerator[AsyncSession, None]:
    """
    Provide a DB session for each test. After the test, all tables are dropped
    so each test starts with a clean slate.
    """
    engine = create_async_engine(TEST_DATABASE_URL, echo=False, poolclass=NullPool)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)

    session_factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    async with session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest_asyncio.fixture
async def client(db_session: AsyncSession) -> AsyncGenerator[AsyncClient, None]:
    """
    httpx AsyncClient wired to the FastAPI app with the DB dependency
    overridden to use the per-test session.
    """

    async def _override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = _override_get_db

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest.fixture
def sample_outline() -> Dict[str, Any]:
    """
    Two topics: the first has 1 subtopic → 1 point → 2 subpoints, the second
    has no subtopics.  Builds 7 nodes and 6 hierarchy edges.
    """
    return {
        "topics": [
            {
                "title": "Photosynthesis",
                "description": "How plants turn light into sugar",
                "keywords": ["light", "chlorophyll"],
                "subtopics": [
                    {
                        "title": "Light reactions",
                        "importance": "high",
                        "points": [
                            {
                                "title": "Water splitting",
                                "complexity": "advanced",
                                "examples": ["Photosystem II"],
                                "subpoints": ["Releases oxygen", "Feeds electrons"],
                            }
                        ],
                    }
                ],
                "crossReferences": [
                    {
                        "targetTopic": "Respiration",
                        "relationship": "Mirror process",
                        "strength": "strong",
                    }
                ],
            },
            {"title": "Respiration", "subtopics": []},
        ],
        "metadata": {
            "complexity": "basic",
            "estimatedReadingTime": 12,
            "keyTakeaways": ["Energy flows"],
            "suggestedReadings": [],
        },
    }


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

AUTH_HEADERS = {
    "X-User-Id": "test-user-1",
    "X-User-Email": "test1@example.com",
    "X-User-Name": "Test User 1",
}

AUTH_HEADERS_USER2 = {
    "X-User-Id": "test-user-2",
    "X-User-Email": "test2@example.com",
    "X-User-Name": "Test User 2",
}


def chat_reply(content: Any) -> Dict[str, Any]:
    """A chat-completions response body whose message content is *content*."""
    return {
        "id": "chatcmpl-test",
        "object": "chat.completion",
        "choices": [
            {
                "index": 0,
                "message": {"role": "assistant", "content": content},
                "finish_reason": "stop",
            }
        ],
    }


def mock_llm_client(
    content: Optional[str] = None,
    *,
    status_code: int = 200,
    body: Any = None,
    handler: Optional[Callable[[httpx.Request], httpx.Response]] = None,
    captured: Optional[list] = None,
) -> OutlineGenerationClient:
    """
    OutlineGenerationClient whose HTTP calls are answered locally.

    Either pass *content* (wrapped in a chat reply), a raw JSON *body*, or a
    full *handler*.  Requests are appended to *captured* when given.
    """

    def _default_handler(request: httpx.Request) -> httpx.Response:
        payload = body if body is not None else chat_reply(content)
        return httpx.Response(status_code, json=payload)

    def _handler(request: httpx.Request) -> httpx.Response:
        if captured is not None:
            captured.append(request)
        return (handler or _default_handler)(request)

    return OutlineGenerationClient(
        api_key="test-key",
        base_url="https://llm.test/v1",
        model="deepseek-chat",
        transport=httpx.MockTransport(_handler),
    )


def outline_json(outline: Dict[str, Any]) -> str:
    return json.dumps(outline)
