"""Service test fixtures: async DB, document store, fake push gateway, API client.

Invariants:
    - Every test gets a fresh in-memory SQLite database
    - get_db, get_push_gateway and get_principal_resolver are overridden for
      route tests; db_manager is patched for background notification tasks
    - FakePushGateway records every submitted batch and never touches the network

Design Decisions:
    - SQLite in-memory on one shared connection (StaticPool): sessions opened by
      the route, the background task and the test all see the same data
    - Concurrent races are simulated with fakes.StaleReadStore instead of
      real parallel transactions
"""

from datetime import datetime, timedelta, timezone
from itertools import count

import jwt
import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import (
    AsyncSession, create_async_engine, async_sessionmaker,
)
from sqlalchemy.pool import StaticPool

import app.infrastructure.database as db_module
from app.api.dependencies import get_principal_resolver, get_push_gateway
from app.core.domain_types import (
    COMMENTS, CONVERSATIONS, POSTS, STORIES, USER_DEVICES, USERS,
)
from app.db.base import Base
from app.infrastructure.database import DatabaseSessionManager, get_db
from app.infrastructure.document_store import SqlDocumentStore
from app.infrastructure.principal_resolver import JWTPrincipalResolver
from app.main import app
from tests.services.fakes import FakePushGateway

JWT_SECRET = "route-test-secret-0123456789abcdef01234"

_usernames = count(1)


@pytest.fixture
async def test_engine():
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        echo=False,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest.fixture
async def test_session_factory(test_engine):
    return async_sessionmaker(
        test_engine, class_=AsyncSession, expire_on_commit=False,
    )


@pytest.fixture
async def test_db(test_session_factory):
    async with test_session_factory() as session:
        yield session


@pytest.fixture
def store(test_db):
    return SqlDocumentStore(test_db)


@pytest.fixture
async def fresh_store(test_session_factory):
    """A store on its own session, for reading back what another session wrote."""
    async with test_session_factory() as session:
        yield SqlDocumentStore(session)


@pytest.fixture
def gateway():
    return FakePushGateway()


# ─── Seed helpers ────────────────────────────────────────────────

@pytest.fixture
def seed(store):
    """Namespace of coroutine helpers that insert rows through the store."""

    class _Seed:
        async def user(self, user_id=None, username=None, display_name=None):
            data = {"username": username or f"user{next(_usernames)}"}
            if user_id is not None:
                data["id"] = user_id
            data["display_name"] = display_name
            return await store.create(USERS, data)

        async def post(self, author_id, post_id=None, content="hello"):
            data = {"author_id": author_id, "content": content}
            if post_id is not None:
                data["id"] = post_id
            return await store.create(POSTS, data)

        async def comment(self, post_id, author_id, content="first", parent_comment_id=None):
            return await store.create(COMMENTS, {
                "post_id": post_id,
                "author_id": author_id,
                "content": content,
                "parent_comment_id": parent_comment_id,
            })

        async def story(self, author_id):
            return await store.create(STORIES, {"author_id": author_id, "caption": "hi"})

        async def device(self, user_id, device_id, token, minutes_ago=0, disabled=False):
            now = datetime.now(timezone.utc)
            return await store.create(USER_DEVICES, {
                "user_id": user_id,
                "device_id": device_id,
                "push_token": token,
                "platform": "ios",
                "last_seen_at": now - timedelta(minutes=minutes_ago),
                "disabled_at": now if disabled else None,
            })

        async def group(self, participants):
            return await store.create(CONVERSATIONS, {
                "is_group": True, "participants": list(participants),
            })

    return _Seed()


# ─── API client ──────────────────────────────────────────────────

@pytest.fixture
def auth_headers():
    """Build an Authorization header for a user id."""
    def _headers(user_id: int) -> dict:
        token = jwt.encode({"sub": str(user_id)}, JWT_SECRET, algorithm="HS256")
        return {"Authorization": f"Bearer {token}"}
    return _headers


@pytest.fixture
async def client(test_engine, test_session_factory, gateway):
    """FastAPI test client with DB, auth and push gateway overridden."""
    async def override_get_db():
        async with test_session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_push_gateway] = lambda: gateway
    app.dependency_overrides[get_principal_resolver] = (
        lambda: JWTPrincipalResolver(JWT_SECRET)
    )

    # Background notification tasks open sessions through db_manager
    original_manager = db_module.db_manager
    fake_manager = DatabaseSessionManager.__new__(DatabaseSessionManager)
    fake_manager.engine = test_engine
    fake_manager._session_factory = test_session_factory
    db_module.db_manager = fake_manager

    async with AsyncClient(
        transport=ASGITransport(app=app), base_url="http://test",
    ) as c:
        yield c

    app.dependency_overrides.clear()
    db_module.db_manager = original_manager
