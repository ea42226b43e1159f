"""Shared fixtures: in-memory backend, stub collaborators, ASGI client."""

import datetime
import json
from collections.abc import Callable

import httpx
import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from app.adapters.gateway import OpenAICompatibleGateway
from app.adapters.supabase import SupabaseIdentityProvider
from app.database import Base, get_db, read_only_session
from app.main import app
from app.models import Profile, Project, ProjectMember, Task

VALID_TOKEN = "valid-token"
USER_ID = "00000000-0000-0000-0000-000000000001"
GATEWAY_URL = "https://gateway.test/v1/chat/completions"
AUTH_URL = "https://backend.test/auth/v1/user"


def sse_body(*deltas: str, done: bool = True) -> bytes:
    """Build an upstream-style event stream carrying *deltas*."""
    lines = []
    for delta in deltas:
        record = {"choices": [{"delta": {"content": delta}}]}
        lines.append(f"data: {json.dumps(record, ensure_ascii=False)}\n\n")
    if done:
        lines.append("data: [DONE]\n\n")
    return "".join(lines).encode()


@pytest_asyncio.fixture
async def db_engine():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture
async def db(db_engine) -> AsyncSession:
    session_factory = async_sessionmaker(db_engine, class_=AsyncSession, expire_on_commit=False)
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture
async def seed(db: AsyncSession):
    """Insert a small project: two members, tasks in every state."""
    today = datetime.date.today()
    alice = Profile(id=USER_ID, email="alice@example.com", full_name="Alice Park")
    bob = Profile(id="00000000-0000-0000-0000-000000000002", email="bob@example.com")
    project = Project(
        id="p-1",
        name="Website relaunch",
        description="New marketing site",
        status="active",
        start_date=today - datetime.timedelta(days=30),
        created_by=alice.id,
    )
    db.add_all([alice, bob, project])
    await db.flush()
    db.add_all([
        ProjectMember(project_id="p-1", user_id=alice.id),
        ProjectMember(project_id="p-1", user_id=bob.id),
    ])
    base = datetime.datetime(2026, 1, 1, 9, 0)
    db.add_all([
        Task(id="t-late", project_id="p-1", title="Write copy", status="todo",
             due_date=today - datetime.timedelta(days=1), assigned_to=alice.id,
             created_by=alice.id, created_at=base),
        Task(id="t-late-done", project_id="p-1", title="Pick fonts", status="done",
             due_date=today - datetime.timedelta(days=1), assigned_to=bob.id,
             created_by=alice.id, created_at=base + datetime.timedelta(hours=1)),
        Task(id="t-wip", project_id="p-1", title="Build header", status="in_progress",
             due_date=today + datetime.timedelta(days=3), assigned_to=bob.id,
             created_by=alice.id, created_at=base + datetime.timedelta(hours=2)),
        Task(id="t-open", project_id="p-1", title="Choose CMS", status="todo",
             created_by=alice.id, created_at=base + datetime.timedelta(hours=3)),
    ])
    await db.commit()
    return {"alice": alice, "bob": bob, "project": project}


def auth_handler(request: httpx.Request) -> httpx.Response:
    if request.headers.get("authorization") == f"Bearer {VALID_TOKEN}":
        return httpx.Response(200, json={"id": USER_ID, "email": "alice@example.com"})
    return httpx.Response(401, json={"msg": "invalid JWT"})


class UpstreamRecorder:
    """Records requests to the fake model gateway and replays a canned reply."""

    def __init__(self) -> None:
        self.requests: list[dict] = []
        self.status_code = 200
        self.body: bytes = sse_body("Hello", ", world")

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(json.loads(request.content))
        if self.status_code != 200:
            return httpx.Response(self.status_code, text=self.body.decode())
        return httpx.Response(
            200, content=self.body, headers={"content-type": "text/event-stream"}
        )


@pytest.fixture
def upstream() -> UpstreamRecorder:
    return UpstreamRecorder()


@pytest_asyncio.fixture
async def client(db_engine, upstream: Callable) -> AsyncClient:
    session_factory = async_sessionmaker(db_engine, class_=AsyncSession, expire_on_commit=False)

    async def _get_db():
        async with read_only_session(session_factory) as session:
            yield session

    app.dependency_overrides[get_db] = _get_db
    app.state.identity_provider = SupabaseIdentityProvider(
        AUTH_URL, "service-key", httpx.AsyncClient(transport=httpx.MockTransport(auth_handler))
    )
    app.state.gateway = OpenAICompatibleGateway(
        GATEWAY_URL,
        "gateway-key",
        "test-model",
        httpx.AsyncClient(transport=httpx.MockTransport(upstream)),
    )
    transport = ASGITransport(app=app, raise_app_exceptions=False)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
    await app.state.gateway.aclose()
    await app.state.identity_provider.aclose()
    del app.state.gateway
    del app.state.identity_provider
    app.dependency_overrides.clear()
