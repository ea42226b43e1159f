"""Context assembler tests."""

import datetime
from unittest.mock import AsyncMock

import pytest
from sqlalchemy import select
from sqlalchemy.exc import InvalidRequestError, OperationalError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.database import read_only_session
from app.errors import ContextAssemblyError
from app.models import Profile, Project, Task
from app.services import context_service

from tests.conftest import USER_ID


@pytest.mark.asyncio
async def test_project_task_stats(db, seed):
    ctx = await context_service.assemble_context(db, USER_ID, "p-1")
    assert ctx["project"]["name"] == "Website relaunch"
    assert ctx["task_stats"] == {
        "total": 4,
        "todo": 2,
        "in_progress": 1,
        "done": 1,
        # Yesterday + todo counts; yesterday + done does not
        "overdue": 1,
    }


@pytest.mark.asyncio
async def test_recent_tasks_newest_first_with_assignee_names(db, seed):
    ctx = await context_service.assemble_context(db, USER_ID, "p-1")
    tasks = ctx["recent_tasks"]
    assert [t["id"] for t in tasks] == ["t-open", "t-wip", "t-late-done", "t-late"]
    names = {t["id"]: t["assignee"] for t in tasks}
    assert names["t-late"] == "Alice Park"
    assert names["t-wip"] == "bob@example.com"  # no full name → email
    assert names["t-open"] == "Unassigned"


@pytest.mark.asyncio
async def test_workload_counts_open_tasks(db, seed):
    ctx = await context_service.assemble_context(db, USER_ID, "p-1")
    bob_id = seed["bob"].id
    assert ctx["workload_distribution"] == {USER_ID: 1, bob_id: 1}
    members = {m["id"]: m for m in ctx["team_members"]}
    assert members[USER_ID] == {"id": USER_ID, "name": "Alice Park", "task_count": 1}
    assert members[bob_id]["name"] == "bob@example.com"


@pytest.mark.asyncio
async def test_recent_tasks_truncated_to_ten(db, seed):
    base = datetime.datetime(2026, 2, 1)
    db.add_all([
        Task(project_id="p-1", title=f"Bulk {i}", created_by=USER_ID,
             created_at=base + datetime.timedelta(minutes=i))
        for i in range(12)
    ])
    await db.commit()
    ctx = await context_service.assemble_context(db, USER_ID, "p-1")
    assert ctx["task_stats"]["total"] == 16
    assert len(ctx["recent_tasks"]) == 10
    assert ctx["recent_tasks"][0]["title"] == "Bulk 11"


@pytest.mark.asyncio
async def test_unknown_project_yields_empty_snapshot(db, seed):
    ctx = await context_service.assemble_context(db, USER_ID, "missing")
    assert ctx["project"] is None
    assert ctx["task_stats"]["total"] == 0
    assert ctx["recent_tasks"] == []


@pytest.mark.asyncio
async def test_workspace_context(db, seed):
    today = datetime.date.today()
    db.add_all([
        Project(id="p-2", name="Mobile app", status="on_hold", created_by=USER_ID),
        Task(id="t-soon", project_id="p-2", title="Sketch screens", assigned_to=USER_ID,
             due_date=today + datetime.timedelta(days=1), created_by=USER_ID),
        Task(id="t-undated", project_id="p-2", title="Think about icons",
             assigned_to=USER_ID, created_by=USER_ID),
        Task(id="t-finished", project_id="p-2", title="Kickoff", status="done",
             assigned_to=USER_ID, created_by=USER_ID),
    ])
    await db.commit()

    ctx = await context_service.assemble_context(db, USER_ID)
    assert {p["id"] for p in ctx["projects"]} == {"p-1", "p-2"}
    # Caller's open tasks only, by due date with undated last
    assert [t["id"] for t in ctx["my_pending_tasks"]] == ["t-late", "t-soon", "t-undated"]
    assert ctx["my_pending_tasks"][0]["due_date"] == (today - datetime.timedelta(days=1)).isoformat()
    assert {m["name"] for m in ctx["team_members"]} == {"Alice Park", "bob@example.com"}


@pytest.mark.asyncio
async def test_workspace_context_bounds(db):
    db.add_all([Profile(id=f"u-{i}", email=f"u{i}@example.com") for i in range(25)])
    db.add_all([Project(name=f"P{i}", created_by="u-0") for i in range(12)])
    await db.commit()
    ctx = await context_service.assemble_context(db, "u-0")
    assert len(ctx["projects"]) == 10
    assert len(ctx["team_members"]) == 20
    assert ctx["my_pending_tasks"] == []


@pytest.mark.asyncio
async def test_lookup_failure_is_fatal():
    db = AsyncMock()
    db.get.side_effect = OperationalError("SELECT", {}, Exception("connection lost"))
    with pytest.raises(ContextAssemblyError):
        await context_service.assemble_context(db, USER_ID, "p-1")


@pytest.mark.asyncio
async def test_task_due_today_is_overdue(db, seed):
    db.add_all([
        Task(id="t-today", project_id="p-1", title="Ship beta", status="in_progress",
             due_date=datetime.date.today(), created_by=USER_ID),
        Task(id="t-today-done", project_id="p-1", title="Book venue", status="done",
             due_date=datetime.date.today(), created_by=USER_ID),
    ])
    await db.commit()
    ctx = await context_service.assemble_context(db, USER_ID, "p-1")
    assert ctx["task_stats"]["overdue"] == 2


@pytest.mark.asyncio
async def test_backend_session_refuses_writes(db_engine, seed):
    factory = async_sessionmaker(db_engine, class_=AsyncSession, expire_on_commit=False)
    async with read_only_session(factory) as session:
        ctx = await context_service.assemble_context(session, USER_ID, "p-1")
        assert ctx["project"]["id"] == "p-1"
        session.add(Profile(id="u-intruder", email="x@example.com"))
        with pytest.raises(InvalidRequestError):
            await session.flush()

    async with factory() as session:
        assert await session.get(Profile, "u-intruder") is None
        names = (await session.execute(select(Profile.email))).scalars().all()
        assert "x@example.com" not in names
