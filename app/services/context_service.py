"""Context service — bounded project / workspace snapshots for the assistant."""

from __future__ import annotations

import datetime
import logging
from collections import Counter
from typing import Any

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.errors import ContextAssemblyError
from app.models import Profile, Project, ProjectMember, Task
from app.schemas.context import (
    MemberWorkload,
    PendingTask,
    ProjectContextSnapshot,
    ProjectRef,
    ProjectSummary,
    RecentTask,
    TaskStats,
    TeamMember,
    WorkspaceContextSnapshot,
)

logger = logging.getLogger(__name__)

_RECENT_TASKS = 10
_WORKSPACE_PROJECTS = 10
_WORKSPACE_TASKS = 10
_WORKSPACE_MEMBERS = 20


def _assignee_name(task: Task) -> str:
    if task.assignee is None:
        return "Unassigned"
    return task.assignee.display_name or "Unassigned"


def _task_stats(tasks: list[Task], today: datetime.date) -> TaskStats:
    return TaskStats(
        total=len(tasks),
        todo=sum(1 for t in tasks if t.status == "todo"),
        in_progress=sum(1 for t in tasks if t.status == "in_progress"),
        done=sum(1 for t in tasks if t.status == "done"),
        overdue=sum(1 for t in tasks if t.due_date and t.due_date <= today and t.is_open),
    )


async def project_context(
    db: AsyncSession, project_id: str, today: datetime.date | None = None
) -> ProjectContextSnapshot:
    today = today or datetime.date.today()

    project = await db.get(Project, project_id)
    if project is None:
        # Hidden by row-level policy or deleted — same outcome for the caller
        return ProjectContextSnapshot()

    tasks = list(
        (
            await db.execute(
                select(Task)
                .options(selectinload(Task.assignee))
                .where(Task.project_id == project_id)
                .order_by(Task.created_at.desc())
            )
        ).scalars().all()
    )
    members = list(
        (
            await db.execute(
                select(ProjectMember)
                .options(selectinload(ProjectMember.profile))
                .where(ProjectMember.project_id == project_id)
            )
        ).scalars().all()
    )

    workload = Counter(t.assigned_to for t in tasks if t.assigned_to and t.is_open)

    return ProjectContextSnapshot(
        project=ProjectSummary(
            id=project.id,
            name=project.name,
            description=project.description,
            status=project.status,
            start_date=project.start_date,
            end_date=project.end_date,
        ),
        task_stats=_task_stats(tasks, today),
        recent_tasks=[
            RecentTask(
                id=t.id,
                title=t.title,
                status=t.status,
                priority=t.priority,
                due_date=t.due_date,
                assignee=_assignee_name(t),
            )
            for t in tasks[:_RECENT_TASKS]
        ],
        team_members=[
            MemberWorkload(
                id=m.profile.id,
                name=m.profile.display_name,
                task_count=workload.get(m.profile.id, 0),
            )
            for m in members
        ],
        workload_distribution=dict(workload),
    )


async def workspace_context(db: AsyncSession, caller_id: str) -> WorkspaceContextSnapshot:
    projects = (
        await db.execute(
            select(Project).order_by(Project.created_at.desc()).limit(_WORKSPACE_PROJECTS)
        )
    ).scalars().all()

    my_tasks = (
        await db.execute(
            select(Task)
            .where(Task.assigned_to == caller_id, Task.status != "done")
            .order_by(Task.due_date.asc().nulls_last(), Task.created_at.desc())
            .limit(_WORKSPACE_TASKS)
        )
    ).scalars().all()

    profiles = (
        await db.execute(select(Profile).order_by(Profile.created_at).limit(_WORKSPACE_MEMBERS))
    ).scalars().all()

    return WorkspaceContextSnapshot(
        projects=[ProjectRef(id=p.id, name=p.name, status=p.status) for p in projects],
        my_pending_tasks=[
            PendingTask(
                id=t.id,
                title=t.title,
                status=t.status,
                priority=t.priority,
                due_date=t.due_date,
                project_id=t.project_id,
            )
            for t in my_tasks
        ],
        team_members=[TeamMember(id=p.id, name=p.display_name) for p in profiles],
    )


async def assemble_context(
    db: AsyncSession, caller_id: str, project_id: str | None = None
) -> dict[str, Any]:
    """Return the JSON-ready snapshot for *caller_id*.

    Scoped to one project when *project_id* is given, otherwise a workspace
    overview. Read-only; a failed lookup fails the whole assembly.
    """
    try:
        if project_id:
            snapshot = await project_context(db, project_id)
        else:
            snapshot = await workspace_context(db, caller_id)
    except SQLAlchemyError as exc:
        logger.exception("Context assembly failed for user %s (project %s)", caller_id, project_id)
        raise ContextAssemblyError(str(exc)) from exc
    return snapshot.model_dump(mode="json")
