"""Context snapshots injected into the assistant's system prompt."""

from datetime import date

from pydantic import BaseModel


class ProjectSummary(BaseModel):
    id: str
    name: str
    description: str | None = None
    status: str
    start_date: date | None = None
    end_date: date | None = None


class TaskStats(BaseModel):
    total: int = 0
    todo: int = 0
    in_progress: int = 0
    done: int = 0
    overdue: int = 0


class RecentTask(BaseModel):
    id: str
    title: str
    status: str
    priority: str
    due_date: date | None = None
    assignee: str


class MemberWorkload(BaseModel):
    id: str
    name: str
    task_count: int = 0


class ProjectContextSnapshot(BaseModel):
    project: ProjectSummary | None = None
    task_stats: TaskStats = TaskStats()
    recent_tasks: list[RecentTask] = []
    team_members: list[MemberWorkload] = []
    workload_distribution: dict[str, int] = {}


class ProjectRef(BaseModel):
    id: str
    name: str
    status: str


class PendingTask(BaseModel):
    id: str
    title: str
    status: str
    priority: str
    due_date: date | None = None
    project_id: str


class TeamMember(BaseModel):
    id: str
    name: str


class WorkspaceContextSnapshot(BaseModel):
    projects: list[ProjectRef] = []
    my_pending_tasks: list[PendingTask] = []
    team_members: list[TeamMember] = []
