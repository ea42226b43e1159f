from app.models.profile import Profile
from app.models.project import Project, ProjectMember
from app.models.task import Task

__all__ = ["Profile", "Project", "ProjectMember", "Task"]
