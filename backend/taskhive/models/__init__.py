from taskhive.models.enums import Priority, ProjectStatus, TaskStatus, TeamRole, UserRole
from taskhive.models.types import UTCDateTime, as_utc, utc_now
from taskhive.models.user import User, UserProject
from taskhive.models.project import Project, TeamMember
from taskhive.models.task import Task, TaskComment, TaskDependency

__all__ = [
    "Priority",
    "ProjectStatus",
    "TaskStatus",
    "TeamRole",
    "UserRole",
    "User",
    "UserProject",
    "Project",
    "TeamMember",
    "Task",
    "TaskComment",
    "TaskDependency",
    "UTCDateTime",
    "as_utc",
    "utc_now",
]
