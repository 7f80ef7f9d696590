from enum import Enum


class UserRole(str, Enum):
    MEMBER = "member"
    ADMIN = "admin"


class TeamRole(str, Enum):
    """Role of a team member inside one project."""
    VIEWER = "viewer"
    EDITOR = "editor"
    ADMIN = "admin"


class ProjectStatus(str, Enum):
    PLANNING = "planning"
    ACTIVE = "active"
    ON_HOLD = "on-hold"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class Priority(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    URGENT = "urgent"


class TaskStatus(str, Enum):
    TODO = "todo"
    IN_PROGRESS = "in-progress"
    REVIEW = "review"
    DONE = "done"
    CANCELLED = "cancelled"
