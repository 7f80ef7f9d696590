import uuid
from datetime import datetime

from pydantic import BaseModel, Field, computed_field

from taskhive.models.enums import Priority, ProjectStatus, TeamRole
from taskhive.schemas.common import UTCDatetime


class ProjectCreate(BaseModel):
    """Schema for creating a new project. The owner is always the caller."""
    name: str = Field(min_length=3, max_length=100)
    description: str = Field(min_length=1, max_length=500)
    status: ProjectStatus = ProjectStatus.PLANNING
    priority: Priority = Priority.MEDIUM
    start_date: UTCDatetime | None = None
    due_date: UTCDatetime | None = None
    tags: list[str] = []

    model_config = {"extra": "ignore", "str_strip_whitespace": True}


class ProjectUpdate(BaseModel):
    """
    Schema for updating a project.

    There is no owner field: an owner in the body is dropped with the other
    unknown keys.
    """
    name: str | None = Field(default=None, min_length=3, max_length=100)
    description: str | None = Field(default=None, min_length=1, max_length=500)
    status: ProjectStatus | None = None
    priority: Priority | None = None
    start_date: UTCDatetime | None = None
    due_date: UTCDatetime | None = None
    tags: list[str] | None = None
    is_archived: bool | None = None

    model_config = {"extra": "ignore", "str_strip_whitespace": True}


class TeamMemberAdd(BaseModel):
    user_id: str = Field(min_length=1)
    role: TeamRole = TeamRole.VIEWER


class TeamMemberRead(BaseModel):
    user_id: str
    role: TeamRole
    joined_at: datetime

    model_config = {"from_attributes": True}


class ProjectRead(BaseModel):
    """Schema for reading a project with its team and task ids."""
    id: uuid.UUID
    name: str
    description: str
    owner_id: str
    status: ProjectStatus
    priority: Priority
    start_date: UTCDatetime | None
    due_date: UTCDatetime | None
    tags: list[str]
    is_archived: bool
    team: list[TeamMemberRead] = []
    tasks: list[uuid.UUID] = []
    created_at: datetime
    updated_at: datetime

    @computed_field
    @property
    def task_count(self) -> int:
        return len(self.tasks)

    model_config = {"from_attributes": True}
