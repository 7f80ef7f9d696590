import uuid
from datetime import datetime

from pydantic import BaseModel, Field

from taskhive.models.enums import Priority, TaskStatus
from taskhive.models.types import utc_now
from taskhive.schemas.common import UTCDatetime


class Subtask(BaseModel):
    title: str = Field(min_length=1, max_length=200)
    completed: bool = False
    completed_at: UTCDatetime | None = None


class Attachment(BaseModel):
    filename: str = Field(min_length=1)
    url: str = Field(min_length=1)
    uploaded_at: UTCDatetime = Field(default_factory=utc_now)


class TaskCreate(BaseModel):
    """
    Schema for creating a new task.

    created_by and completed_at are not accepted; they are always derived.
    """
    title: str = Field(min_length=3, max_length=200)
    description: str | None = Field(default=None, max_length=1000)
    project_id: uuid.UUID
    assigned_to: str | None = None
    status: TaskStatus = TaskStatus.TODO
    priority: Priority = Priority.MEDIUM
    dependencies: list[uuid.UUID] = []
    subtasks: list[Subtask] = []
    estimated_hours: float | None = Field(default=None, ge=0)
    actual_hours: float = Field(default=0, ge=0)
    start_date: UTCDatetime | None = None
    due_date: UTCDatetime | None = None
    attachments: list[Attachment] = []
    tags: list[str] = []

    model_config = {"extra": "ignore", "str_strip_whitespace": True}


class TaskUpdate(BaseModel):
    """Schema for updating a task. project_id and created_by are immutable."""
    title: str | None = Field(default=None, min_length=3, max_length=200)
    description: str | None = Field(default=None, max_length=1000)
    assigned_to: str | None = None
    status: TaskStatus | None = None
    priority: Priority | None = None
    dependencies: list[uuid.UUID] | None = None
    subtasks: list[Subtask] | None = None
    estimated_hours: float | None = Field(default=None, ge=0)
    actual_hours: float | None = Field(default=None, ge=0)
    start_date: UTCDatetime | None = None
    due_date: UTCDatetime | None = None
    attachments: list[Attachment] | None = None
    tags: list[str] | None = None

    model_config = {"extra": "ignore", "str_strip_whitespace": True}


class StatusUpdate(BaseModel):
    status: TaskStatus


class CommentCreate(BaseModel):
    text: str = Field(min_length=1, max_length=1000)

    model_config = {"str_strip_whitespace": True}


class CommentRead(BaseModel):
    id: uuid.UUID
    user_id: str
    text: str
    created_at: datetime

    model_config = {"from_attributes": True}


class TaskRead(BaseModel):
    """Schema for reading a task with its comments and dependency ids."""
    id: uuid.UUID
    title: str
    description: str | None
    project_id: uuid.UUID
    created_by: str
    assigned_to: str | None
    status: TaskStatus
    priority: Priority
    dependencies: list[uuid.UUID] = []
    subtasks: list[Subtask]
    estimated_hours: float | None
    actual_hours: float
    start_date: UTCDatetime | None
    due_date: UTCDatetime | None
    completed_at: UTCDatetime | None
    comments: list[CommentRead] = []
    attachments: list[Attachment]
    tags: list[str]
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}
