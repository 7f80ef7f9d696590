import uuid
from datetime import datetime
from typing import Any

from sqlalchemy import JSON, Column
from sqlmodel import Field, SQLModel

from taskhive.models.enums import Priority, TaskStatus
from taskhive.models.types import UTCDateTime, utc_now


class Task(SQLModel, table=True):
    """
    Task model, owned by exactly one project.

    Key fields:
    - project_id / created_by: fixed at creation
    - completed_at: derived from status, set only by the task manager
    """

    __tablename__ = "tasks"

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    title: str = Field(index=True)
    description: str | None = Field(default=None)

    # Foreign keys
    project_id: uuid.UUID = Field(foreign_key="projects.id", index=True)
    created_by: str = Field(index=True)
    assigned_to: str | None = Field(default=None, index=True)

    status: TaskStatus = Field(default=TaskStatus.TODO, index=True)
    priority: Priority = Field(default=Priority.MEDIUM)
    estimated_hours: float | None = Field(default=None, ge=0)
    actual_hours: float = Field(default=0, ge=0)

    start_date: datetime | None = Field(default=None, sa_type=UTCDateTime)
    due_date: datetime | None = Field(default=None, sa_type=UTCDateTime, index=True)
    completed_at: datetime | None = Field(default=None, sa_type=UTCDateTime)

    subtasks: list[dict[str, Any]] = Field(default_factory=list, sa_column=Column(JSON, nullable=False))
    attachments: list[dict[str, Any]] = Field(default_factory=list, sa_column=Column(JSON, nullable=False))
    tags: list[str] = Field(default_factory=list, sa_column=Column(JSON, nullable=False))

    # Timestamps
    created_at: datetime = Field(default_factory=utc_now, sa_type=UTCDateTime, index=True)
    updated_at: datetime = Field(default_factory=utc_now, sa_type=UTCDateTime)


class TaskComment(SQLModel, table=True):
    """Append-only comment on a task."""

    __tablename__ = "task_comments"

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    task_id: uuid.UUID = Field(foreign_key="tasks.id", index=True)
    user_id: str
    text: str
    created_at: datetime = Field(default_factory=utc_now, sa_type=UTCDateTime)


class TaskDependency(SQLModel, table=True):
    """
    Directed edge in a project's task graph.

    task_id -> depends_on_id means the task cannot proceed before depends_on_id.
    """

    __tablename__ = "task_dependencies"

    task_id: uuid.UUID = Field(foreign_key="tasks.id", primary_key=True)
    depends_on_id: uuid.UUID = Field(foreign_key="tasks.id", primary_key=True)
    created_at: datetime = Field(default_factory=utc_now, sa_type=UTCDateTime)
