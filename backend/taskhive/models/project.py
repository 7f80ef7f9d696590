import uuid
from datetime import datetime

from sqlalchemy import JSON, Column
from sqlmodel import Field, SQLModel

from taskhive.models.enums import Priority, ProjectStatus, TeamRole
from taskhive.models.types import UTCDateTime, utc_now


class Project(SQLModel, table=True):
    """
    Project aggregate root.

    owner_id is a plain indexed column rather than a foreign key: deleting a
    user does not touch the projects they own.
    """

    __tablename__ = "projects"

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    name: str = Field(index=True)
    description: str
    owner_id: str = Field(index=True)
    status: ProjectStatus = Field(default=ProjectStatus.PLANNING, index=True)
    priority: Priority = Field(default=Priority.MEDIUM)
    start_date: datetime | None = Field(default_factory=utc_now, sa_type=UTCDateTime)
    due_date: datetime | None = Field(default=None, sa_type=UTCDateTime)
    tags: list[str] = Field(default_factory=list, sa_column=Column(JSON, nullable=False))
    is_archived: bool = Field(default=False)
    created_at: datetime = Field(default_factory=utc_now, sa_type=UTCDateTime, index=True)
    updated_at: datetime = Field(default_factory=utc_now, sa_type=UTCDateTime)


class TeamMember(SQLModel, table=True):
    """Membership of a user in a project; at most one row per (project, user)."""

    __tablename__ = "team_members"

    project_id: uuid.UUID = Field(foreign_key="projects.id", primary_key=True)
    user_id: str = Field(foreign_key="users.id", primary_key=True, index=True)
    role: TeamRole = Field(default=TeamRole.VIEWER)
    joined_at: datetime = Field(default_factory=utc_now, sa_type=UTCDateTime)
