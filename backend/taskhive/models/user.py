import uuid
from datetime import datetime

from sqlmodel import Field, SQLModel

from taskhive.models.enums import UserRole
from taskhive.models.types import UTCDateTime, utc_now


class User(SQLModel, table=True):
    """
    Registered user.

    The primary key is the Firebase uid, so a verified ID token maps
    straight onto a row.
    """

    __tablename__ = "users"

    id: str = Field(primary_key=True)
    name: str
    email: str = Field(unique=True, index=True)
    role: UserRole = Field(default=UserRole.MEMBER)
    created_at: datetime = Field(default_factory=utc_now, sa_type=UTCDateTime)
    updated_at: datetime = Field(default_factory=utc_now, sa_type=UTCDateTime)


class UserProject(SQLModel, table=True):
    """
    A User's ``projects`` list: one row per project the user owns or belongs to.

    Maintained explicitly by the project manager on create, membership
    changes and project deletion.
    """

    __tablename__ = "user_projects"

    user_id: str = Field(foreign_key="users.id", primary_key=True)
    project_id: uuid.UUID = Field(foreign_key="projects.id", primary_key=True)
    created_at: datetime = Field(default_factory=utc_now, sa_type=UTCDateTime)
