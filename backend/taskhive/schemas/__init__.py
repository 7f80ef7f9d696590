from taskhive.schemas.common import Empty, Envelope, Listing, Page, Pagination, UTCDatetime
from taskhive.schemas.project import (
    ProjectCreate,
    ProjectRead,
    ProjectUpdate,
    TeamMemberAdd,
    TeamMemberRead,
)
from taskhive.schemas.task import (
    Attachment,
    CommentCreate,
    CommentRead,
    StatusUpdate,
    Subtask,
    TaskCreate,
    TaskRead,
    TaskUpdate,
)
from taskhive.schemas.user import ProfileUpdate, UserCreate, UserRead, UserRegister, UserUpdate

__all__ = [
    "Empty",
    "Envelope",
    "Listing",
    "Page",
    "Pagination",
    "UTCDatetime",
    "ProjectCreate",
    "ProjectRead",
    "ProjectUpdate",
    "TeamMemberAdd",
    "TeamMemberRead",
    "Attachment",
    "CommentCreate",
    "CommentRead",
    "StatusUpdate",
    "Subtask",
    "TaskCreate",
    "TaskRead",
    "TaskUpdate",
    "ProfileUpdate",
    "UserCreate",
    "UserRead",
    "UserRegister",
    "UserUpdate",
]
