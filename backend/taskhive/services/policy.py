"""
Access policy for projects and tasks.

Every decision is a pure function of the caller, the action and a snapshot
of the project (and task) state, so the whole table can be tested without
a database or HTTP. Rules, in order:

1. A caller with the ``admin`` user role may do anything.
2. The project owner may do anything to the project and its tasks.
3. Any team member may read the project, and read, create, update and
   comment on its tasks.
4. Only team members whose project role is ``admin`` or ``editor`` may
   delete tasks.
5. The task assignee may change that task's status.
6. Everything else is denied.

Team roles only matter for task deletion. Update and comment accept any
team member, viewers included.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Mapping, Optional

from taskhive.exceptions import ForbiddenError, UnauthenticatedError
from taskhive.logging_config import get_logger
from taskhive.models.enums import TeamRole, UserRole

logger = get_logger(__name__)


class Action(str, Enum):
    PROJECT_READ = "project:read"
    PROJECT_UPDATE = "project:update"
    PROJECT_DELETE = "project:delete"
    PROJECT_MANAGE_TEAM = "project:manage_team"
    TASK_CREATE = "task:create"
    TASK_READ = "task:read"
    TASK_UPDATE = "task:update"
    TASK_DELETE = "task:delete"
    TASK_COMMENT = "task:comment"
    TASK_UPDATE_STATUS = "task:update_status"


@dataclass(frozen=True)
class Caller:
    """Identity of the authenticated caller."""
    id: str
    role: UserRole = UserRole.MEMBER

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN


@dataclass(frozen=True)
class ProjectState:
    """Ownership snapshot of a project: owner id and team roles by user id."""
    owner_id: str
    team: Mapping[str, TeamRole] = field(default_factory=dict)

    def is_owner(self, user_id: str) -> bool:
        return self.owner_id == user_id

    def is_member(self, user_id: str) -> bool:
        return user_id in self.team

    def has_access(self, user_id: str) -> bool:
        """Project-level access: owner or any team member."""
        return self.is_owner(user_id) or self.is_member(user_id)


@dataclass(frozen=True)
class TaskState:
    assigned_to: Optional[str] = None


TASK_DELETE_ROLES = frozenset({TeamRole.ADMIN, TeamRole.EDITOR})

Rule = Callable[[Caller, ProjectState, Optional[TaskState]], bool]


def _owner(caller: Caller, project: ProjectState, task: Optional[TaskState]) -> bool:
    return project.is_owner(caller.id)


def _project_access(caller: Caller, project: ProjectState, task: Optional[TaskState]) -> bool:
    return project.has_access(caller.id)


def _owner_or_task_deleter(caller: Caller, project: ProjectState, task: Optional[TaskState]) -> bool:
    return project.is_owner(caller.id) or project.team.get(caller.id) in TASK_DELETE_ROLES


def _project_access_or_assignee(caller: Caller, project: ProjectState, task: Optional[TaskState]) -> bool:
    if project.has_access(caller.id):
        return True
    return task is not None and task.assigned_to is not None and task.assigned_to == caller.id


POLICY: dict[Action, Rule] = {
    Action.PROJECT_READ: _project_access,
    Action.PROJECT_UPDATE: _owner,
    Action.PROJECT_DELETE: _owner,
    Action.PROJECT_MANAGE_TEAM: _owner,
    Action.TASK_CREATE: _project_access,
    Action.TASK_READ: _project_access,
    Action.TASK_UPDATE: _project_access,
    Action.TASK_DELETE: _owner_or_task_deleter,
    Action.TASK_COMMENT: _project_access,
    Action.TASK_UPDATE_STATUS: _project_access_or_assignee,
}

DENIAL_MESSAGES: dict[Action, str] = {
    Action.PROJECT_READ: "Not authorized to access this project",
    Action.PROJECT_UPDATE: "Not authorized to update this project",
    Action.PROJECT_DELETE: "Not authorized to delete this project",
    Action.PROJECT_MANAGE_TEAM: "Not authorized to manage team members",
    Action.TASK_CREATE: "Not authorized to create tasks in this project",
    Action.TASK_READ: "Not authorized to access this task",
    Action.TASK_UPDATE: "Not authorized to update this task",
    Action.TASK_DELETE: "Not authorized to delete this task",
    Action.TASK_COMMENT: "Not authorized to comment on this task",
    Action.TASK_UPDATE_STATUS: "Not authorized to update this task's status",
}


def is_allowed(
    caller: Caller,
    action: Action,
    project: ProjectState,
    task: Optional[TaskState] = None,
) -> bool:
    """Return True if caller may perform action on the given resource state."""
    if caller.is_admin:
        return True
    rule = POLICY.get(action)
    if rule is None:
        return False
    return rule(caller, project, task)


def authorize(
    caller: Optional[Caller],
    action: Action,
    project: ProjectState,
    task: Optional[TaskState] = None,
) -> None:
    """
    Raise unless the caller may perform the action.

    Raises:
        UnauthenticatedError: No caller identity.
        ForbiddenError: The policy denies the action.
    """
    if caller is None:
        raise UnauthenticatedError()
    if not is_allowed(caller, action, project, task):
        logger.warning(f"Denied {action.value} for user={caller.id} role={caller.role.value}")
        raise ForbiddenError(DENIAL_MESSAGES[action])
