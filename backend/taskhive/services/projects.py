"""
Project aggregate: lifecycle, team membership and the links to users and tasks.

Every operation checks existence and policy before it writes anything.
Multi-step operations run inside the request's session, so their steps
commit together; each step is logged so a failure points at the step.
"""

import uuid
from typing import Optional

from sqlalchemy import delete, or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import col, select

from taskhive.exceptions import AlreadyTeamMemberError, NotFoundError
from taskhive.logging_config import get_logger
from taskhive.models import Priority, Project, ProjectStatus, Task, TaskComment, TaskDependency, TeamMember, UserProject
from taskhive.models.types import utc_now
from taskhive.schemas import ProjectCreate, ProjectRead, ProjectUpdate, TeamMemberAdd, TeamMemberRead
from taskhive.services import users as user_service
from taskhive.services.pagination import PageResult, apply_sort, paginate
from taskhive.services.policy import Action, Caller, ProjectState, authorize

logger = get_logger(__name__)


# =============================================================================
# Loading helpers
# =============================================================================

async def get_project_or_404(session: AsyncSession, project_id: uuid.UUID) -> Project:
    project = await session.get(Project, project_id)
    if project is None:
        raise NotFoundError("Project", str(project_id))
    return project


async def load_team(session: AsyncSession, project_id: uuid.UUID) -> list[TeamMember]:
    result = await session.execute(
        select(TeamMember)
        .where(TeamMember.project_id == project_id)
        .order_by(col(TeamMember.joined_at))
    )
    return list(result.scalars().all())


async def load_state(session: AsyncSession, project: Project) -> ProjectState:
    """Snapshot the ownership data the policy needs."""
    team = await load_team(session, project.id)
    return ProjectState(owner_id=project.owner_id, team={m.user_id: m.role for m in team})


def accessible_project_ids(user_id: str):
    """Subquery of ids of projects the user owns or is a team member of."""
    member_of = select(TeamMember.project_id).where(TeamMember.user_id == user_id)
    return select(Project.id).where(
        or_(Project.owner_id == user_id, col(Project.id).in_(member_of))
    )


async def to_reads(session: AsyncSession, projects: list[Project]) -> list[ProjectRead]:
    """Serialize projects with their team and task ids in two batched queries."""
    if not projects:
        return []
    ids = [p.id for p in projects]

    team_rows = await session.execute(
        select(TeamMember).where(col(TeamMember.project_id).in_(ids)).order_by(col(TeamMember.joined_at))
    )
    teams: dict[uuid.UUID, list[TeamMemberRead]] = {pid: [] for pid in ids}
    for member in team_rows.scalars().all():
        teams[member.project_id].append(TeamMemberRead.model_validate(member))

    task_rows = await session.execute(
        select(Task.id, Task.project_id).where(col(Task.project_id).in_(ids)).order_by(col(Task.created_at))
    )
    tasks: dict[uuid.UUID, list[uuid.UUID]] = {pid: [] for pid in ids}
    for task_id, project_id in task_rows.all():
        tasks[project_id].append(task_id)

    reads = []
    for project in projects:
        read = ProjectRead.model_validate(project)
        read.team = teams[project.id]
        read.tasks = tasks[project.id]
        reads.append(read)
    return reads


async def to_read(session: AsyncSession, project: Project) -> ProjectRead:
    return (await to_reads(session, [project]))[0]


# =============================================================================
# Queries
# =============================================================================

async def list_projects(
    session: AsyncSession,
    caller: Caller,
    status: Optional[ProjectStatus] = None,
    priority: Optional[Priority] = None,
    include_archived: bool = False,
    page: int = 1,
    limit: int = 10,
    sort: Optional[str] = None,
) -> PageResult:
    """
    Projects the caller owns or is a team member of.

    Admins get no extra visibility here; their override applies to
    single-project access only.
    """
    query = select(Project).where(col(Project.id).in_(accessible_project_ids(caller.id)))
    if status is not None:
        query = query.where(Project.status == status)
    if priority is not None:
        query = query.where(Project.priority == priority)
    if not include_archived:
        query = query.where(col(Project.is_archived).is_(False))

    query = apply_sort(query, Project, sort)
    result = await paginate(session, query, page, limit)

    logger.debug(f"Listed {len(result.items)}/{result.total} projects for user={caller.id}")
    return result


async def get_project(session: AsyncSession, caller: Caller, project_id: uuid.UUID) -> Project:
    project = await get_project_or_404(session, project_id)
    authorize(caller, Action.PROJECT_READ, await load_state(session, project))
    return project


# =============================================================================
# Mutations
# =============================================================================

async def create_project(session: AsyncSession, caller: Caller, data: ProjectCreate) -> Project:
    """Create a project owned by the caller and add it to the caller's projects list."""
    values = data.model_dump(exclude_none=True)
    project = Project(**values, owner_id=caller.id)
    session.add(project)
    await session.flush()

    await user_service.link_project(session, caller.id, project.id)
    await session.refresh(project)

    logger.info(f"Created project: id={project.id} name='{project.name}' owner={caller.id}")
    return project


async def update_project(
    session: AsyncSession,
    caller: Caller,
    project_id: uuid.UUID,
    data: ProjectUpdate,
) -> Project:
    project = await get_project_or_404(session, project_id)
    authorize(caller, Action.PROJECT_UPDATE, await load_state(session, project))

    update_data = data.model_dump(exclude_unset=True)
    update_data.pop("owner_id", None)
    # Only dates may be cleared; a null for any other field is ignored
    update_data = {
        k: v for k, v in update_data.items()
        if v is not None or k in ("start_date", "due_date")
    }

    logger.info(f"Updating project {project_id}: {update_data}")

    for field, value in update_data.items():
        setattr(project, field, value)
    project.updated_at = utc_now()

    await session.flush()
    await session.refresh(project)
    return project


async def delete_project(session: AsyncSession, caller: Caller, project_id: uuid.UUID) -> None:
    """
    Delete a project and everything hanging off it.

    Steps: tasks (with their comments and dependency edges), the project from
    every user's projects list, the team, then the project itself.
    """
    project = await get_project_or_404(session, project_id)
    authorize(caller, Action.PROJECT_DELETE, await load_state(session, project))

    logger.info(f"Deleting project {project_id}: '{project.name}'")

    task_ids = select(Task.id).where(Task.project_id == project_id)
    await session.execute(delete(TaskComment).where(col(TaskComment.task_id).in_(task_ids)))
    await session.execute(
        delete(TaskDependency).where(
            or_(
                col(TaskDependency.task_id).in_(task_ids),
                col(TaskDependency.depends_on_id).in_(task_ids),
            )
        )
    )
    removed = await session.execute(delete(Task).where(Task.project_id == project_id))
    logger.debug(f"Project {project_id}: deleted {removed.rowcount} tasks")

    unlinked = await session.execute(delete(UserProject).where(UserProject.project_id == project_id))
    logger.debug(f"Project {project_id}: removed from {unlinked.rowcount} users' project lists")

    await session.execute(delete(TeamMember).where(TeamMember.project_id == project_id))
    await session.delete(project)
    await session.flush()


async def add_team_member(
    session: AsyncSession,
    caller: Caller,
    project_id: uuid.UUID,
    data: TeamMemberAdd,
) -> Project:
    project = await get_project_or_404(session, project_id)
    state = await load_state(session, project)
    authorize(caller, Action.PROJECT_MANAGE_TEAM, state)

    await user_service.get_user_or_404(session, data.user_id)

    if state.is_member(data.user_id):
        logger.warning(f"Duplicate team member rejected: user={data.user_id} project={project_id}")
        raise AlreadyTeamMemberError(data.user_id, str(project_id))

    session.add(TeamMember(project_id=project_id, user_id=data.user_id, role=data.role))
    try:
        await session.flush()
    except IntegrityError as exc:
        # A concurrent request added the same member between check and write
        logger.warning(f"Concurrent duplicate team member: user={data.user_id} project={project_id}")
        raise AlreadyTeamMemberError(data.user_id, str(project_id)) from exc

    await user_service.link_project(session, data.user_id, project_id)
    project.updated_at = utc_now()
    await session.flush()

    logger.info(f"Added team member: project={project_id} user={data.user_id} role={data.role.value}")
    return project


async def remove_team_member(
    session: AsyncSession,
    caller: Caller,
    project_id: uuid.UUID,
    user_id: str,
) -> Project:
    """Remove a membership; removing a non-member is not an error."""
    project = await get_project_or_404(session, project_id)
    authorize(caller, Action.PROJECT_MANAGE_TEAM, await load_state(session, project))

    removed = await session.execute(
        delete(TeamMember).where(
            TeamMember.project_id == project_id,
            TeamMember.user_id == user_id,
        )
    )
    # The owner stays linked through ownership
    if user_id != project.owner_id:
        await user_service.unlink_project(session, user_id, project_id)

    project.updated_at = utc_now()
    await session.flush()

    logger.info(f"Removed team member: project={project_id} user={user_id} (rows={removed.rowcount})")
    return project
