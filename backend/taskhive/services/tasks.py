"""
Task aggregate: lifecycle, status, comments and dependencies.

Access to a task is always decided through its project. completed_at is
derived from status here and nowhere else.
"""

import uuid
from datetime import datetime
from typing import Any, Optional

from sqlalchemy import delete, or_
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import col, select

from taskhive.exceptions import NotFoundError
from taskhive.logging_config import get_logger
from taskhive.models import Priority, Project, Task, TaskComment, TaskDependency, TaskStatus
from taskhive.models.types import utc_now
from taskhive.schemas import CommentRead, TaskCreate, TaskRead, TaskUpdate
from taskhive.services import graph
from taskhive.services import projects as project_service
from taskhive.services import users as user_service
from taskhive.services.pagination import PageResult, apply_sort, paginate
from taskhive.services.policy import Action, Caller, TaskState, authorize

logger = get_logger(__name__)

IMMUTABLE_FIELDS = ("project_id", "created_by", "completed_at")
NULLABLE_FIELDS = ("description", "assigned_to", "estimated_hours", "start_date", "due_date")


def derive_completed_at(
    old_status: TaskStatus,
    new_status: Optional[TaskStatus],
    completed_at: Optional[datetime],
    now: Optional[datetime] = None,
) -> Optional[datetime]:
    """
    completed_at after a status change.

    - status not given: unchanged
    - becomes done: now
    - stays done: unchanged
    - anything else: cleared
    """
    if new_status is None:
        return completed_at
    if new_status == TaskStatus.DONE:
        if old_status != TaskStatus.DONE:
            return now or utc_now()
        return completed_at
    return None


# =============================================================================
# Loading helpers
# =============================================================================

async def get_task_or_404(session: AsyncSession, task_id: uuid.UUID) -> Task:
    task = await session.get(Task, task_id)
    if task is None:
        raise NotFoundError("Task", str(task_id))
    return task


async def _authorize_task(session: AsyncSession, caller: Caller, action: Action, task: Task) -> Project:
    """Check action against the task's project; returns that project."""
    project = await project_service.get_project_or_404(session, task.project_id)
    state = await project_service.load_state(session, project)
    authorize(caller, action, state, TaskState(assigned_to=task.assigned_to))
    return project


async def to_reads(session: AsyncSession, tasks: list[Task]) -> list[TaskRead]:
    """Serialize tasks with comments and dependency ids in two batched queries."""
    if not tasks:
        return []
    ids = [t.id for t in tasks]

    comment_rows = await session.execute(
        select(TaskComment).where(col(TaskComment.task_id).in_(ids)).order_by(col(TaskComment.created_at))
    )
    comments: dict[uuid.UUID, list[CommentRead]] = {tid: [] for tid in ids}
    for comment in comment_rows.scalars().all():
        comments[comment.task_id].append(CommentRead.model_validate(comment))

    edge_rows = await session.execute(
        select(TaskDependency.task_id, TaskDependency.depends_on_id)
        .where(col(TaskDependency.task_id).in_(ids))
        .order_by(col(TaskDependency.created_at))
    )
    dependencies: dict[uuid.UUID, list[uuid.UUID]] = {tid: [] for tid in ids}
    for task_id, depends_on_id in edge_rows.all():
        dependencies[task_id].append(depends_on_id)

    reads = []
    for task in tasks:
        read = TaskRead.model_validate(task)
        read.comments = comments[task.id]
        read.dependencies = dependencies[task.id]
        reads.append(read)
    return reads


async def to_read(session: AsyncSession, task: Task) -> TaskRead:
    return (await to_reads(session, [task]))[0]


def _json_ready(values: dict[str, Any], data: TaskCreate | TaskUpdate) -> dict[str, Any]:
    """Subtasks and attachments go into JSON columns as plain JSON data."""
    for field in ("subtasks", "attachments"):
        items = getattr(data, field)
        if field in values and items is not None:
            values[field] = [item.model_dump(mode="json") for item in items]
    return values


# =============================================================================
# Queries
# =============================================================================

async def list_tasks(
    session: AsyncSession,
    caller: Caller,
    project_id: Optional[uuid.UUID] = None,
    assigned_to: Optional[str] = None,
    status: Optional[TaskStatus] = None,
    priority: Optional[Priority] = None,
    due_date_from: Optional[datetime] = None,
    due_date_to: Optional[datetime] = None,
    page: int = 1,
    limit: int = 20,
    sort: Optional[str] = None,
) -> PageResult:
    """
    Tasks matching the filters, limited to projects the caller owns or is a
    team member of.
    """
    query = select(Task).where(col(Task.project_id).in_(project_service.accessible_project_ids(caller.id)))
    if project_id is not None:
        query = query.where(Task.project_id == project_id)
    if assigned_to is not None:
        query = query.where(Task.assigned_to == assigned_to)
    if status is not None:
        query = query.where(Task.status == status)
    if priority is not None:
        query = query.where(Task.priority == priority)
    if due_date_from is not None:
        query = query.where(col(Task.due_date) >= due_date_from)
    if due_date_to is not None:
        query = query.where(col(Task.due_date) <= due_date_to)

    query = apply_sort(query, Task, sort)
    result = await paginate(session, query, page, limit)

    logger.debug(
        f"Listed {len(result.items)}/{result.total} tasks for user={caller.id}"
        + (f" project={project_id}" if project_id else "")
    )
    return result


async def get_task(session: AsyncSession, caller: Caller, task_id: uuid.UUID) -> Task:
    task = await get_task_or_404(session, task_id)
    await _authorize_task(session, caller, Action.TASK_READ, task)
    return task


# =============================================================================
# Mutations
# =============================================================================

async def create_task(session: AsyncSession, caller: Caller, data: TaskCreate) -> Task:
    """
    Create a task in a project the caller can access.

    created_by is always the caller; a task created as done is stamped
    completed now.
    """
    project = await project_service.get_project_or_404(session, data.project_id)
    authorize(caller, Action.TASK_CREATE, await project_service.load_state(session, project))

    if data.assigned_to is not None:
        await user_service.get_user_or_404(session, data.assigned_to)

    values = _json_ready(data.model_dump(exclude={"dependencies"}, exclude_none=True), data)
    task = Task(**values, created_by=caller.id)
    task.completed_at = derive_completed_at(TaskStatus.TODO, task.status, None)

    dependency_ids = await graph.validate_dependencies(session, task.id, project.id, data.dependencies)

    session.add(task)
    await session.flush()
    await graph.replace_dependencies(session, task.id, dependency_ids)

    project.updated_at = utc_now()
    await session.flush()
    await session.refresh(task)

    logger.info(f"Created task: id={task.id} title='{task.title}' project={task.project_id} by={caller.id}")
    return task


async def update_task(
    session: AsyncSession,
    caller: Caller,
    task_id: uuid.UUID,
    data: TaskUpdate,
) -> Task:
    task = await get_task_or_404(session, task_id)
    await _authorize_task(session, caller, Action.TASK_UPDATE, task)

    update_data = data.model_dump(exclude_unset=True)
    for field in IMMUTABLE_FIELDS:
        update_data.pop(field, None)
    update_data = {k: v for k, v in update_data.items() if v is not None or k in NULLABLE_FIELDS}

    if update_data.get("assigned_to") is not None:
        await user_service.get_user_or_404(session, update_data["assigned_to"])

    dependency_ids = update_data.pop("dependencies", None)
    if dependency_ids is not None:
        dependency_ids = await graph.validate_dependencies(session, task.id, task.project_id, dependency_ids)

    logger.info(f"Updating task {task_id}: {sorted(update_data)}")

    new_status = update_data.pop("status", None)
    task.completed_at = derive_completed_at(task.status, new_status, task.completed_at)
    if new_status is not None:
        task.status = new_status

    for field, value in _json_ready(update_data, data).items():
        setattr(task, field, value)
    task.updated_at = utc_now()

    if dependency_ids is not None:
        await graph.replace_dependencies(session, task.id, dependency_ids)

    await session.flush()
    await session.refresh(task)
    return task


async def delete_task(session: AsyncSession, caller: Caller, task_id: uuid.UUID) -> None:
    """Delete a task, its comments and every dependency edge touching it."""
    task = await get_task_or_404(session, task_id)
    project = await _authorize_task(session, caller, Action.TASK_DELETE, task)

    logger.info(f"Deleting task {task_id}: '{task.title}' from project {project.id}")

    await session.execute(delete(TaskComment).where(TaskComment.task_id == task_id))
    await session.execute(
        delete(TaskDependency).where(
            or_(TaskDependency.task_id == task_id, TaskDependency.depends_on_id == task_id)
        )
    )
    await session.delete(task)
    project.updated_at = utc_now()
    await session.flush()


async def add_comment(session: AsyncSession, caller: Caller, task_id: uuid.UUID, text: str) -> Task:
    """Append a comment. Comments cannot be edited or removed."""
    task = await get_task_or_404(session, task_id)
    await _authorize_task(session, caller, Action.TASK_COMMENT, task)

    session.add(TaskComment(task_id=task.id, user_id=caller.id, text=text))
    task.updated_at = utc_now()
    await session.flush()

    logger.info(f"Comment added: task={task_id} user={caller.id}")
    return task


async def update_status(
    session: AsyncSession,
    caller: Caller,
    task_id: uuid.UUID,
    status: TaskStatus,
) -> Task:
    """Set the status; project members and the assignee may do this."""
    task = await get_task_or_404(session, task_id)
    await _authorize_task(session, caller, Action.TASK_UPDATE_STATUS, task)

    old_status = task.status
    task.completed_at = derive_completed_at(old_status, status, task.completed_at)
    task.status = status
    task.updated_at = utc_now()
    await session.flush()

    logger.info(f"Task {task_id} status: {old_status.value} -> {status.value}")
    return task
