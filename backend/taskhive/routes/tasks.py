"""
Task routes for the Taskhive API.
"""

import uuid
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from taskhive.auth import get_caller
from taskhive.database import get_session
from taskhive.models import Priority, TaskStatus
from taskhive.schemas import CommentCreate, Empty, Envelope, Page, StatusUpdate, TaskCreate, TaskRead, TaskUpdate
from taskhive.services import tasks as task_service
from taskhive.services.policy import Caller

router = APIRouter()

SORT_PATTERN = r"^-?\w+$"


@router.get("", response_model=Page[TaskRead])
async def list_tasks(
    project_id: Optional[uuid.UUID] = None,
    assigned_to: Optional[str] = None,
    status_filter: Optional[TaskStatus] = Query(default=None, alias="status"),
    priority: Optional[Priority] = None,
    due_date_from: Optional[datetime] = None,
    due_date_to: Optional[datetime] = None,
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=20, ge=1, le=100),
    sort: Optional[str] = Query(default=None, pattern=SORT_PATTERN),
    caller: Caller = Depends(get_caller),
    session: AsyncSession = Depends(get_session),
) -> dict:
    """
    List tasks in projects the caller can access.

    Optionally filter by project, assignee, status, priority and due date range.
    """
    result = await task_service.list_tasks(
        session,
        caller,
        project_id=project_id,
        assigned_to=assigned_to,
        status=status_filter,
        priority=priority,
        due_date_from=due_date_from,
        due_date_to=due_date_to,
        page=page,
        limit=limit,
        sort=sort,
    )
    return result.envelope(await task_service.to_reads(session, list(result.items)))


@router.get("/{task_id}", response_model=Envelope[TaskRead])
async def get_task(
    task_id: uuid.UUID,
    caller: Caller = Depends(get_caller),
    session: AsyncSession = Depends(get_session),
) -> dict:
    """Get a task by ID."""
    task = await task_service.get_task(session, caller, task_id)
    return {"success": True, "data": await task_service.to_read(session, task)}


@router.post("", response_model=Envelope[TaskRead], status_code=status.HTTP_201_CREATED)
async def create_task(
    task_in: TaskCreate,
    caller: Caller = Depends(get_caller),
    session: AsyncSession = Depends(get_session),
) -> dict:
    """Create a new task in a project the caller can access."""
    task = await task_service.create_task(session, caller, task_in)
    return {"success": True, "data": await task_service.to_read(session, task)}


@router.put("/{task_id}", response_model=Envelope[TaskRead])
async def update_task(
    task_id: uuid.UUID,
    task_in: TaskUpdate,
    caller: Caller = Depends(get_caller),
    session: AsyncSession = Depends(get_session),
) -> dict:
    """Update a task. project_id and created_by cannot be changed."""
    task = await task_service.update_task(session, caller, task_id, task_in)
    return {"success": True, "data": await task_service.to_read(session, task)}


@router.delete("/{task_id}", response_model=Envelope[Empty])
async def delete_task(
    task_id: uuid.UUID,
    caller: Caller = Depends(get_caller),
    session: AsyncSession = Depends(get_session),
) -> dict:
    """Delete a task. Viewers cannot delete tasks."""
    await task_service.delete_task(session, caller, task_id)
    return {"success": True, "data": {}}


@router.post("/{task_id}/comments", response_model=Envelope[TaskRead])
async def add_comment(
    task_id: uuid.UUID,
    comment_in: CommentCreate,
    caller: Caller = Depends(get_caller),
    session: AsyncSession = Depends(get_session),
) -> dict:
    """Append a comment to a task."""
    task = await task_service.add_comment(session, caller, task_id, comment_in.text)
    return {"success": True, "data": await task_service.to_read(session, task)}


@router.patch("/{task_id}/status", response_model=Envelope[TaskRead])
async def update_task_status(
    task_id: uuid.UUID,
    status_in: StatusUpdate,
    caller: Caller = Depends(get_caller),
    session: AsyncSession = Depends(get_session),
) -> dict:
    """Change a task's status; the assignee may do this too."""
    task = await task_service.update_status(session, caller, task_id, status_in.status)
    return {"success": True, "data": await task_service.to_read(session, task)}
