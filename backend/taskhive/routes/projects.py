"""
Project routes for the Taskhive API.
"""

import uuid
from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from taskhive.auth import get_caller
from taskhive.database import get_session
from taskhive.models import Priority, ProjectStatus
from taskhive.schemas import Empty, Envelope, Page, ProjectCreate, ProjectRead, ProjectUpdate, TeamMemberAdd
from taskhive.services import projects as project_service
from taskhive.services.policy import Caller

router = APIRouter()

SORT_PATTERN = r"^-?\w+$"


@router.get("", response_model=Page[ProjectRead])
async def list_projects(
    status_filter: Optional[ProjectStatus] = Query(default=None, alias="status"),
    priority: Optional[Priority] = None,
    include_archived: bool = False,
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=10, ge=1, le=100),
    sort: Optional[str] = Query(default=None, pattern=SORT_PATTERN),
    caller: Caller = Depends(get_caller),
    session: AsyncSession = Depends(get_session),
) -> dict:
    """List projects the caller owns or is a team member of."""
    result = await project_service.list_projects(
        session,
        caller,
        status=status_filter,
        priority=priority,
        include_archived=include_archived,
        page=page,
        limit=limit,
        sort=sort,
    )
    return result.envelope(await project_service.to_reads(session, list(result.items)))


@router.get("/{project_id}", response_model=Envelope[ProjectRead])
async def get_project(
    project_id: uuid.UUID,
    caller: Caller = Depends(get_caller),
    session: AsyncSession = Depends(get_session),
) -> dict:
    """Get a project by ID."""
    project = await project_service.get_project(session, caller, project_id)
    return {"success": True, "data": await project_service.to_read(session, project)}


@router.post("", response_model=Envelope[ProjectRead], status_code=status.HTTP_201_CREATED)
async def create_project(
    project_in: ProjectCreate,
    caller: Caller = Depends(get_caller),
    session: AsyncSession = Depends(get_session),
) -> dict:
    """Create a new project owned by the caller."""
    project = await project_service.create_project(session, caller, project_in)
    return {"success": True, "data": await project_service.to_read(session, project)}


@router.put("/{project_id}", response_model=Envelope[ProjectRead])
async def update_project(
    project_id: uuid.UUID,
    project_in: ProjectUpdate,
    caller: Caller = Depends(get_caller),
    session: AsyncSession = Depends(get_session),
) -> dict:
    """Update a project. The owner cannot be changed."""
    project = await project_service.update_project(session, caller, project_id, project_in)
    return {"success": True, "data": await project_service.to_read(session, project)}


@router.delete("/{project_id}", response_model=Envelope[Empty])
async def delete_project(
    project_id: uuid.UUID,
    caller: Caller = Depends(get_caller),
    session: AsyncSession = Depends(get_session),
) -> dict:
    """Delete a project and all its tasks."""
    await project_service.delete_project(session, caller, project_id)
    return {"success": True, "data": {}}


@router.post("/{project_id}/team", response_model=Envelope[ProjectRead])
async def add_team_member(
    project_id: uuid.UUID,
    member_in: TeamMemberAdd,
    caller: Caller = Depends(get_caller),
    session: AsyncSession = Depends(get_session),
) -> dict:
    """Add a user to the project team (default role: viewer)."""
    project = await project_service.add_team_member(session, caller, project_id, member_in)
    return {"success": True, "data": await project_service.to_read(session, project)}


@router.delete("/{project_id}/team/{user_id}", response_model=Envelope[ProjectRead])
async def remove_team_member(
    project_id: uuid.UUID,
    user_id: str,
    caller: Caller = Depends(get_caller),
    session: AsyncSession = Depends(get_session),
) -> dict:
    """Remove a user from the project team."""
    project = await project_service.remove_team_member(session, caller, project_id, user_id)
    return {"success": True, "data": await project_service.to_read(session, project)}
