"""
Admin-only user management routes.
"""

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from taskhive.auth import get_caller
from taskhive.database import get_session
from taskhive.schemas import Empty, Envelope, Listing, UserCreate, UserRead, UserUpdate
from taskhive.services import users as user_service
from taskhive.services.policy import Caller

router = APIRouter()


@router.get("", response_model=Listing[UserRead])
async def list_users(
    caller: Caller = Depends(get_caller),
    session: AsyncSession = Depends(get_session),
) -> dict:
    users = await user_service.list_users(session, caller)
    data = [await user_service.to_read(session, user) for user in users]
    return {"success": True, "count": len(data), "data": data}


@router.get("/{user_id}", response_model=Envelope[UserRead])
async def get_user(
    user_id: str,
    caller: Caller = Depends(get_caller),
    session: AsyncSession = Depends(get_session),
) -> dict:
    user = await user_service.get_user(session, caller, user_id)
    return {"success": True, "data": await user_service.to_read(session, user)}


@router.post("", response_model=Envelope[UserRead], status_code=status.HTTP_201_CREATED)
async def create_user(
    user_in: UserCreate,
    caller: Caller = Depends(get_caller),
    session: AsyncSession = Depends(get_session),
) -> dict:
    user = await user_service.create_user(session, caller, user_in)
    return {"success": True, "data": await user_service.to_read(session, user)}


@router.put("/{user_id}", response_model=Envelope[UserRead])
async def update_user(
    user_id: str,
    user_in: UserUpdate,
    caller: Caller = Depends(get_caller),
    session: AsyncSession = Depends(get_session),
) -> dict:
    user = await user_service.update_user(session, caller, user_id, user_in)
    return {"success": True, "data": await user_service.to_read(session, user)}


@router.delete("/{user_id}", response_model=Envelope[Empty])
async def delete_user(
    user_id: str,
    caller: Caller = Depends(get_caller),
    session: AsyncSession = Depends(get_session),
) -> dict:
    """Delete a user. Projects they own are left in place."""
    await user_service.delete_user(session, caller, user_id)
    return {"success": True, "data": {}}
