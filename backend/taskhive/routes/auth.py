"""
Registration and self-service profile routes.
"""

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from taskhive.auth import AuthenticatedUser, get_caller, get_current_account, get_current_user
from taskhive.database import get_session
from taskhive.models import User
from taskhive.schemas import Envelope, ProfileUpdate, UserRead, UserRegister
from taskhive.services import users as user_service
from taskhive.services.policy import Caller

router = APIRouter()


@router.post("/register", response_model=Envelope[UserRead], status_code=status.HTTP_201_CREATED)
async def register(
    user_in: UserRegister,
    identity: AuthenticatedUser = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
) -> dict:
    """Create the user record for the verified token's uid."""
    user = await user_service.register_user(session, identity.uid, identity.email, user_in)
    return {"success": True, "data": await user_service.to_read(session, user)}


@router.get("/me", response_model=Envelope[UserRead])
async def get_me(
    user: User = Depends(get_current_account),
    session: AsyncSession = Depends(get_session),
) -> dict:
    """The caller's profile and projects."""
    return {"success": True, "data": await user_service.to_read(session, user)}


@router.put("/me", response_model=Envelope[UserRead])
async def update_me(
    profile_in: ProfileUpdate,
    caller: Caller = Depends(get_caller),
    session: AsyncSession = Depends(get_session),
) -> dict:
    """Update the caller's name or email."""
    user = await user_service.update_profile(session, caller, profile_in)
    return {"success": True, "data": await user_service.to_read(session, user)}
