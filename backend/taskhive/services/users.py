"""
User directory: registration, profiles, admin management and the
per-user ``projects`` list.
"""

import uuid

from sqlalchemy import delete
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import col, select

from taskhive.exceptions import (
    ForbiddenError,
    NotFoundError,
    SelfDeleteError,
    UserAlreadyExistsError,
    ValidationError,
)
from taskhive.logging_config import get_logger
from taskhive.models import Project, TeamMember, User, UserProject, UserRole
from taskhive.models.types import utc_now
from taskhive.schemas import ProfileUpdate, UserCreate, UserRead, UserRegister, UserUpdate
from taskhive.services.policy import Caller

logger = get_logger(__name__)


# =============================================================================
# projects list (inverse of ownership/membership)
# =============================================================================

async def link_project(session: AsyncSession, user_id: str, project_id: uuid.UUID) -> bool:
    """Add project_id to the user's projects list. Returns False if already there."""
    if await session.get(UserProject, (user_id, project_id)) is not None:
        return False
    session.add(UserProject(user_id=user_id, project_id=project_id))
    await session.flush()
    return True


async def unlink_project(session: AsyncSession, user_id: str, project_id: uuid.UUID) -> None:
    await session.execute(
        delete(UserProject).where(
            UserProject.user_id == user_id,
            UserProject.project_id == project_id,
        )
    )


async def project_ids_for(session: AsyncSession, user_id: str) -> list[uuid.UUID]:
    result = await session.execute(
        select(UserProject.project_id)
        .where(UserProject.user_id == user_id)
        .order_by(col(UserProject.created_at))
    )
    return list(result.scalars().all())


async def to_read(session: AsyncSession, user: User) -> UserRead:
    read = UserRead.model_validate(user)
    read.projects = await project_ids_for(session, user.id)
    return read


# =============================================================================
# lookups
# =============================================================================

async def get_user_or_404(session: AsyncSession, user_id: str) -> User:
    user = await session.get(User, user_id)
    if user is None:
        raise NotFoundError("User", user_id)
    return user


async def _ensure_email_free(session: AsyncSession, email: str, except_user_id: str | None = None) -> None:
    query = select(User).where(User.email == email)
    existing = (await session.execute(query)).scalars().first()
    if existing is not None and existing.id != except_user_id:
        raise UserAlreadyExistsError(f"Email {email} is already registered")


def require_admin(caller: Caller) -> None:
    if not caller.is_admin:
        logger.warning(f"Non-admin {caller.id} attempted an admin-only operation")
        raise ForbiddenError(f"User role '{caller.role.value}' is not authorized to access this route")


# =============================================================================
# self-service
# =============================================================================

async def register_user(
    session: AsyncSession,
    uid: str,
    token_email: str | None,
    data: UserRegister,
) -> User:
    """Create the User record for a verified identity."""
    if await session.get(User, uid) is not None:
        raise UserAlreadyExistsError(f"User {uid} is already registered")

    email = data.email or token_email
    if not email:
        raise ValidationError(
            "Email is required",
            details=[{"loc": ["body", "email"], "msg": "Email is required", "type": "missing"}],
        )
    email = email.lower()
    await _ensure_email_free(session, email)

    user = User(id=uid, name=data.name, email=email, role=UserRole.MEMBER)
    session.add(user)
    await session.flush()
    await session.refresh(user)

    logger.info(f"Registered user: id={user.id} email={user.email}")
    return user


async def update_profile(session: AsyncSession, caller: Caller, data: ProfileUpdate) -> User:
    user = await get_user_or_404(session, caller.id)
    update_data = {k: v for k, v in data.model_dump(exclude_unset=True).items() if v is not None}

    if "email" in update_data:
        update_data["email"] = update_data["email"].lower()
        await _ensure_email_free(session, update_data["email"], except_user_id=user.id)

    for field, value in update_data.items():
        setattr(user, field, value)
    user.updated_at = utc_now()
    await session.flush()
    await session.refresh(user)

    logger.info(f"Updated profile {user.id}: {sorted(update_data)}")
    return user


# =============================================================================
# admin
# =============================================================================

async def list_users(session: AsyncSession, caller: Caller) -> list[User]:
    require_admin(caller)
    result = await session.execute(select(User).order_by(col(User.created_at).desc()))
    users = list(result.scalars().all())
    logger.debug(f"Listed {len(users)} users")
    return users


async def get_user(session: AsyncSession, caller: Caller, user_id: str) -> User:
    require_admin(caller)
    return await get_user_or_404(session, user_id)


async def create_user(session: AsyncSession, caller: Caller, data: UserCreate) -> User:
    require_admin(caller)
    if await session.get(User, data.id) is not None:
        raise UserAlreadyExistsError(f"User {data.id} already exists")
    email = data.email.lower()
    await _ensure_email_free(session, email)

    user = User(id=data.id, name=data.name, email=email, role=data.role)
    session.add(user)
    await session.flush()
    await session.refresh(user)

    logger.info(f"Admin {caller.id} created user {user.id} role={user.role.value}")
    return user


async def update_user(session: AsyncSession, caller: Caller, user_id: str, data: UserUpdate) -> User:
    require_admin(caller)
    user = await get_user_or_404(session, user_id)
    update_data = {k: v for k, v in data.model_dump(exclude_unset=True).items() if v is not None}

    if "email" in update_data:
        update_data["email"] = update_data["email"].lower()
        await _ensure_email_free(session, update_data["email"], except_user_id=user.id)

    for field, value in update_data.items():
        setattr(user, field, value)
    user.updated_at = utc_now()
    await session.flush()
    await session.refresh(user)

    logger.info(f"Admin {caller.id} updated user {user_id}: {sorted(update_data)}")
    return user


async def delete_user(session: AsyncSession, caller: Caller, user_id: str) -> None:
    """
    Delete a user, their team memberships and their projects list.

    Projects the user owns are kept and keep pointing at the deleted id.
    """
    require_admin(caller)
    user = await get_user_or_404(session, user_id)
    if user.id == caller.id:
        raise SelfDeleteError()

    owned = await session.execute(select(Project.id).where(Project.owner_id == user_id))
    orphaned = list(owned.scalars().all())
    if orphaned:
        logger.warning(f"Deleting user {user_id} leaves {len(orphaned)} owned projects orphaned: {orphaned}")

    await session.execute(delete(TeamMember).where(TeamMember.user_id == user_id))
    await session.execute(delete(UserProject).where(UserProject.user_id == user_id))
    await session.delete(user)
    await session.flush()

    logger.info(f"Admin {caller.id} deleted user {user_id}")


async def promote_user(session: AsyncSession, user_id: str, role: UserRole) -> User:
    """Set a user's role without a caller; used by operator scripts."""
    user = await get_user_or_404(session, user_id)
    user.role = role
    user.updated_at = utc_now()
    await session.flush()
    logger.info(f"Set role of user {user_id} to {role.value}")
    return user
