import uuid
from datetime import datetime

from pydantic import BaseModel, EmailStr, Field

from taskhive.models.enums import UserRole


class UserRegister(BaseModel):
    """Schema for registering the caller's verified identity."""
    name: str = Field(min_length=2, max_length=50)
    email: EmailStr | None = None  # Falls back to the email on the token


class ProfileUpdate(BaseModel):
    """Schema for updating one's own profile."""
    name: str | None = Field(default=None, min_length=2, max_length=50)
    email: EmailStr | None = None


class UserCreate(BaseModel):
    """Schema for an admin provisioning a user."""
    id: str = Field(min_length=1, max_length=128)
    name: str = Field(min_length=2, max_length=50)
    email: EmailStr
    role: UserRole = UserRole.MEMBER


class UserUpdate(BaseModel):
    """Schema for an admin updating a user."""
    name: str | None = Field(default=None, min_length=2, max_length=50)
    email: EmailStr | None = None
    role: UserRole | None = None


class UserRead(BaseModel):
    """Schema for reading a user, with the ids of their projects."""
    id: str
    name: str
    email: str
    role: UserRole
    projects: list[uuid.UUID] = []
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}
