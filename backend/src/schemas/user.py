"""Pydantic schemas for user accounts."""
from pydantic import BaseModel, ConfigDict, Field

from core.roles import Role


class UserResponse(BaseModel):
    """Public view of a user record (never includes the password hash)."""

    model_config = ConfigDict(extra="ignore")

    id: str
    email: str
    name: str = ""
    role: Role = Role.USER
    created_at: int | None = None
    updated_at: int | None = None


class UserListResponse(BaseModel):
    """Schema for the admin user listing."""

    users: list[UserResponse]
    degraded: bool = False


class ProfileUpdate(BaseModel):
    """Schema for updating the signed-in user's profile."""

    name: str | None = Field(default=None, max_length=200)
    password: str | None = Field(default=None, max_length=200)


class RoleUpdate(BaseModel):
    """Schema for changing a user's role."""

    role: Role
