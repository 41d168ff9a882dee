"""Pydantic schemas for authentication endpoints."""
from typing import Any

from pydantic import BaseModel, Field

from schemas.user import UserResponse


class RegisterRequest(BaseModel):
    """Schema for creating an account."""

    email: str = Field(..., min_length=3, max_length=320)
    password: str = Field(..., min_length=1, max_length=200)
    name: str | None = Field(default=None, max_length=200)


class LoginRequest(BaseModel):
    """
    Schema for signing in.

    `guest_cart` carries items collected before sign-in; they are merged into the
    user's cart on a best-effort basis.
    """

    email: str = Field(..., min_length=1, max_length=320)
    password: str = Field(..., min_length=1, max_length=200)
    guest_cart: list[Any] | None = None


class SessionResponse(BaseModel):
    """Response for endpoints that issue or describe a session."""

    user: UserResponse
    degraded: bool = False


class LogoutResponse(BaseModel):
    """Response for logout."""

    ok: bool = True
