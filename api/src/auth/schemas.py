"""Pydantic schemas for authentication."""

from uuid import UUID

from pydantic import BaseModel, Field

from src.auth.permissions import UserRole


class AuthenticatedUser(BaseModel):
    """Caller identity decoded from the bearer token."""

    id: UUID = Field(..., description="User UUID (token subject)")
    email: str = ""
    role: UserRole = UserRole.USER
