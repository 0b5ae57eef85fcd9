"""Authentication schemas."""
from __future__ import annotations

from pydantic import BaseModel

from backoffice.models.user import UserRole


class Token(BaseModel):
    """Response body for access tokens."""

    access_token: str
    token_type: str = "bearer"
    expires_in: int
    role: UserRole
