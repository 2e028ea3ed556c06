"""
Pydantic schemas for User-related requests and responses.

These schemas control what user data is exposed through the API.
hashed_password and the reset-token fields are NEVER included in any
response schema.
"""

import uuid
from datetime import datetime

from pydantic import BaseModel

from roster.models.user import Role, UserStatus


class UserPublic(BaseModel):
    """Public representation of a User."""
    id: uuid.UUID
    personal_email: str
    login_email: str
    name: str
    role: str
    status: UserStatus
    created_at: datetime

    model_config = {"from_attributes": True}


class UserListResponse(BaseModel):
    message: str = "Users retrieved."
    total: int
    users: list[UserPublic]


class UserActionResponse(BaseModel):
    message: str
    user: UserPublic


class RoleAssignmentRequest(BaseModel):
    """Request body for PUT /users/{email}/role."""
    role: Role
