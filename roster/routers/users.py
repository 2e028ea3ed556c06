"""
Users router — member management.

All endpoints require a bearer token. Everything except /users/me is
restricted to the owner and admins (ADMIN_ROLES, listed explicitly).

Endpoints:
  GET    /users                  — Paginated list of all members
  GET    /users/me               — The caller's own record
  GET    /users/{user_id}        — One member by id
  PUT    /users/{email}/approve  — pending/denied -> approved
  PUT    /users/{email}/deny     — pending/approved -> denied
  PUT    /users/{email}/role     — Assign a non-owner role
  DELETE /users/{user_id}        — Delete a member

{email} matches either the personal or the login email.
"""

import uuid

from fastapi import APIRouter, Depends, Query

from roster.dependencies import ADMIN_ROLES, get_current_user, get_user_store, require_roles
from roster.models.user import User, UserStatus
from roster.schemas.auth import MessageResponse
from roster.schemas.user import (
    RoleAssignmentRequest,
    UserActionResponse,
    UserListResponse,
    UserPublic,
)
from roster.services import user_service
from roster.services.user_store import UserStore

router = APIRouter()

require_admin = require_roles(*ADMIN_ROLES)


@router.get(
    "",
    response_model=UserListResponse,
    dependencies=[Depends(require_admin)],
    summary="List members",
)
async def list_users(
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    store: UserStore = Depends(get_user_store),
):
    total, users = await user_service.list_users(store, limit=limit, offset=offset)
    return UserListResponse(
        total=total,
        users=[UserPublic.model_validate(u) for u in users],
    )


@router.get("/me", response_model=UserPublic, summary="Get own record")
async def get_me(user: User = Depends(get_current_user)):
    return user


@router.get(
    "/{user_id}",
    response_model=UserPublic,
    dependencies=[Depends(require_admin)],
    summary="Get a member by id",
)
async def get_user(
    user_id: uuid.UUID,
    store: UserStore = Depends(get_user_store),
):
    return await user_service.get_user(store, user_id)


@router.put(
    "/{email}/approve",
    response_model=UserActionResponse,
    dependencies=[Depends(require_admin)],
    summary="Approve a member",
)
async def approve_user(
    email: str,
    store: UserStore = Depends(get_user_store),
):
    user = await user_service.set_status(store, email, UserStatus.APPROVED)
    return UserActionResponse(
        message="User approved successfully.",
        user=UserPublic.model_validate(user),
    )


@router.put(
    "/{email}/deny",
    response_model=UserActionResponse,
    dependencies=[Depends(require_admin)],
    summary="Deny a member",
)
async def deny_user(
    email: str,
    store: UserStore = Depends(get_user_store),
):
    user = await user_service.set_status(store, email, UserStatus.DENIED)
    return UserActionResponse(
        message="User denied successfully.",
        user=UserPublic.model_validate(user),
    )


@router.put(
    "/{email}/role",
    response_model=UserActionResponse,
    dependencies=[Depends(require_admin)],
    summary="Assign a role",
)
async def assign_role(
    email: str,
    request: RoleAssignmentRequest,
    store: UserStore = Depends(get_user_store),
):
    user = await user_service.assign_role(store, email, request.role)
    return UserActionResponse(
        message=f"Role {request.role.value} assigned to {user.login_email} successfully.",
        user=UserPublic.model_validate(user),
    )


@router.delete(
    "/{user_id}",
    response_model=MessageResponse,
    dependencies=[Depends(require_admin)],
    summary="Delete a member",
)
async def delete_user(
    user_id: uuid.UUID,
    store: UserStore = Depends(get_user_store),
):
    await user_service.delete_user(store, user_id)
    return MessageResponse(message="User deleted successfully.")
