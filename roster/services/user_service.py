"""
User management service — the owner/admin-gated operations on member records.

Approval, denial, role assignment and deletion all go through guarded
single-statement updates in UserStore, so two admins acting on the same
member at once cannot both "win" a transition.

The owner account is protected: it cannot be denied, re-roled or deleted,
and the owner role cannot be handed out. That keeps exactly one owner.
"""

import logging
import uuid

from roster.exceptions import (
    ProtectedAccountError,
    UserNotFoundError,
    ValidationError,
)
from roster.models.user import Role, User, UserStatus
from roster.services.user_store import UserStore

logger = logging.getLogger(__name__)


async def list_users(
    store: UserStore,
    limit: int = 50,
    offset: int = 0,
) -> tuple[int, list[User]]:
    """Return (total number of users, one page of users)."""
    total = await store.count()
    users = await store.list_users(limit=limit, offset=offset)
    return total, users


async def get_user(store: UserStore, user_id: uuid.UUID) -> User:
    user = await store.find_by_id(user_id)
    if user is None:
        raise UserNotFoundError()
    return user


async def _get_by_email(store: UserStore, email: str) -> User:
    user = await store.find_by_any_email(email)
    if user is None:
        raise UserNotFoundError()
    return user


async def set_status(store: UserStore, email: str, status: UserStatus) -> User:
    """
    Approve or deny a member.

    Raises:
        UserNotFoundError: No user has this personal or login email.
        ProtectedAccountError: Target is the owner.
        ValidationError: Already in that status, or changed concurrently.
    """
    user = await _get_by_email(store, email)

    if user.role == Role.OWNER and status != UserStatus.APPROVED:
        raise ProtectedAccountError("The owner account cannot be denied.")
    if user.status == status:
        raise ValidationError(f"User is already {status.value}.")

    updated = await store.update_fields(user.id, {"status": status}, status=user.status)
    if not updated:
        raise ValidationError("User was modified concurrently; please retry.")

    logger.info("Status of %s changed %s -> %s", user.login_email, user.status.value, status.value)
    return await get_user(store, user.id)


async def assign_role(store: UserStore, email: str, role: Role) -> User:
    """
    Give a member a new (non-owner) role.

    Raises:
        UserNotFoundError: No user has this personal or login email.
        ProtectedAccountError: Target is the owner, or role is owner.
        ValidationError: Already has that role, or changed concurrently.
    """
    if role == Role.OWNER:
        raise ProtectedAccountError("The owner role cannot be assigned.")

    user = await _get_by_email(store, email)

    if user.role == Role.OWNER:
        raise ProtectedAccountError("The owner's role cannot be changed.")
    if user.role == role:
        raise ValidationError(f"User is already {role.value}.")

    updated = await store.update_fields(user.id, {"role": role.value}, role=user.role)
    if not updated:
        raise ValidationError("User was modified concurrently; please retry.")

    logger.info("Role of %s changed %s -> %s", user.login_email, user.role, role.value)
    return await get_user(store, user.id)


async def delete_user(store: UserStore, user_id: uuid.UUID) -> None:
    """
    Delete a member record.

    Raises:
        UserNotFoundError: No user with this id.
        ProtectedAccountError: Target is the owner.
    """
    user = await get_user(store, user_id)
    if user.role == Role.OWNER:
        raise ProtectedAccountError("The owner account cannot be deleted.")

    if not await store.delete(user.id):
        raise UserNotFoundError()

    logger.info("Deleted user %s", user.login_email)
