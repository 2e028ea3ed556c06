"""
FastAPI dependencies for authentication and authorization.

The access gate is a two-stage dependency chain:

  get_current_principal   Authorization header -> verified token claims  [401]
      └── require_roles(*roles)   claims.role in roles                  [403]

Authorization is plain set membership on the role carried in the token.
There is no hierarchy: an endpoint that should admit the owner lists
Role.OWNER explicitly (see ADMIN_ROLES).

Every protected endpoint declares one of these as a parameter. If it fails,
the request is rejected before the route handler runs.
"""

import logging
import uuid
from dataclasses import dataclass

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from roster.database import get_db
from roster.exceptions import AuthenticationError, AuthorizationError
from roster.models.user import Role, User
from roster.security import InvalidTokenError, decode_access_token
from roster.services.mailer import Mailer
from roster.services.user_store import UserStore

logger = logging.getLogger(__name__)

ADMIN_ROLES = (Role.OWNER, Role.ADMIN)


@dataclass(frozen=True)
class Principal:
    """The authenticated caller, as asserted by a verified bearer token."""
    user_id: uuid.UUID
    role: str


# ---------------------------------------------------------------------------
# Collaborators
# ---------------------------------------------------------------------------

async def get_user_store(db: AsyncSession = Depends(get_db)) -> UserStore:
    return UserStore(db)


async def get_mailer(request: Request) -> Mailer:
    return request.app.state.mailer


# ---------------------------------------------------------------------------
# Access gate
# ---------------------------------------------------------------------------

def extract_bearer_token(authorization: str | None) -> str:
    """
    Pull the token out of an "Authorization: Bearer <token>" header value.

    Anything other than exactly two space-separated parts with a "Bearer"
    scheme (case-insensitive) is rejected.
    """
    if not authorization:
        raise AuthenticationError("No token provided.")
    parts = authorization.split(" ")
    if len(parts) != 2 or parts[0].lower() != "bearer" or not parts[1]:
        raise AuthenticationError("Malformed authorization header.")
    return parts[1]


async def get_current_principal(request: Request) -> Principal:
    """
    Authenticate the request from its bearer token.

    Missing header, malformed header, bad signature and expiry all end in
    AuthenticationError (401); the token problem itself is not disclosed.
    """
    token = extract_bearer_token(request.headers.get("Authorization"))
    try:
        claims = decode_access_token(token)
        user_id = uuid.UUID(claims.subject)
    except (InvalidTokenError, ValueError):
        logger.info("Rejected bearer token on %s", request.url.path)
        raise AuthenticationError("Invalid or expired token.")
    return Principal(user_id=user_id, role=claims.role)


def require_roles(*roles: str):
    """
    Build a dependency admitting only principals whose role is in roles.

    Usage:
        @router.get("/users", dependencies=[Depends(require_roles(*ADMIN_ROLES))])
    """
    allowed = frozenset(getattr(role, "value", role) for role in roles)

    async def check_role(
        principal: Principal = Depends(get_current_principal),
    ) -> Principal:
        if principal.role not in allowed:
            raise AuthorizationError(
                f"Access denied. Requires one of: {', '.join(sorted(allowed))}."
            )
        return principal

    return check_role


async def get_current_user(
    principal: Principal = Depends(get_current_principal),
    store: UserStore = Depends(get_user_store),
) -> User:
    """
    Load the caller's own record.

    A valid token whose user has since been deleted is treated as
    unauthenticated.
    """
    user = await store.find_by_id(principal.user_id)
    if user is None:
        raise AuthenticationError("Invalid or expired token.")
    return user
