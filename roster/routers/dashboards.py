"""
Role dashboards — one landing endpoint per operational role.

Each is gated on exactly its own role; owners and admins are not
admitted implicitly.
"""

from fastapi import APIRouter, Depends

from roster.models.user import Role
from roster.dependencies import require_roles
from roster.schemas.auth import MessageResponse

router = APIRouter()


@router.get(
    "/manager/dashboard",
    response_model=MessageResponse,
    dependencies=[Depends(require_roles(Role.MANAGER))],
)
async def manager_dashboard():
    return MessageResponse(message="Welcome to the manager dashboard!")


@router.get(
    "/pilot/dashboard",
    response_model=MessageResponse,
    dependencies=[Depends(require_roles(Role.PILOT))],
)
async def pilot_dashboard():
    return MessageResponse(message="Welcome to the pilot dashboard!")


@router.get(
    "/loadmaster/dashboard",
    response_model=MessageResponse,
    dependencies=[Depends(require_roles(Role.LOADMASTER))],
)
async def loadmaster_dashboard():
    return MessageResponse(message="Welcome to the loadmaster dashboard!")
