"""
Authentication router — registration, login, and password reset.

These are the only public (unauthenticated) endpoints in the API.

Endpoints:
  POST /register                — Create an account (first account becomes owner)
  POST /login                   — Exchange login email + password for a token
  POST /request-password-reset  — Email a single-use reset link
  POST /reset-password          — Set a new password with a reset token

Plaintext passwords and tokens exist only in memory during request
processing; they are never logged and never echoed in a response.
"""

from fastapi import APIRouter, Depends, status

from roster.dependencies import get_mailer, get_user_store
from roster.schemas.auth import (
    LoginRequest,
    LoginResponse,
    MessageResponse,
    PasswordResetConfirm,
    PasswordResetRequest,
    RegisterRequest,
    RegisterResponse,
)
from roster.schemas.user import UserPublic
from roster.services import auth_service
from roster.services.mailer import Mailer
from roster.services.user_store import UserStore

router = APIRouter()


@router.post(
    "/register",
    response_model=RegisterResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Register a new member",
)
async def register(
    request: RegisterRequest,
    store: UserStore = Depends(get_user_store),
):
    """
    Register a new squadron member.

    - **email**: personal email, must not already be registered
    - **password**: must satisfy the configured policy (default: 8+ chars, a letter and a digit)
    - **name**: optional display name
    - **role** / **userType**: "admin" is honoured only when self-assigned admin is enabled

    The first account ever registered becomes the approved owner; every other
    account starts pending approval.
    """
    result = await auth_service.register(
        store=store,
        email=request.email,
        password=request.password,
        name=request.name,
        requested_role=request.role,
    )
    return RegisterResponse(
        message=result.message,
        login_email=result.user.login_email,
        role=result.user.role,
        status=result.user.status.value,
    )


@router.post(
    "/login",
    response_model=LoginResponse,
    summary="Authenticate and get a token",
)
async def login(
    request: LoginRequest,
    store: UserStore = Depends(get_user_store),
):
    """
    Authenticate with the derived login email and password.

    Returns a bearer token valid for 8 hours:

        Authorization: Bearer <token>
    """
    user, token = await auth_service.login(
        store=store,
        email=request.email,
        password=request.password,
    )
    return LoginResponse(token=token, user=UserPublic.model_validate(user))


@router.post(
    "/request-password-reset",
    response_model=MessageResponse,
    summary="Request a password reset email",
)
async def request_password_reset(
    request: PasswordResetRequest,
    store: UserStore = Depends(get_user_store),
    mailer: Mailer = Depends(get_mailer),
):
    """Email a reset link (valid for one hour) to the account's personal email."""
    await auth_service.request_password_reset(
        store=store,
        mailer=mailer,
        email=request.email,
    )
    return MessageResponse(message="Password reset email sent!")


@router.post(
    "/reset-password",
    response_model=MessageResponse,
    summary="Reset a password with a reset token",
)
async def reset_password(
    request: PasswordResetConfirm,
    store: UserStore = Depends(get_user_store),
):
    """Set a new password. Each reset token works once, and only before it expires."""
    await auth_service.reset_password(
        store=store,
        token=request.token,
        new_password=request.new_password,
    )
    return MessageResponse(message="Password reset successful!")
