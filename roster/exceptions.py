"""
Custom exception classes and FastAPI exception handlers.

The service layer raises these domain errors without importing HTTP concepts.
The handlers registered here translate them into JSON responses with a
consistent shape: {"message": "...", "error_type": "..."}.

Exception hierarchy:
    RosterAPIError (base)
    ├── ValidationError          400 — malformed input or business-rule violation
    │   ├── PasswordPolicyError
    │   ├── InvalidResetTokenError
    │   └── ProtectedAccountError
    ├── AuthenticationError      401 — missing/invalid token, bad credentials
    │   └── InvalidCredentialsError
    ├── AuthorizationError       403 — valid identity, insufficient role
    │   └── AccountNotApprovedError
    ├── NotFoundError            404
    │   └── UserNotFoundError
    ├── ConflictError            409 — duplicate unique field
    │   └── DuplicateEmailError
    └── DependencyError          500 — store or mail transport failure
        └── MailDeliveryError

Requests over the rate limit (slowapi's RateLimitExceeded) get 429 in the
same shape. Unexpected exceptions never leak internals: they are logged with a traceback
and the caller only sees a generic message.
"""

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = logging.getLogger(__name__)

GENERIC_ERROR_MESSAGE = "An error occurred. Please try again."


# ---------------------------------------------------------------------------
# Base exception
# ---------------------------------------------------------------------------

class RosterAPIError(Exception):
    """Base exception for all Roster API domain errors."""

    status_code: int = 500
    error_type: str = "error"

    def __init__(self, detail: str = "An error occurred"):
        self.detail = detail
        super().__init__(self.detail)


# ---------------------------------------------------------------------------
# Taxonomy
# ---------------------------------------------------------------------------

class ValidationError(RosterAPIError):
    status_code = 400
    error_type = "validation_error"


class AuthenticationError(RosterAPIError):
    status_code = 401
    error_type = "authentication_error"

    def __init__(self, detail: str = "Could not validate credentials"):
        super().__init__(detail)


class AuthorizationError(RosterAPIError):
    status_code = 403
    error_type = "authorization_error"

    def __init__(self, detail: str = "You do not have access to this resource"):
        super().__init__(detail)


class NotFoundError(RosterAPIError):
    status_code = 404
    error_type = "not_found"


class ConflictError(RosterAPIError):
    status_code = 409
    error_type = "conflict"


class DependencyError(RosterAPIError):
    status_code = 500
    error_type = "dependency_error"


# ---------------------------------------------------------------------------
# Domain exceptions
# ---------------------------------------------------------------------------

class PasswordPolicyError(ValidationError):
    """Raised when a new password does not satisfy the configured policy."""

    error_type = "password_policy"


class InvalidResetTokenError(ValidationError):
    """
    Raised for a wrong, consumed, or expired reset token.

    The three cases share one message so a caller cannot tell them apart.
    """

    error_type = "invalid_reset_token"

    def __init__(self):
        super().__init__("Invalid or expired token.")


class ProtectedAccountError(ValidationError):
    """Raised when a management operation would remove or duplicate the owner."""

    error_type = "protected_account"


class InvalidCredentialsError(AuthenticationError):
    """Raised when login credentials are incorrect."""

    error_type = "invalid_credentials"

    def __init__(self):
        super().__init__("Invalid email or password.")


class AccountNotApprovedError(AuthorizationError):
    """Raised when a pending or denied account tries to log in."""

    error_type = "account_not_approved"

    def __init__(self, status: str):
        self.status = status
        if status == "denied":
            super().__init__("Your account has been denied.")
        else:
            super().__init__("Your account is pending admin approval.")


class UserNotFoundError(NotFoundError):
    """Raised when a referenced user record does not exist."""

    error_type = "user_not_found"

    def __init__(self):
        super().__init__("User not found.")


class DuplicateEmailError(ConflictError):
    """Raised when a personal or derived login email is already registered."""

    error_type = "duplicate_email"

    def __init__(self, email: str, detail: str = "User already exists."):
        self.email = email
        super().__init__(detail)


class MailDeliveryError(DependencyError):
    """Raised when the mail transport reports a delivery failure."""

    error_type = "mail_delivery_failed"

    def __init__(self, detail: str = "Failed to send password reset email."):
        super().__init__(detail)


# ---------------------------------------------------------------------------
# FastAPI exception handlers
# ---------------------------------------------------------------------------

def register_exception_handlers(app: FastAPI) -> None:
    """
    Register exception handlers with the FastAPI application.

    Called once from create_app() in main.py.
    """

    @app.exception_handler(RosterAPIError)
    async def roster_error_handler(
        request: Request, exc: RosterAPIError
    ) -> JSONResponse:
        headers = None
        if isinstance(exc, AuthenticationError):
            headers = {"WWW-Authenticate": "Bearer"}
        if isinstance(exc, DependencyError):
            logger.error(
                "Dependency failure on %s %s: %s",
                request.method, request.url.path, exc.detail,
            )
        return JSONResponse(
            status_code=exc.status_code,
            content={"message": exc.detail, "error_type": exc.error_type},
            headers=headers,
        )

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        errors = [
            {
                "field": ".".join(str(part) for part in error["loc"][1:]),
                "message": error["msg"],
            }
            for error in exc.errors()
        ]
        return JSONResponse(
            status_code=400,
            content={
                "message": "Invalid request.",
                "error_type": "validation_error",
                "errors": errors,
            },
        )

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(
        request: Request, exc: StarletteHTTPException
    ) -> JSONResponse:
        return JSONResponse(
            status_code=exc.status_code,
            content={"message": exc.detail},
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(Exception)
    async def unexpected_error_handler(
        request: Request, exc: Exception
    ) -> JSONResponse:
        logger.exception(
            "Unhandled error on %s %s", request.method, request.url.path
        )
        return JSONResponse(
            status_code=500,
            content={"message": GENERIC_ERROR_MESSAGE},
        )


def rate_limit_exceeded_handler(request: Request, exc: Exception) -> JSONResponse:
    """
    Answer a request over the slowapi budget with 429.

    Kept synchronous: SlowAPIMiddleware calls the registered handler directly.
    """
    logger.warning(
        "Rate limit exceeded on %s %s (%s)",
        request.method, request.url.path, getattr(exc, "detail", ""),
    )
    return JSONResponse(
        status_code=429,
        content={
            "message": "Too many requests. Please try again later.",
            "error_type": "rate_limited",
        },
    )
