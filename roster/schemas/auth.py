"""
Pydantic schemas for authentication endpoints.

Pydantic validates request shape (types, email format, required fields);
the password policy itself lives in the service layer because it is
configurable. Malformed requests are answered with 400.
"""

from pydantic import AliasChoices, BaseModel, EmailStr, Field

from roster.schemas.user import UserPublic


class RegisterRequest(BaseModel):
    """Request body for POST /register."""
    email: EmailStr
    password: str = Field(min_length=1, max_length=256)
    name: str | None = Field(None, max_length=100)
    # Older clients send "userType" instead of "role"
    role: str | None = Field(
        None,
        max_length=32,
        validation_alias=AliasChoices("role", "userType", "user_type"),
    )


class RegisterResponse(BaseModel):
    """Response body for successful registration. No token: most accounts start pending."""
    message: str
    login_email: str
    role: str
    status: str


class LoginRequest(BaseModel):
    """Request body for POST /login (email is the derived login email)."""
    email: EmailStr
    password: str = Field(min_length=1, max_length=256)


class LoginResponse(BaseModel):
    message: str = "Login successful."
    token: str
    token_type: str = "bearer"
    user: UserPublic


class PasswordResetRequest(BaseModel):
    """Request body for POST /request-password-reset."""
    email: EmailStr


class PasswordResetConfirm(BaseModel):
    """Request body for POST /reset-password."""
    token: str = Field(min_length=1, max_length=256)
    new_password: str = Field(
        min_length=1,
        max_length=256,
        validation_alias=AliasChoices("newPassword", "new_password"),
    )


class MessageResponse(BaseModel):
    message: str
