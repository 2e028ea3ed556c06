"""
Authentication service — registration, login, and password reset.

This module contains the auth business logic, separated from HTTP concerns.
Routers call these functions with a UserStore (and a Mailer where needed)
and translate the results into responses.

Registration flow:
  1. Enforce the configured password policy
  2. Derive the login email and pre-check both emails (fast path only)
  3. Hash the password with Argon2id
  4. Insert-if-absent: the unique indexes are the real duplicate check
  5. Try to claim the singleton owner row; the winner becomes owner/approved

Login flow:
  1. Look up by login email
  2. Verify the password (a dummy hash is verified for unknown emails)
  3. Refuse pending/denied accounts with a status-specific message
  4. Issue a bearer token

Password reset flow:
  request_password_reset  stores sha256(token) + expiry, emails the token
  reset_password          compare-and-swap on (hash, expiry) sets the new
                          password and clears the token in one UPDATE

Security notes:
  - Unknown email and wrong password raise the same InvalidCredentialsError
  - Wrong, reused and expired reset tokens raise the same InvalidResetTokenError
  - Plaintext passwords and tokens are never logged
"""

import logging
import re
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

from roster.config import settings
from roster.exceptions import (
    AccountNotApprovedError,
    DuplicateEmailError,
    InvalidCredentialsError,
    InvalidResetTokenError,
    PasswordPolicyError,
    UserNotFoundError,
)
from roster.models.user import Role, User, UserStatus
from roster.security import (
    create_access_token,
    generate_reset_token,
    hash_password_async,
    hash_reset_token,
    verify_password_async,
)
from roster.services.mailer import Mailer
from roster.services.user_store import UserStore

logger = logging.getLogger(__name__)

RESET_EMAIL_SUBJECT = "Password Reset Request"


@dataclass
class RegistrationResult:
    user: User
    message: str


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def check_password_policy(password: str) -> None:
    """Raise PasswordPolicyError if password breaks the configured policy."""
    if len(password) < settings.PASSWORD_MIN_LENGTH:
        raise PasswordPolicyError(
            f"Password must be at least {settings.PASSWORD_MIN_LENGTH} characters long."
        )
    if settings.PASSWORD_REQUIRE_LETTER and not re.search(r"[A-Za-z]", password):
        raise PasswordPolicyError("Password must contain a letter.")
    if settings.PASSWORD_REQUIRE_DIGIT and not re.search(r"\d", password):
        raise PasswordPolicyError("Password must contain a number.")


def derive_login_email(personal_email: str) -> str:
    """jane.doe@gmail.com -> jane.doe@<LOGIN_EMAIL_DOMAIN>"""
    local_part = personal_email.strip().lower().rsplit("@", 1)[0]
    return f"{local_part}@{settings.LOGIN_EMAIL_DOMAIN.lower()}"


_dummy_hash: str | None = None


async def _dummy_password_hash() -> str:
    # Verified against when the login email is unknown, so both failure
    # paths spend the same hashing time. Built once, off the event loop.
    global _dummy_hash
    if _dummy_hash is None:
        _dummy_hash = await hash_password_async(generate_reset_token(16))
    return _dummy_hash


def _registration_message(user: User) -> str:
    prefix = f"Registration successful! Your login email will be {user.login_email}."
    if user.role == Role.OWNER:
        return f"{prefix} You have been assigned as the owner."
    if user.role == Role.ADMIN:
        return f"{prefix} You have been registered as an admin and are pending approval."
    return f"{prefix} Your account is pending admin approval."


# ---------------------------------------------------------------------------
# Registration / login
# ---------------------------------------------------------------------------

async def register(
    store: UserStore,
    email: str,
    password: str,
    name: str | None = None,
    requested_role: str | None = None,
) -> RegistrationResult:
    """
    Register a new squadron member.

    Raises:
        PasswordPolicyError: If the password is too weak.
        DuplicateEmailError: If the personal or derived login email exists.
    """
    check_password_policy(password)

    personal_email = email.strip().lower()
    login_email = derive_login_email(personal_email)

    if await store.find_by_personal_email(personal_email):
        raise DuplicateEmailError(personal_email)
    if await store.find_by_login_email(login_email):
        raise DuplicateEmailError(
            login_email, f"Login email {login_email} is already taken."
        )

    role = Role.USER
    if requested_role == Role.ADMIN and settings.ALLOW_SELF_ASSIGNED_ADMIN:
        role = Role.ADMIN

    user = await store.insert_if_absent({
        "personal_email": personal_email,
        "login_email": login_email,
        "hashed_password": await hash_password_async(password),
        "name": (name or "").strip() or settings.DEFAULT_DISPLAY_NAME,
        "role": role.value,
        "status": UserStatus.PENDING,
    })
    if user is None:
        # Lost a race against a concurrent registration; report whichever
        # unique address the winner took
        if await store.find_by_personal_email(personal_email) is None:
            raise DuplicateEmailError(
                login_email, f"Login email {login_email} is already taken."
            )
        raise DuplicateEmailError(personal_email)

    if await store.claim_owner(user.id):
        await store.update_fields(
            user.id, {"role": Role.OWNER.value, "status": UserStatus.APPROVED}
        )
        user = await store.find_by_id(user.id)

    logger.info("Registered %s as %s (%s)", user.login_email, user.role, user.status.value)
    return RegistrationResult(user=user, message=_registration_message(user))


async def login(
    store: UserStore,
    email: str,
    password: str,
) -> tuple[User, str]:
    """
    Authenticate a member by login email and return (user, bearer token).

    Raises:
        InvalidCredentialsError: Unknown email or wrong password.
        AccountNotApprovedError: Correct password, but pending or denied.
    """
    user = await store.find_by_login_email(email)

    if user is None:
        await verify_password_async(password, await _dummy_password_hash())
        logger.info("Login failed: unknown login email")
        raise InvalidCredentialsError()

    if not await verify_password_async(password, user.hashed_password):
        logger.info("Login failed for %s: wrong password", user.login_email)
        raise InvalidCredentialsError()

    if user.status != UserStatus.APPROVED:
        logger.info("Login refused for %s: account %s", user.login_email, user.status.value)
        raise AccountNotApprovedError(user.status.value)

    token = create_access_token(subject=str(user.id), role=user.role)
    return user, token


# ---------------------------------------------------------------------------
# Password reset
# ---------------------------------------------------------------------------

def build_reset_link(token: str) -> str:
    return f"{settings.FRONTEND_URL.rstrip('/')}/reset-password?token={token}"


async def request_password_reset(
    store: UserStore,
    mailer: Mailer,
    email: str,
    now: datetime | None = None,
) -> None:
    """
    Issue a reset token for the account with this personal email and mail it.

    Any earlier outstanding token is overwritten.

    Raises:
        UserNotFoundError: No account has this personal email.
        MailDeliveryError: The mail transport failed.
    """
    user = await store.find_by_personal_email(email)
    if user is None:
        raise UserNotFoundError()

    now = now or datetime.now(timezone.utc)
    token = generate_reset_token()
    await store.update_fields(
        user.id,
        {
            "reset_token_hash": hash_reset_token(token),
            "reset_token_expires_at": now + timedelta(
                minutes=settings.RESET_TOKEN_EXPIRE_MINUTES
            ),
        },
    )

    body = (
        "You requested a password reset. Click the link to reset your password: "
        f"{build_reset_link(token)}\n"
        f"This link will expire in {settings.RESET_TOKEN_EXPIRE_MINUTES} minutes."
    )
    await mailer.send(user.personal_email, RESET_EMAIL_SUBJECT, body)
    logger.info("Password reset requested for %s", user.login_email)


async def reset_password(
    store: UserStore,
    token: str,
    new_password: str,
    now: datetime | None = None,
) -> None:
    """
    Exchange a valid reset token for a new password.

    Raises:
        PasswordPolicyError: The new password is too weak.
        InvalidResetTokenError: The token is wrong, already used, or expired.
    """
    check_password_policy(new_password)

    now = now or datetime.now(timezone.utc)
    token_hash = hash_reset_token(token)

    # Cheap pre-check so a bogus token doesn't cost an Argon2 hash
    user = await store.find_by_active_reset_token(token_hash, now)
    if user is None:
        raise InvalidResetTokenError()

    consumed = await store.consume_reset_token(
        token_hash,
        now,
        {"hashed_password": await hash_password_async(new_password)},
    )
    if not consumed:
        raise InvalidResetTokenError()

    logger.info("Password reset completed for %s", user.login_email)
