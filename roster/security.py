"""
Security utilities: password hashing, bearer tokens, and reset tokens.

This module centralizes all cryptographic operations so they're easy to
audit and update. Three concerns are handled here:

1. PASSWORD HASHING (Argon2id via passlib)
   - Hashes are self-describing ("$argon2id$v=19$m=...,t=...,p=...$salt$digest"),
     so verification needs no separately stored parameters.
   - Cost parameters are tunable through ARGON2_* keyword arguments to
     build_password_context(); passlib's defaults are current best practice.
   - Hashing is CPU- and memory-heavy, so the async wrappers run it in the
     threadpool instead of on the event loop.

2. BEARER TOKENS (JWT, HS256 via python-jose)
   - Claims: sub (user id), role, iat, exp. Validity is
     ACCESS_TOKEN_EXPIRE_MINUTES (8 hours) from issuance.
   - Verification fails closed: bad structure, bad signature, missing claims
     and expiry all raise the same InvalidTokenError.

3. RESET TOKENS
   - 32 random bytes, hex encoded, emailed to the member.
   - Only the SHA-256 digest is persisted. A high-entropy token doesn't need a
     slow hash; a fast deterministic digest lets the store look it up by value.
"""

import hashlib
import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

from jose import JWTError, jwt
from passlib.context import CryptContext
from starlette.concurrency import run_in_threadpool

from roster.config import settings


# ---------------------------------------------------------------------------
# 1. Password Hashing (Argon2id)
# ---------------------------------------------------------------------------

def build_password_context(**argon2_params) -> CryptContext:
    """
    Build a CryptContext for Argon2id.

    Keyword arguments are forwarded as argon2 settings, e.g.
    build_password_context(argon2__time_cost=4, argon2__memory_cost=131072).
    "deprecated='auto'" lets passlib flag old hashes for upgrade if the
    scheme list ever changes.
    """
    return CryptContext(schemes=["argon2"], deprecated="auto", **argon2_params)


pwd_context = build_password_context()


def hash_password(plain_password: str) -> str:
    """
    Hash a plaintext password using Argon2id.

    Returns:
        An Argon2 hash string (e.g., "$argon2id$v=19$m=65536,t=3,p=4$...").
    """
    return pwd_context.hash(plain_password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """
    Verify a plaintext password against a stored Argon2 hash.

    Never raises: a malformed or unrecognised stored hash counts as a mismatch.
    """
    try:
        return pwd_context.verify(plain_password, hashed_password)
    except (ValueError, TypeError):
        return False


async def hash_password_async(plain_password: str) -> str:
    return await run_in_threadpool(hash_password, plain_password)


async def verify_password_async(plain_password: str, hashed_password: str) -> bool:
    return await run_in_threadpool(verify_password, plain_password, hashed_password)


# ---------------------------------------------------------------------------
# 2. Bearer Tokens (JWT)
# ---------------------------------------------------------------------------

class InvalidTokenError(Exception):
    """The bearer token is malformed, tampered with, incomplete, or expired."""


@dataclass(frozen=True)
class TokenClaims:
    """The verified contents of a bearer token."""
    subject: str
    role: str
    issued_at: datetime
    expires_at: datetime


def create_access_token(
    subject: str,
    role: str,
    issued_at: datetime | None = None,
    expires_delta: timedelta | None = None,
) -> str:
    """
    Create a signed bearer token for a user.

    Args:
        subject: The user's id, as a string.
        role: The user's role at issuance.
        issued_at: Issuance instant; defaults to now (UTC).
        expires_delta: Validity window; defaults to ACCESS_TOKEN_EXPIRE_MINUTES.

    Returns:
        An encoded JWT string.
    """
    issued_at = issued_at or datetime.now(timezone.utc)
    if expires_delta is None:
        expires_delta = timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)

    claims = {
        "sub": subject,
        "role": role,
        "iat": int(issued_at.timestamp()),
        "exp": int((issued_at + expires_delta).timestamp()),
    }
    return jwt.encode(claims, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def decode_access_token(token: str, now: datetime | None = None) -> TokenClaims:
    """
    Verify a bearer token's signature and expiry and return its claims.

    Expiry is checked here rather than inside jose so that the comparison
    instant can be supplied: a token is valid strictly before its exp and
    invalid from exp onward.

    Raises:
        InvalidTokenError: For every kind of failure, indistinguishably.
    """
    try:
        payload = jwt.decode(
            token,
            settings.SECRET_KEY,
            algorithms=[settings.ALGORITHM],
            options={"verify_exp": False},
        )
    except JWTError:
        raise InvalidTokenError()

    subject = payload.get("sub")
    role = payload.get("role")
    issued_at = payload.get("iat")
    expires_at = payload.get("exp")
    if not isinstance(subject, str) or not isinstance(role, str):
        raise InvalidTokenError()
    if not isinstance(issued_at, int) or not isinstance(expires_at, int):
        raise InvalidTokenError()

    now = now or datetime.now(timezone.utc)
    if now.timestamp() >= expires_at:
        raise InvalidTokenError()

    return TokenClaims(
        subject=subject,
        role=role,
        issued_at=datetime.fromtimestamp(issued_at, tz=timezone.utc),
        expires_at=datetime.fromtimestamp(expires_at, tz=timezone.utc),
    )


# ---------------------------------------------------------------------------
# 3. Reset Tokens
# ---------------------------------------------------------------------------

def generate_reset_token(num_bytes: int | None = None) -> str:
    """Return a fresh URL-safe reset token (hex encoded)."""
    return secrets.token_hex(num_bytes or settings.RESET_TOKEN_BYTES)


def hash_reset_token(token: str) -> str:
    """SHA-256 hex digest of a reset token; the only form that is persisted."""
    return hashlib.sha256(token.encode("utf-8")).hexdigest()
