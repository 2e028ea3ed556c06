"""
User model — the squadron member's login identity.

Each User has two email addresses:
  - personal_email: the address the member registered with (receives reset mail)
  - login_email: derived at registration as <localpart>@<LOGIN_EMAIL_DOMAIN>

Both are stored lower-cased and carry unique indexes. The database, not the
application, is the enforcement point for uniqueness: a racing duplicate
insert is rejected by the store even if the pre-check missed it.

Roles:
  A flat string from an open set (owner, admin, manager, user, pilot,
  loadmaster, ...). There is no hierarchy: every protected operation lists
  the exact roles it admits.

Status:
  pending -> approved | denied. Only approved accounts may log in.

Password reset:
  reset_token_hash / reset_token_expires_at are set together while a reset is
  outstanding and cleared together when it is consumed. Only the SHA-256 of
  the emailed token is stored.
"""

import enum
import uuid
from datetime import datetime, timezone

from sqlalchemy import String, DateTime, Enum
from sqlalchemy.orm import Mapped, mapped_column

from roster.database import Base


class Role(str, enum.Enum):
    """
    Known roles. Stored as plain strings so new roles need no migration.
    """
    OWNER = "owner"             # First registered account; exactly one exists
    ADMIN = "admin"             # Approves members and assigns roles
    MANAGER = "manager"
    USER = "user"               # Default for new registrations
    PILOT = "pilot"
    LOADMASTER = "loadmaster"


class UserStatus(str, enum.Enum):
    """Governs login eligibility."""
    PENDING = "pending"
    APPROVED = "approved"
    DENIED = "denied"


class User(Base):
    __tablename__ = "users"

    id: Mapped[uuid.UUID] = mapped_column(
        primary_key=True,
        default=uuid.uuid4,
    )

    personal_email: Mapped[str] = mapped_column(
        String(255),
        unique=True,
        nullable=False,
        index=True,
    )

    login_email: Mapped[str] = mapped_column(
        String(255),
        unique=True,
        nullable=False,
        index=True,
    )

    # Argon2id hash (self-describing: algorithm, parameters and salt are embedded)
    hashed_password: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
    )

    name: Mapped[str] = mapped_column(
        String(100),
        nullable=False,
    )

    role: Mapped[str] = mapped_column(
        String(32),
        default=Role.USER.value,
        nullable=False,
    )

    status: Mapped[UserStatus] = mapped_column(
        Enum(UserStatus),
        default=UserStatus.PENDING,
        nullable=False,
    )

    # SHA-256 hex digest of the outstanding reset token
    reset_token_hash: Mapped[str | None] = mapped_column(
        String(64),
        nullable=True,
        index=True,
    )
    reset_token_expires_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )

    # Audit timestamps
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
        nullable=False,
    )
