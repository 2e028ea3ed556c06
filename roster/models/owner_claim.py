"""
OwnerClaim model — the singleton row that makes "first user becomes owner" atomic.

Counting users and branching on zero is a read-then-write race: two concurrent
first registrations could both see an empty table. Instead, registration tries
to insert the one allowed row (id=1) with INSERT ... ON CONFLICT DO NOTHING in
the same transaction as the new user. Exactly one transaction ever inserts it;
that user is the owner.

The claim is permanent. Deleting rows from users never reopens it, because the
owner account itself cannot be deleted through the API.
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import CheckConstraint, DateTime, ForeignKey, Integer
from sqlalchemy.orm import Mapped, mapped_column

from roster.database import Base

OWNER_CLAIM_ID = 1


class OwnerClaim(Base):
    __tablename__ = "owner_claims"

    __table_args__ = (
        CheckConstraint(f"id = {OWNER_CLAIM_ID}", name="ck_owner_claims_singleton"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=False)

    user_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("users.id"),
        nullable=False,
        unique=True,
    )

    claimed_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False,
    )
