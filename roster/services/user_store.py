"""
Credential store adapter — every read and write of user records goes through here.

The services above this layer rely on three store-level guarantees, all of
which are single SQL statements so concurrent requests cannot interleave
inside them:

  insert_if_absent()   INSERT ... ON CONFLICT DO NOTHING; the unique indexes on
                       personal_email/login_email decide the winner of a race.
  claim_owner()        the same trick against the singleton owner_claims row.
  update_fields() /    UPDATE ... WHERE <id> AND <guards>; the row count tells
  consume_reset_token()  the caller whether its compare-and-swap applied.

ON CONFLICT DO NOTHING is dialect specific; SQLite and PostgreSQL are supported.
"""

import uuid
from datetime import datetime
from typing import Any

from sqlalchemy import delete, func, select, update
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.ext.asyncio import AsyncSession

from roster.models.owner_claim import OwnerClaim, OWNER_CLAIM_ID
from roster.models.user import User


_INSERT_BUILDERS = {
    "sqlite": sqlite.insert,
    "postgresql": postgresql.insert,
}


class UserStore:
    """Wraps one request's AsyncSession with the user-record operations."""

    def __init__(self, db: AsyncSession):
        self.db = db

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    async def _one(self, *criteria) -> User | None:
        # populate_existing: rows changed by the Core UPDATEs below must not be
        # served stale from the identity map.
        result = await self.db.execute(
            select(User)
            .where(*criteria)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def find_by_id(self, user_id: uuid.UUID) -> User | None:
        return await self._one(User.id == user_id)

    async def find_by_personal_email(self, email: str) -> User | None:
        return await self._one(User.personal_email == email.strip().lower())

    async def find_by_login_email(self, email: str) -> User | None:
        return await self._one(User.login_email == email.strip().lower())

    async def find_by_any_email(self, email: str) -> User | None:
        """Match either the personal or the derived login address."""
        email = email.strip().lower()
        return await self._one(
            (User.personal_email == email) | (User.login_email == email)
        )

    async def find_by_active_reset_token(
        self, token_hash: str, now: datetime
    ) -> User | None:
        return await self._one(
            User.reset_token_hash == token_hash,
            User.reset_token_expires_at > now,
        )

    async def count(self) -> int:
        result = await self.db.execute(select(func.count()).select_from(User))
        return result.scalar_one()

    async def list_users(self, limit: int = 50, offset: int = 0) -> list[User]:
        result = await self.db.execute(
            select(User)
            .order_by(User.created_at, User.login_email)
            .limit(limit)
            .offset(offset)
        )
        return list(result.scalars().all())

    # ------------------------------------------------------------------
    # Atomic writes
    # ------------------------------------------------------------------

    def _insert(self, table):
        dialect = self.db.get_bind().dialect.name
        try:
            builder = _INSERT_BUILDERS[dialect]
        except KeyError:
            raise NotImplementedError(
                f"insert-if-absent is not supported for the {dialect!r} dialect"
            )
        return builder(table)

    async def insert_if_absent(self, values: dict[str, Any]) -> User | None:
        """
        Insert a user unless a unique field collides.

        Returns:
            The stored User, or None if personal_email or login_email
            already exists (including a row committed by a racing request).
        """
        values = dict(values)
        values.setdefault("id", uuid.uuid4())
        result = await self.db.execute(
            self._insert(User.__table__).values(**values).on_conflict_do_nothing()
        )
        if result.rowcount != 1:
            return None
        return await self.find_by_id(values["id"])

    async def claim_owner(self, user_id: uuid.UUID) -> bool:
        """Try to take the singleton owner claim for user_id."""
        result = await self.db.execute(
            self._insert(OwnerClaim.__table__)
            .values(id=OWNER_CLAIM_ID, user_id=user_id)
            .on_conflict_do_nothing()
        )
        return result.rowcount == 1

    async def update_fields(
        self,
        user_id: uuid.UUID,
        patch: dict[str, Any],
        **guards: Any,
    ) -> bool:
        """
        Apply patch to one record in a single UPDATE.

        Each keyword guard is an equality condition the row must still satisfy,
        e.g. update_fields(uid, {"status": APPROVED}, status=PENDING).

        Returns:
            True if the row was updated; False if it is absent or a guard failed.
        """
        criteria = [User.id == user_id]
        criteria.extend(getattr(User, field) == value for field, value in guards.items())
        result = await self.db.execute(
            update(User)
            .where(*criteria)
            .values(**patch)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    async def consume_reset_token(
        self,
        token_hash: str,
        now: datetime,
        patch: dict[str, Any],
    ) -> bool:
        """
        Compare-and-swap on an outstanding reset token.

        The patch is applied (and the token cleared) only if a row still holds
        this token hash with an expiry after now. Of two concurrent calls with
        the same token, at most one sees rowcount == 1.
        """
        patch = {**patch, "reset_token_hash": None, "reset_token_expires_at": None}
        result = await self.db.execute(
            update(User)
            .where(
                User.reset_token_hash == token_hash,
                User.reset_token_expires_at > now,
            )
            .values(**patch)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    async def delete(self, user_id: uuid.UUID) -> bool:
        result = await self.db.execute(
            delete(User)
            .where(User.id == user_id)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1
