#!/usr/bin/env python3
"""
Operator script: set a member's role and/or status directly in the database.

Use it to recover when no owner/admin can reach the API, or to approve the
first admin of an imported roster. Run on the server:

    DATABASE_URL=sqlite+aiosqlite:///./roster.db python demo/promote_admin.py jane.doe@sq23rd.com --role admin --status approved

Only the fields given on the command line change. The owner's record is
never touched, so the deployment keeps exactly one owner.
"""
import argparse
import asyncio
import os
import sys

from sqlalchemy import or_, select, update
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker

from roster.models.user import Role, User, UserStatus


class PromotionRefused(Exception):
    """The target is the owner, whose role and status are fixed."""


async def promote(
    database_url: str,
    email: str,
    role: str | None = None,
    status: str | None = None,
) -> int:
    values = {}
    if role:
        if Role(role) == Role.OWNER:
            raise PromotionRefused("The owner role cannot be assigned")
        values["role"] = Role(role).value
    if status:
        values["status"] = UserStatus(status)
    if not values:
        raise ValueError("Nothing to change: give a role and/or a status")

    email = email.strip().lower()
    matches_email = or_(User.login_email == email, User.personal_email == email)

    engine = create_async_engine(database_url)
    sf = async_sessionmaker(engine, class_=AsyncSession)
    try:
        async with sf() as s:
            # One address can be one member's personal and another's login email
            current_roles = (
                await s.execute(select(User.role).where(matches_email))
            ).scalars().all()
            if Role.OWNER.value in current_roles:
                raise PromotionRefused(f"{email} is the owner and cannot be changed")

            r = await s.execute(
                update(User)
                .where(matches_email, User.role != Role.OWNER.value)
                .values(**values)
            )
            await s.commit()
            print(f"Rows updated: {r.rowcount}")
    finally:
        await engine.dispose()
    return r.rowcount


def main() -> None:
    parser = argparse.ArgumentParser(description=__doc__.split("\n\n")[0])
    parser.add_argument("email", help="Login or personal email of the member")
    parser.add_argument(
        "--role",
        choices=[r.value for r in Role if r != Role.OWNER],
        default=None,
    )
    parser.add_argument(
        "--status",
        choices=[s.value for s in UserStatus],
        default=None,
    )
    args = parser.parse_args()

    if args.role is None and args.status is None:
        parser.error("give --role and/or --status")
    if "DATABASE_URL" not in os.environ:
        sys.exit("DATABASE_URL must be set")

    try:
        updated = asyncio.run(
            promote(os.environ["DATABASE_URL"], args.email, args.role, args.status)
        )
    except PromotionRefused as exc:
        sys.exit(str(exc))
    if updated == 0:
        sys.exit(f"No member with email {args.email}")


if __name__ == "__main__":
    main()
