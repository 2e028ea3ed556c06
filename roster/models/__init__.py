"""
SQLAlchemy ORM models package.

All models are imported here so that Base.metadata knows every table
before create_all() runs, and other modules can import from roster.models.
"""

from roster.models.user import User, Role, UserStatus  # noqa: F401
from roster.models.owner_claim import OwnerClaim, OWNER_CLAIM_ID  # noqa: F401
