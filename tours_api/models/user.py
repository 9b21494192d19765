"""
User model — the authentication identity.

Each User represents a login credential (email + hashed password) with a
role that gates what the user may do:

  - USER: Default role for signup. Can write reviews.
  - GUIDE: Leads tours.
  - LEAD_GUIDE: Senior guide. Can manage tours.
  - ADMIN: Full access, including user management.

Self-service signup always yields USER; other roles are provisioned by an
operator (see demo/promote_admin.py).

Password state:
  - password_hash: Argon2id hash, never serialized in any response schema
  - password_changed_at: Set whenever the password changes after signup.
    Access and refresh tokens issued before this instant are rejected.
  - password_reset_token_hash / password_reset_expires_at: Only set while
    a reset is pending. The plaintext token is never stored, only its
    SHA-256 digest.

Soft delete:
  DELETE /users/deleteMe sets active=False. Inactive users are excluded
  from every lookup (see active_users) and cannot authenticate.
"""

import enum
import uuid
from datetime import datetime, timezone

from sqlalchemy import String, Boolean, DateTime, Enum
from sqlalchemy.orm import Mapped, mapped_column

from tours_api.database import Base


class UserRole(str, enum.Enum):
    """
    Defines the role a user holds.

    Inherits from str so the enum value serializes naturally to JSON.
    """
    USER = "user"
    GUIDE = "guide"
    LEAD_GUIDE = "lead-guide"
    ADMIN = "admin"


class User(Base):
    __tablename__ = "users"

    id: Mapped[uuid.UUID] = mapped_column(
        primary_key=True,
        default=uuid.uuid4,
    )

    name: Mapped[str] = mapped_column(
        String(100),
        nullable=False,
    )

    # Login identifier: stored lower-cased, unique and indexed
    email: Mapped[str] = mapped_column(
        String(255),
        unique=True,
        nullable=False,
        index=True,
    )

    photo: Mapped[str | None] = mapped_column(
        String(255),
        nullable=True,
    )

    # Store enum values ("lead-guide"), not member names ("LEAD_GUIDE")
    role: Mapped[UserRole] = mapped_column(
        Enum(UserRole, values_callable=lambda roles: [r.value for r in roles]),
        default=UserRole.USER,
        nullable=False,
    )

    password_hash: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
    )

    password_changed_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )

    password_reset_token_hash: Mapped[str | None] = mapped_column(
        String(64),
        nullable=True,
        index=True,
    )

    password_reset_expires_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )

    active: Mapped[bool] = mapped_column(
        Boolean,
        default=True,
        nullable=False,
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False,
    )


def active_users():
    """Default scope for every user lookup: deactivated accounts are invisible."""
    return User.active.is_(True)
