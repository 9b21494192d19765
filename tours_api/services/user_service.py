"""
User service — the credential store.

Owns everything that reads or writes a User row:
  - Account creation (signup) with role forcing and password hashing
  - Lookups by email / id, always within the active_users scope
  - Password changes (set_password), which stamp password_changed_at
  - Profile updates, soft delete (deleteMe) and admin management

Role forcing:
  Signup always stores role "user". A request that explicitly asks for
  "admin" is rejected with 403 rather than quietly downgraded, so a
  privilege-escalation attempt is visible to the client and in the logs.
  Other roles (guide, lead-guide, admin) are provisioned by an operator.
"""

import logging
import uuid
from datetime import datetime, timedelta, timezone

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from tours_api.config import settings
from tours_api.exceptions import AuthorizationError, ValidationError
from tours_api.models.review import Review
from tours_api.models.user import User, UserRole, active_users
from tours_api.query import QuerySpec
from tours_api.schemas.user import UserResponse
from tours_api.security import hash_password
from tours_api.services import rating_service
from tours_api.services.handler_factory import ResourceHandler, ResourceType

logger = logging.getLogger(__name__)

users = ResourceHandler(ResourceType(
    model=User,
    name="User",
    public_fields=frozenset(UserResponse.model_fields),
    default_scope=active_users,
    conflict_message="This email is already registered",
))


def normalize_email(email: str) -> str:
    return email.strip().lower()


async def create_user(
    db: AsyncSession,
    name: str,
    email: str,
    password: str,
    password_confirm: str,
    photo: str | None = None,
    role: str | None = None,
) -> User:
    """
    Register a new user.

    Args:
        db: Database session.
        name: Display name.
        email: Login email (stored lower-cased, must be unique).
        password: Plaintext password (hashed before storage).
        password_confirm: Must equal password exactly. Never stored.
        photo: Optional photo filename.
        role: Requested role. "admin" is rejected; anything else is
              ignored and the stored role is "user".

    Raises:
        AuthorizationError: If the admin role was requested.
        ValidationError: If the passwords do not match.
        ConflictError: If the email is already registered.
    """
    if role == UserRole.ADMIN.value:
        logger.warning("Signup attempted with admin role for %s", normalize_email(email))
        raise AuthorizationError("You are not allowed to add admin roles!")
    if password != password_confirm:
        raise ValidationError("Passwords do not match!")

    return await users.create_one(db, {
        "name": name.strip(),
        "email": normalize_email(email),
        "photo": photo,
        "role": UserRole.USER,
        "password_hash": hash_password(password),
    })


async def find_by_email(db: AsyncSession, email: str) -> User | None:
    result = await db.execute(
        select(User).where(active_users(), User.email == normalize_email(email))
    )
    return result.scalar_one_or_none()


async def find_by_id(db: AsyncSession, user_id: uuid.UUID) -> User | None:
    result = await db.execute(
        select(User).where(active_users(), User.id == user_id)
    )
    return result.scalar_one_or_none()


async def set_password(db: AsyncSession, user: User, new_password: str) -> None:
    """
    Store a new password and invalidate every token issued before now.

    Also clears any pending reset token: whichever way the password
    changed, an outstanding reset link must stop working.
    """
    user.password_hash = hash_password(new_password)
    user.password_changed_at = datetime.now(timezone.utc) - timedelta(
        seconds=settings.PASSWORD_CHANGED_SKEW_SECONDS
    )
    user.password_reset_token_hash = None
    user.password_reset_expires_at = None
    await db.flush()


# ---------------------------------------------------------------------------
# Self-service profile
# ---------------------------------------------------------------------------


async def update_me(db: AsyncSession, user: User, changes: dict) -> User:
    """
    Update the current user's name and/or email.

    Raises:
        ValidationError: If password fields are present (use /updatePassword).
        ConflictError: If the new email is already registered.
    """
    if changes.get("password") or changes.get("password_confirm"):
        raise ValidationError(
            "This route is not for password updates. Please use /updatePassword"
        )

    allowed = {}
    if changes.get("name") is not None:
        allowed["name"] = changes["name"].strip()
    if changes.get("email") is not None:
        allowed["email"] = normalize_email(changes["email"])
    return await users.update_one(db, user.id, allowed)


async def deactivate(db: AsyncSession, user: User) -> None:
    """Soft delete: the account disappears from lookups and cannot log in."""
    user.active = False
    await db.flush()
    logger.info("User %s deactivated their account", user.id)


# ---------------------------------------------------------------------------
# Admin management
# ---------------------------------------------------------------------------


async def list_users(db: AsyncSession, spec: QuerySpec) -> list[User]:
    return await users.get_all(db, spec)


async def get_user(db: AsyncSession, user_id: uuid.UUID) -> User:
    return await users.get_one(db, user_id)


async def admin_update_user(db: AsyncSession, user_id: uuid.UUID, changes: dict) -> User:
    changes = {field: value for field, value in changes.items() if value is not None}
    if "email" in changes:
        changes["email"] = normalize_email(changes["email"])
    return await users.update_one(db, user_id, changes)


async def delete_user(db: AsyncSession, user_id: uuid.UUID) -> None:
    """
    Hard-delete a user and their reviews.

    The ratings of every tour the user had reviewed are recomputed, since
    those reviews no longer count.
    """
    user = await users.get_one(db, user_id)

    result = await db.execute(select(Review.tour_id).where(Review.user_id == user.id))
    reviewed_tour_ids = set(result.scalars().all())
    await db.execute(delete(Review).where(Review.user_id == user.id))

    await users.delete_one(db, user.id)
    for tour_id in reviewed_tour_ids:
        await rating_service.recalculate_tour_ratings(db, tour_id)
    logger.info("User %s deleted by admin", user_id)
