"""
Authentication service — login, token verification and password flows.

This module contains the core auth logic, separated from HTTP concerns.
The router calls these functions and translates the results into HTTP
responses (including the refresh-token cookie).

Login flow:
  1. Require both email and password
  2. Look up the active user by email
  3. Verify the password against the stored Argon2 hash
  4. Return an access token (the router also sets the refresh cookie)
  Wrong password and unknown email raise the identical error, so the
  response never reveals whether an email is registered.

Token verification (authenticate_token), in order:
  1. No token                          -> 401 (reason "missing")
  2. Bad signature / expired           -> 401 (reason "invalid" / "expired")
  3. User no longer exists or inactive -> 401 (reason "no_such_user")
  4. Password changed after issuance   -> 401 (reason "stale")
  5. Otherwise the user is the request's principal
  The reason is logged; the client only ever sees a generic message.

Password reset flow:
  forgot_password() stores the SHA-256 digest of a random token with a
  10-minute expiry and emails the plaintext link. Requesting again
  overwrites the digest, so only the newest link works. If the email
  cannot be sent, the stored token is cleared and a 500 is raised.
  reset_password() hashes the presented token and looks for a user whose
  digest matches and whose expiry is still in the future.
"""

import logging
import uuid
from datetime import datetime, timedelta, timezone

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from tours_api.config import settings
from tours_api.exceptions import (
    AuthenticationError,
    AuthorizationError,
    DependencyError,
    InvalidCredentialsError,
    NotFoundError,
    ValidationError,
)
from tours_api.models.user import User, UserRole, active_users
from tours_api.notifications import EmailDeliveryError, EmailSender
from tours_api.security import (
    ACCESS,
    REFRESH,
    ExpiredTokenError,
    TokenError,
    create_access_token,
    decode_token,
    generate_reset_token,
    hash_reset_token,
    verify_password,
)
from tours_api.services import user_service

logger = logging.getLogger(__name__)

RESET_PATH = "/api/v1/users/resetPassword"


def _timestamp(value: datetime) -> float:
    # SQLite hands back naive datetimes; every stored datetime is UTC
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.timestamp()


def password_changed_after(user: User, issued_at: float) -> bool:
    """
    True if the user's password changed at or after a token's issue time.

    A token issued in the same instant as the change counts as stale.
    """
    if user.password_changed_at is None:
        return False
    return issued_at <= _timestamp(user.password_changed_at)


# ---------------------------------------------------------------------------
# Signup / login
# ---------------------------------------------------------------------------


async def signup(
    db: AsyncSession,
    name: str,
    email: str,
    password: str,
    password_confirm: str,
    photo: str | None = None,
    role: str | None = None,
) -> tuple[User, str]:
    """
    Register a new user and log them in.

    Returns:
        Tuple of (User instance, access token).
    """
    user = await user_service.create_user(
        db,
        name=name,
        email=email,
        password=password,
        password_confirm=password_confirm,
        photo=photo,
        role=role,
    )
    logger.info("New user signed up: %s", user.id)
    return user, create_access_token(user)


async def login(
    db: AsyncSession,
    email: str | None,
    password: str | None,
) -> tuple[User, str]:
    """
    Authenticate a user and return an access token.

    Raises:
        ValidationError: If email or password is missing.
        InvalidCredentialsError: If the email is unknown, the account is
                                 inactive, or the password is wrong.
    """
    if not email or not password:
        raise ValidationError("Please provide email and password!")

    user = await user_service.find_by_email(db, email)

    # Same error for unknown email, inactive user and wrong password
    if user is None or not verify_password(password, user.password_hash):
        raise InvalidCredentialsError()

    return user, create_access_token(user)


# ---------------------------------------------------------------------------
# Token verification (the auth guard)
# ---------------------------------------------------------------------------


async def authenticate_token(db: AsyncSession, token: str | None) -> User:
    """
    Resolve an access token to the active user it was issued for.

    Raises:
        AuthenticationError: With reason "missing", "invalid", "expired",
                             "no_such_user" or "stale".
    """
    if not token:
        raise AuthenticationError(
            "You are not logged in! Please log in to get access.",
            reason="missing",
        )

    try:
        claims = decode_token(token, ACCESS)
    except ExpiredTokenError:
        raise AuthenticationError("Invalid token. Please log in again!", reason="expired")
    except TokenError:
        raise AuthenticationError("Invalid token. Please log in again!", reason="invalid")

    try:
        user_id = uuid.UUID(claims.get("id", ""))
    except (ValueError, AttributeError, TypeError):
        raise AuthenticationError("Invalid token. Please log in again!", reason="invalid")

    user = await user_service.find_by_id(db, user_id)
    if user is None:
        raise AuthenticationError(
            "The user belonging to this token no longer exists.",
            reason="no_such_user",
        )

    if password_changed_after(user, claims["iat"]):
        raise AuthenticationError(
            "User recently changed password! Please log in again.",
            reason="stale",
        )

    return user


def ensure_role(user: User, allowed_roles: tuple[UserRole, ...]) -> User:
    """
    Pure role check against an already-authenticated user.

    Raises:
        AuthorizationError: If the user's role is not in allowed_roles.
    """
    if user.role not in allowed_roles:
        raise AuthorizationError()
    return user


async def refresh_access_token(db: AsyncSession, refresh_token: str | None) -> User:
    """
    Validate a refresh token and return the user to issue a new access token for.

    Raises:
        AuthenticationError: If the cookie is missing, the token is invalid
                             or expired, the user is gone, or the password
                             changed after the refresh token was issued.
    """
    if not refresh_token:
        raise AuthenticationError("Unauthorized!", reason="missing")

    try:
        claims = decode_token(refresh_token, REFRESH)
    except ExpiredTokenError:
        raise AuthenticationError("Unauthorized! Please log in!", reason="expired")
    except TokenError:
        raise AuthenticationError("Unauthorized! Please log in!", reason="invalid")

    user = await user_service.find_by_email(db, claims.get("email") or "")
    if user is None:
        raise AuthenticationError("Unauthorized! Please log in!", reason="no_such_user")
    if password_changed_after(user, claims["iat"]):
        raise AuthenticationError("Unauthorized! Please log in!", reason="stale")
    return user


# ---------------------------------------------------------------------------
# Password reset / change
# ---------------------------------------------------------------------------


async def forgot_password(
    db: AsyncSession,
    email: str,
    origin: str,
    sender: EmailSender,
) -> None:
    """
    Start a password reset by emailing a one-time link.

    Args:
        db: Database session.
        email: The account's email.
        origin: Scheme and host the link should point at
                (e.g. "https://tours.example.com").
        sender: Email transport.

    Raises:
        NotFoundError: If no active user has this email.
        DependencyError: If the email could not be sent. The stored reset
                         token has been cleared by then.
    """
    user = await user_service.find_by_email(db, email)
    if user is None:
        raise NotFoundError(detail="There is no user with that email address")

    token, token_hash = generate_reset_token()
    user.password_reset_token_hash = token_hash
    user.password_reset_expires_at = datetime.now(timezone.utc) + timedelta(
        minutes=settings.PASSWORD_RESET_EXPIRE_MINUTES
    )
    await db.flush()

    reset_url = f"{origin.rstrip('/')}{RESET_PATH}/{token}"
    message = (
        "Forgot your password? Submit a PATCH request with your new password "
        f"and password_confirm to: {reset_url}\n"
        "If you didn't forget your password, please ignore this email!"
    )

    try:
        await sender.send(
            to_email=user.email,
            subject=(
                "Your password reset token "
                f"(valid for {settings.PASSWORD_RESET_EXPIRE_MINUTES} minutes)"
            ),
            message=message,
        )
    except EmailDeliveryError as exc:
        user.password_reset_token_hash = None
        user.password_reset_expires_at = None
        await db.flush()
        logger.error("Password reset email to user %s failed: %s", user.id, exc)
        raise DependencyError(
            "There was an error sending the email. Try again later!"
        ) from exc

    logger.info("Password reset requested for user %s", user.id)


async def reset_password(
    db: AsyncSession,
    token: str,
    password: str,
    password_confirm: str,
) -> tuple[User, str]:
    """
    Complete a password reset with the token from the email.

    Raises:
        ValidationError: If the token is unknown or expired, the passwords
                         do not match, or the new password equals the old.
    """
    result = await db.execute(
        select(User).where(
            active_users(),
            User.password_reset_token_hash == hash_reset_token(token),
            User.password_reset_expires_at > datetime.now(timezone.utc),
        )
    )
    user = result.scalar_one_or_none()
    if user is None:
        raise ValidationError("Token is invalid or has expired!")

    if password != password_confirm:
        raise ValidationError("Passwords do not match!")
    if verify_password(password, user.password_hash):
        raise ValidationError("New password cannot be same as old password!")

    await user_service.set_password(db, user, password)
    logger.info("Password reset completed for user %s", user.id)
    return user, create_access_token(user)


async def update_password(
    db: AsyncSession,
    user: User,
    current_password: str,
    new_password: str,
    new_password_confirm: str,
) -> tuple[User, str]:
    """
    Change the logged-in user's password.

    Every token issued before this call stops working; the returned token
    is issued afterwards and stays valid.

    Raises:
        AuthenticationError: If current_password is wrong.
        ValidationError: If the new password equals the current one or the
                         confirmation does not match.
    """
    if not verify_password(current_password, user.password_hash):
        raise AuthenticationError("Your current password is wrong.", reason="bad_credentials")
    if verify_password(new_password, user.password_hash):
        raise ValidationError("New password cannot be same as old password!")
    if new_password != new_password_confirm:
        raise ValidationError("New passwords do not match!")

    await user_service.set_password(db, user, new_password)
    return user, create_access_token(user)
