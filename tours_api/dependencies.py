"""
FastAPI dependencies for authentication and authorization.

Dependencies are reusable functions that FastAPI injects into route handlers.
They form a dependency chain:

  get_current_user (Bearer JWT -> active User)
      └── restrict_to(*roles) (User -> User, 403 unless role allowed)

get_current_user runs the full token check (signature, expiry, principal
still exists and is active, password not changed since issuance). The
logic lives in auth_service.authenticate_token; this module only extracts
the header.

restrict_to() is a separate, composable gate: a route that needs a role
depends on restrict_to(...), which itself depends on get_current_user.
FastAPI caches dependencies per request, so the token is verified once
even when several gates are chained.

    @router.post("/tours")
    async def create_tour(
        user: User = Depends(restrict_to(UserRole.ADMIN, UserRole.LEAD_GUIDE)),
        ...
"""

from fastapi import Depends
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy.ext.asyncio import AsyncSession

from tours_api.database import get_db
from tours_api.models.user import User, UserRole
from tours_api.notifications import EmailSender, build_email_sender
from tours_api.services import auth_service


# OAuth2PasswordBearer reads the "Authorization: Bearer <token>" header.
# auto_error=False hands a missing token to the auth service, so "not
# logged in" goes through the same error envelope as every other 401.
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/v1/users/login", auto_error=False)


async def get_current_user(
    token: str | None = Depends(oauth2_scheme),
    db: AsyncSession = Depends(get_db),
) -> User:
    """
    Return the active User the bearer token was issued for.

    Raises:
        AuthenticationError (401): Missing, invalid, expired or stale token,
                                   or the user no longer exists.
    """
    return await auth_service.authenticate_token(db, token)


def restrict_to(*roles: UserRole):
    """
    Build a dependency that only lets the given roles through.

    Raises:
        AuthorizationError (403): If the authenticated user's role is not
                                  one of `roles`.
    """

    async def role_gate(user: User = Depends(get_current_user)) -> User:
        return auth_service.ensure_role(user, roles)

    return role_gate


def get_email_sender() -> EmailSender:
    """Email transport for notifications. Overridden in tests."""
    return build_email_sender()
