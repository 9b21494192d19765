"""
Users router — authentication, self-service profile and admin user management.

Public endpoints:
  POST  /users/signup                 — Register and get tokens
  POST  /users/login                  — Authenticate and get tokens
  POST  /users/logout                 — Clear the refresh cookie
  GET   /users/refreshToken           — New access token from the refresh cookie
  POST  /users/forgotPassword         — Email a password reset link
  PATCH /users/resetPassword/{token}  — Set a new password with the emailed token

Authenticated endpoints:
  PATCH  /users/updatePassword        — Change password (old tokens stop working)
  GET    /users/me                    — Current user's profile
  PATCH  /users/updateMe              — Change name/email
  DELETE /users/deleteMe              — Deactivate own account (soft delete)

Admin endpoints:
  GET    /users                       — List users (filter/sort/paginate)
  GET    /users/{user_id}             — Get any user
  PATCH  /users/{user_id}             — Update any user (not passwords)
  DELETE /users/{user_id}             — Hard-delete a user

Tokens:
  The access token is returned in the response body. The refresh token is
  only ever set as an HTTP-only cookie (SameSite=None, Secure outside
  development) and never appears in a body.

Security audit notes:
  - Plaintext passwords exist only in memory during request processing;
    they are hashed before any database operation and never logged.
  - The plaintext reset token only leaves the server inside the email.
"""

import uuid
from typing import Any

from fastapi import APIRouter, Depends, Request, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from tours_api.config import settings
from tours_api.database import get_db
from tours_api.dependencies import get_current_user, get_email_sender, restrict_to
from tours_api.models.user import User, UserRole
from tours_api.notifications import EmailSender
from tours_api.query import parse_query_params
from tours_api.schemas.auth import (
    AuthResponse,
    ForgotPasswordRequest,
    LoginRequest,
    ResetPasswordRequest,
    SignupRequest,
    TokenResponse,
    UpdatePasswordRequest,
)
from tours_api.schemas.common import DataEnvelope, ListEnvelope, MessageResponse
from tours_api.schemas.user import (
    AdminUserUpdateRequest,
    UpdateMeRequest,
    UserData,
    UserResponse,
)
from tours_api.security import create_access_token, create_refresh_token
from tours_api.services import auth_service, user_service

router = APIRouter()


def _cookie_options() -> dict:
    return {
        "httponly": True,
        "samesite": "none",
        "secure": settings.is_production,
    }


def _set_refresh_cookie(response: Response, user: User) -> None:
    response.set_cookie(
        settings.REFRESH_COOKIE_NAME,
        create_refresh_token(user.email),
        max_age=settings.REFRESH_TOKEN_EXPIRE_DAYS * 24 * 60 * 60,
        **_cookie_options(),
    )


def _auth_response(user: User, token: str) -> AuthResponse:
    return AuthResponse(
        token=token,
        data=UserData(user=UserResponse.model_validate(user)),
    )


# ---------------------------------------------------------------------------
# Public authentication endpoints
# ---------------------------------------------------------------------------

@router.post(
    "/signup",
    response_model=AuthResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Register a new user",
)
async def signup(
    request: SignupRequest,
    response: Response,
    db: AsyncSession = Depends(get_db),
):
    """
    Register a new user with role "user".

    - **password**: Minimum 8 characters, must equal **password_confirm**
    - **role**: Requesting "admin" is rejected with 403; any other value
      is ignored
    """
    user, token = await auth_service.signup(
        db=db,
        name=request.name,
        email=request.email,
        password=request.password,
        password_confirm=request.password_confirm,
        photo=request.photo,
        role=request.role,
    )
    _set_refresh_cookie(response, user)
    return _auth_response(user, token)


@router.post(
    "/login",
    response_model=AuthResponse,
    summary="Authenticate and get tokens",
)
async def login(
    request: LoginRequest,
    response: Response,
    db: AsyncSession = Depends(get_db),
):
    """
    Authenticate with email and password.

    Returns an access token to send as `Authorization: Bearer <token>`
    and sets the refresh-token cookie.
    """
    user, token = await auth_service.login(
        db=db,
        email=request.email,
        password=request.password,
    )
    _set_refresh_cookie(response, user)
    return _auth_response(user, token)


@router.post(
    "/logout",
    response_model=MessageResponse,
    summary="Log out (clear the refresh cookie)",
    responses={204: {"description": "Already logged out"}},
)
async def logout(request: Request):
    """A request without a refresh cookie is already logged out: 204."""
    if not request.cookies.get(settings.REFRESH_COOKIE_NAME):
        return Response(status_code=status.HTTP_204_NO_CONTENT)

    response = Response(
        content=MessageResponse(message="Logged out!").model_dump_json(),
        media_type="application/json",
    )
    response.delete_cookie(settings.REFRESH_COOKIE_NAME, **_cookie_options())
    return response


@router.get(
    "/refreshToken",
    response_model=TokenResponse,
    summary="Get a new access token from the refresh cookie",
)
async def refresh_token(
    request: Request,
    db: AsyncSession = Depends(get_db),
):
    user = await auth_service.refresh_access_token(
        db, request.cookies.get(settings.REFRESH_COOKIE_NAME)
    )
    return TokenResponse(token=create_access_token(user))


@router.post(
    "/forgotPassword",
    response_model=MessageResponse,
    summary="Email a password reset link",
)
async def forgot_password(
    body: ForgotPasswordRequest,
    request: Request,
    db: AsyncSession = Depends(get_db),
    sender: EmailSender = Depends(get_email_sender),
):
    """
    Send a reset link valid for 10 minutes.

    If the email cannot be sent, the reset token is discarded and the
    request fails with 500.
    """
    await auth_service.forgot_password(
        db=db,
        email=body.email,
        origin=str(request.base_url),
        sender=sender,
    )
    return MessageResponse(message="Token sent to email!")


@router.patch(
    "/resetPassword/{token}",
    response_model=AuthResponse,
    summary="Reset the password with an emailed token",
)
async def reset_password(
    token: str,
    body: ResetPasswordRequest,
    response: Response,
    db: AsyncSession = Depends(get_db),
):
    user, access_token = await auth_service.reset_password(
        db=db,
        token=token,
        password=body.password,
        password_confirm=body.password_confirm,
    )
    _set_refresh_cookie(response, user)
    return _auth_response(user, access_token)


# ---------------------------------------------------------------------------
# Authenticated self-service endpoints
# ---------------------------------------------------------------------------

@router.patch(
    "/updatePassword",
    response_model=AuthResponse,
    summary="Change your password",
)
async def update_password(
    body: UpdatePasswordRequest,
    response: Response,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """
    Change the password. Every previously issued token is invalidated; the
    token in this response (and the new refresh cookie) are valid.
    """
    user, token = await auth_service.update_password(
        db=db,
        user=user,
        current_password=body.current_password,
        new_password=body.new_password,
        new_password_confirm=body.new_password_confirm,
    )
    _set_refresh_cookie(response, user)
    return _auth_response(user, token)


@router.get(
    "/me",
    response_model=DataEnvelope[UserResponse],
    summary="Get your profile",
)
async def get_me(user: User = Depends(get_current_user)):
    return DataEnvelope(data=UserResponse.model_validate(user))


@router.patch(
    "/updateMe",
    response_model=DataEnvelope[UserData],
    summary="Update your name or email",
)
async def update_me(
    body: UpdateMeRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    updated = await user_service.update_me(db, user, body.model_dump(exclude_unset=True))
    return DataEnvelope(data=UserData(user=UserResponse.model_validate(updated)))


@router.delete(
    "/deleteMe",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Deactivate your account",
)
async def delete_me(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    await user_service.deactivate(db, user)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# ---------------------------------------------------------------------------
# Admin endpoints
# ---------------------------------------------------------------------------

@router.get(
    "",
    response_model=ListEnvelope[dict[str, Any]],
    summary="[Admin] List users",
)
async def admin_list_users(
    request: Request,
    admin: User = Depends(restrict_to(UserRole.ADMIN)),
    db: AsyncSession = Depends(get_db),
):
    """Supports the same filter/sort/fields/page/limit parameters as /tours."""
    spec = parse_query_params(
        request.query_params, settings.DEFAULT_PAGE_SIZE, settings.MAX_PAGE_SIZE
    )
    users = await user_service.list_users(db, spec)
    data = [
        spec.project(UserResponse.model_validate(u).model_dump(mode="json"))
        for u in users
    ]
    return ListEnvelope(results=len(data), data=data)


@router.get(
    "/{user_id}",
    response_model=DataEnvelope[UserResponse],
    summary="[Admin] Get any user",
)
async def admin_get_user(
    user_id: uuid.UUID,
    admin: User = Depends(restrict_to(UserRole.ADMIN)),
    db: AsyncSession = Depends(get_db),
):
    user = await user_service.get_user(db, user_id)
    return DataEnvelope(data=UserResponse.model_validate(user))


@router.patch(
    "/{user_id}",
    response_model=DataEnvelope[UserResponse],
    summary="[Admin] Update any user",
)
async def admin_update_user(
    user_id: uuid.UUID,
    body: AdminUserUpdateRequest,
    admin: User = Depends(restrict_to(UserRole.ADMIN)),
    db: AsyncSession = Depends(get_db),
):
    user = await user_service.admin_update_user(
        db, user_id, body.model_dump(exclude_unset=True)
    )
    return DataEnvelope(data=UserResponse.model_validate(user))


@router.delete(
    "/{user_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="[Admin] Delete a user",
)
async def admin_delete_user(
    user_id: uuid.UUID,
    admin: User = Depends(restrict_to(UserRole.ADMIN)),
    db: AsyncSession = Depends(get_db),
):
    await user_service.delete_user(db, user_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
