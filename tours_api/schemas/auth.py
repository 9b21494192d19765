"""
Pydantic schemas for authentication endpoints.

Pydantic validates incoming data automatically — if a required field is
missing or the wrong type, the request is rejected with a 400 before our
code even runs.

Password/confirmation equality is checked by the services, not here, so
the rule lives next to the hashing it guards.
"""

from pydantic import BaseModel, EmailStr, Field

from tours_api.schemas.user import UserData


class SignupRequest(BaseModel):
    """Request body for POST /users/signup."""
    name: str = Field(min_length=1, max_length=100)
    email: EmailStr
    password: str = Field(min_length=8)
    password_confirm: str
    photo: str | None = None
    # Accepted so a privileged role can be rejected explicitly; the stored
    # role is always "user"
    role: str | None = None


class LoginRequest(BaseModel):
    """
    Request body for POST /users/login.

    Both fields are optional at the schema level so that a missing value
    yields the "Please provide email and password!" message.
    """
    email: str | None = None
    password: str | None = None


class ForgotPasswordRequest(BaseModel):
    """Request body for POST /users/forgotPassword."""
    email: EmailStr


class ResetPasswordRequest(BaseModel):
    """Request body for PATCH /users/resetPassword/{token}."""
    password: str = Field(min_length=8)
    password_confirm: str


class UpdatePasswordRequest(BaseModel):
    """Request body for PATCH /users/updatePassword."""
    current_password: str
    new_password: str = Field(min_length=8)
    new_password_confirm: str


class AuthResponse(BaseModel):
    """Response for signup/login/password changes: access token + user."""
    status: str = "success"
    token: str
    data: UserData


class TokenResponse(BaseModel):
    """Response for GET /users/refreshToken."""
    status: str = "success"
    token: str
