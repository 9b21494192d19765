"""
Security utilities: password hashing, JWT tokens, and reset tokens.

This module centralizes all cryptographic operations so they're easy to
audit and update. Three concerns are handled here:

1. PASSWORD HASHING (Argon2)
   - Passwords are never stored in plaintext
   - Argon2id is memory-hard and time-hard, so offline brute force against
     a leaked hash is expensive on both CPUs and GPUs
   - We use passlib's CryptContext for safe, high-level Argon2 operations

2. JWT TOKENS (JSON Web Tokens)
   - Access tokens: short-lived (minutes), signed with SECRET_KEY, carry
     the principal's id, email, name and role
   - Refresh tokens: long-lived (days), signed with REFRESH_SECRET_KEY,
     carry only the email; delivered in an HTTP-only cookie
   - Both carry a "type" claim so one kind can never be replayed as the
     other, and an "iat" claim with sub-second precision that the auth
     guard compares against User.password_changed_at
   - The server is stateless: no session storage, no revocation list

3. PASSWORD RESET TOKENS
   - 32 random bytes, hex-encoded, sent to the user by email
   - Only the SHA-256 digest is stored; the lookup hashes the presented
     token the same way

Token verification distinguishes "expired" from "invalid" so the guard can
log which one happened. Both are reported to the client as the same 401.
"""

import hashlib
import secrets
from datetime import datetime, timedelta, timezone

from jose import ExpiredSignatureError, JWTError, jwt
from passlib.context import CryptContext

from tours_api.config import settings

ACCESS = "access"
REFRESH = "refresh"


class TokenError(Exception):
    """Base exception for token verification failures."""


class ExpiredTokenError(TokenError):
    """Raised when a token's signature is valid but it has expired."""


class InvalidTokenError(TokenError):
    """Raised when a token is malformed, tampered with, or of the wrong kind."""


# ---------------------------------------------------------------------------
# 1. Password Hashing (Argon2)
# ---------------------------------------------------------------------------

# "deprecated='auto'" lets us move to a future scheme later: old hashes are
# still verified with argon2, new passwords use the new scheme.
pwd_context = CryptContext(schemes=["argon2"], deprecated="auto")


def hash_password(plain_password: str) -> str:
    """
    Hash a plaintext password using Argon2id.

    Returns:
        An Argon2 hash string (e.g., "$argon2id$v=19$m=65536,t=3,p=4$...").
    """
    return pwd_context.hash(plain_password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify a plaintext password against a stored Argon2 hash."""
    return pwd_context.verify(plain_password, hashed_password)


# ---------------------------------------------------------------------------
# 2. JWT Tokens
# ---------------------------------------------------------------------------


def _secret_for(kind: str) -> str:
    if kind == ACCESS:
        return settings.SECRET_KEY
    if kind == REFRESH:
        return settings.REFRESH_SECRET_KEY
    raise ValueError(f"Unknown token kind: {kind}")


def _encode(claims: dict, kind: str, expires_delta: timedelta) -> str:
    now = datetime.now(timezone.utc)
    to_encode = claims.copy()
    to_encode.update({
        "type": kind,
        # Float seconds: a token issued a few milliseconds before a password
        # change must still compare as older than the change
        "iat": now.timestamp(),
        "exp": now + expires_delta,
    })
    return jwt.encode(to_encode, _secret_for(kind), algorithm=settings.ALGORITHM)


def create_access_token(user, expires_delta: timedelta | None = None) -> str:
    """
    Create a signed access token for a user.

    Args:
        user: The User to issue the token for.
        expires_delta: Optional custom lifetime. Defaults to
                       ACCESS_TOKEN_EXPIRE_MINUTES from settings.

    Returns:
        An encoded JWT string.
    """
    claims = {
        "id": str(user.id),
        "email": user.email,
        "username": user.name,
        "role": user.role.value,
    }
    return _encode(
        claims,
        ACCESS,
        expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES),
    )


def create_refresh_token(email: str, expires_delta: timedelta | None = None) -> str:
    """Create a signed refresh token carrying only the user's email."""
    return _encode(
        {"email": email},
        REFRESH,
        expires_delta or timedelta(days=settings.REFRESH_TOKEN_EXPIRE_DAYS),
    )


def decode_token(token: str, kind: str = ACCESS) -> dict:
    """
    Decode and verify a JWT of the given kind.

    Raises:
        ExpiredTokenError: If the signature is valid but the token expired.
        InvalidTokenError: If the token is malformed, tampered with, signed
                           with the wrong secret, or not of the given kind.

    Returns:
        The decoded claims dictionary.
    """
    try:
        claims = jwt.decode(token, _secret_for(kind), algorithms=[settings.ALGORITHM])
    except ExpiredSignatureError as exc:
        raise ExpiredTokenError("Token has expired") from exc
    except JWTError as exc:
        raise InvalidTokenError(str(exc)) from exc

    if claims.get("type") != kind:
        raise InvalidTokenError(f"Expected a {kind} token")
    if not isinstance(claims.get("iat"), (int, float)):
        raise InvalidTokenError("Token has no issue time")
    return claims


# ---------------------------------------------------------------------------
# 3. Password Reset Tokens
# ---------------------------------------------------------------------------


def generate_reset_token() -> tuple[str, str]:
    """
    Generate a password reset token.

    Returns:
        Tuple of (plaintext token for the email, SHA-256 digest to store).
    """
    token = secrets.token_hex(32)
    return token, hash_reset_token(token)


def hash_reset_token(token: str) -> str:
    """One-way digest used to store and look up reset tokens."""
    return hashlib.sha256(token.encode()).hexdigest()
