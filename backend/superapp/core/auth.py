"""
Authentication for the Financial SuperApp API.

Sign-in happens against Supabase Auth; this service only verifies the
access token the frontend forwards as a bearer credential. Supabase signs
access tokens with the project JWT secret (HS256) and audience
"authenticated"; the user id is the token subject.
"""

from datetime import datetime, timedelta, timezone
from typing import Optional
import secrets

from fastapi import Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from jose import jwt, JWTError, ExpiredSignatureError
from pydantic import BaseModel

from superapp.core.config import settings
from superapp.core.errors import AuthError


# Security scheme
security = HTTPBearer(auto_error=False)

ALGORITHM = "HS256"


class CurrentUser(BaseModel):
    """Identity extracted from a verified access token."""
    id: str
    email: Optional[str] = None
    role: Optional[str] = None


def create_access_token(
    user_id: str,
    email: Optional[str] = None,
    expires_delta: Optional[timedelta] = None,
) -> str:
    """
    Create an access token shaped like the ones Supabase Auth issues.
    Used by local tooling and tests; production tokens come from Supabase.
    """
    if expires_delta is None:
        expires_delta = timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)

    now = datetime.now(timezone.utc)
    payload = {
        "sub": user_id,
        "aud": settings.SUPABASE_JWT_AUDIENCE,
        "role": "authenticated",
        "exp": now + expires_delta,
        "iat": now,
        "jti": secrets.token_hex(16),
    }
    if email:
        payload["email"] = email

    return jwt.encode(payload, settings.SUPABASE_JWT_SECRET, algorithm=ALGORITHM)


def decode_token(token: str) -> CurrentUser:
    """Decode and validate an access token."""
    try:
        payload = jwt.decode(
            token,
            settings.SUPABASE_JWT_SECRET,
            algorithms=[ALGORITHM],
            audience=settings.SUPABASE_JWT_AUDIENCE,
        )
    except ExpiredSignatureError:
        raise AuthError("Token has expired")
    except JWTError:
        raise AuthError("Invalid token")

    user_id = payload.get("sub")
    if not user_id:
        raise AuthError("Invalid token")

    return CurrentUser(id=user_id, email=payload.get("email"), role=payload.get("role"))


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
) -> CurrentUser:
    """
    Dependency to get the current authenticated user.
    Raises AuthError (401) when the bearer token is missing or invalid.
    """
    if credentials is None:
        raise AuthError("Missing access token")

    return decode_token(credentials.credentials)


async def optional_auth(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
) -> Optional[CurrentUser]:
    """
    Optional authentication - returns None if no bearer token was sent.
    A token that is sent must still be valid.
    """
    if credentials is None:
        return None

    return decode_token(credentials.credentials)


def ensure_user_access(user_id: str, current_user: Optional[CurrentUser]) -> None:
    """Reject requests whose token subject does not match the path user id."""
    if current_user is not None and current_user.id != user_id:
        raise AuthError("Token does not belong to this user")
