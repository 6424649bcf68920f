from __future__ import annotations

from datetime import datetime, timedelta, timezone

import jwt
from werkzeug.security import check_password_hash, generate_password_hash

from config import settings
from services.errors import AuthenticationError


def hash_password(password: str) -> str:
    return generate_password_hash(password)


def verify_password(password: str, stored: str) -> bool:
    if not stored:
        return False
    return check_password_hash(stored, password)


def create_access_token(user_id: str, email: str) -> tuple[str, int]:
    """Return (token, lifetime in seconds). The token carries identity only, never a role."""
    lifetime = settings.access_token_expire_minutes * 60
    now = datetime.now(timezone.utc)
    payload = {
        "sub": user_id,
        "email": email,
        "iat": now,
        "exp": now + timedelta(seconds=lifetime),
    }
    token = jwt.encode(payload, settings.jwt_secret, algorithm=settings.jwt_algorithm)
    return token, lifetime


def decode_access_token(token: str) -> str:
    """Return the user id in the token or raise AuthenticationError."""
    try:
        payload = jwt.decode(token, settings.jwt_secret, algorithms=[settings.jwt_algorithm])
    except jwt.ExpiredSignatureError:
        raise AuthenticationError("Token expired") from None
    except jwt.InvalidTokenError:
        raise AuthenticationError("Invalid user") from None
    user_id = payload.get("sub")
    if not user_id:
        raise AuthenticationError("Invalid user")
    return user_id
