import uuid
from datetime import datetime, timedelta, timezone

import bcrypt
from jose import jwt, JWTError

from projecthub.config import settings
from projecthub.errors import AuthenticationError

ACCESS = "access"
REFRESH = "refresh"


def get_password_hash(password: str) -> str:
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    try:
        return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))
    except ValueError:
        # Malformed stored hash
        return False


def _secret_for(token_type: str) -> str:
    if token_type == ACCESS:
        return settings.JWT_ACCESS_SECRET
    return settings.JWT_REFRESH_SECRET


def _create_token(user_id: str, email: str, token_type: str, expires_delta: timedelta) -> str:
    now = datetime.now(timezone.utc)
    to_encode = {
        "sub": user_id,
        "email": email,
        "type": token_type,
        "iat": now,
        "nbf": now,
        "exp": now + expires_delta,
        "jti": str(uuid.uuid4()),
    }
    return jwt.encode(to_encode, _secret_for(token_type), algorithm=settings.ALGORITHM)


def create_access_token(user_id: str, email: str, expires_delta: timedelta | None = None) -> str:
    delta = expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    return _create_token(user_id, email, ACCESS, delta)


def create_refresh_token(user_id: str, email: str, expires_delta: timedelta | None = None) -> str:
    delta = expires_delta or timedelta(days=settings.REFRESH_TOKEN_EXPIRE_DAYS)
    return _create_token(user_id, email, REFRESH, delta)


def create_token_pair(user_id: str, email: str) -> dict:
    return {
        "access_token": create_access_token(user_id, email),
        "refresh_token": create_refresh_token(user_id, email),
        "token_type": "bearer",
    }


def decode_token(token: str, token_type: str) -> dict:
    """Validate a token of the given class and return its claims.

    Any parse, signature, expiry or class mismatch raises AuthenticationError.
    """
    try:
        payload = jwt.decode(token, _secret_for(token_type), algorithms=[settings.ALGORITHM])
    except JWTError:
        raise AuthenticationError("Invalid or expired token")

    if payload.get("type") != token_type or not payload.get("sub"):
        raise AuthenticationError("Invalid or expired token")
    return payload
