"""
Credentials and session tokens.

  • Passwords are stored as werkzeug salted hashes and verified on login.
  • Session tokens are HS256 JWTs: sub/user_id, email, iat, exp (7 days).
  • `require_user` is the FastAPI dependency guarding protected routes. It
    accepts the raw token in `X-Authorization` (what the mobile client
    sends) or `Authorization: Bearer <token>`.
"""
import datetime
import logging
import secrets
from typing import Optional

import jwt  # PyJWT
from fastapi import Depends, Header
from sqlalchemy.ext.asyncio import AsyncSession
from werkzeug.security import check_password_hash, generate_password_hash

from chitter import store
from chitter.config import settings
from chitter.database import get_db
from chitter.errors import Unauthorized
from chitter.models import User

logger = logging.getLogger(__name__)

_ephemeral_secret: Optional[str] = None


def signing_key() -> str:
    """Configured JWT secret, or a per-process random key in development."""
    global _ephemeral_secret
    if settings.jwt_secret:
        return settings.jwt_secret
    if settings.environment != "development":
        raise RuntimeError("JWT_SECRET must be set outside development")
    if _ephemeral_secret is None:
        _ephemeral_secret = secrets.token_urlsafe(32)
        logger.warning(
            "JWT_SECRET not set — using a random key; tokens will not survive a restart"
        )
    return _ephemeral_secret


def hash_password(password: str) -> str:
    return generate_password_hash(password)


def verify_password(password_hash: str, password: str) -> bool:
    return check_password_hash(password_hash, password)


def create_token(user_id: str, email: str) -> str:
    now = datetime.datetime.now(datetime.timezone.utc)
    payload = {
        "sub": user_id,
        "user_id": user_id,
        "email": email,
        "iat": now,
        "exp": now + datetime.timedelta(seconds=settings.jwt_expiry_seconds),
    }
    return jwt.encode(payload, signing_key(), algorithm=settings.jwt_algorithm)


def decode_token(token: str) -> dict:
    try:
        return jwt.decode(
            token,
            signing_key(),
            algorithms=[settings.jwt_algorithm],
            options={"require": ["sub", "exp"]},
        )
    except jwt.ExpiredSignatureError as exc:
        raise Unauthorized("Token expired.") from exc
    except jwt.InvalidTokenError as exc:
        raise Unauthorized("Invalid token.") from exc


def _extract_token(x_authorization: Optional[str], authorization: Optional[str]) -> str:
    if x_authorization:
        return x_authorization.strip()
    if authorization and authorization.lower().startswith("bearer "):
        return authorization.split(" ", 1)[1].strip()
    raise Unauthorized("Access denied. No token provided.")


async def require_user(
    x_authorization: Optional[str] = Header(None),
    authorization: Optional[str] = Header(None),
    db: AsyncSession = Depends(get_db),
) -> str:
    """Resolve the caller's user id, or fail with Unauthorized."""
    payload = decode_token(_extract_token(x_authorization, authorization))
    user_id = str(payload["sub"])

    user = await store.read(db, lambda: db.get(User, user_id), name="token subject")
    if user is None:
        raise Unauthorized("Token subject no longer exists.")
    return user_id
