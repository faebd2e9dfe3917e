import logging
from datetime import datetime, timedelta, timezone
from typing import Optional

import bcrypt
import jwt
from fastapi import Depends, Request
from sqlalchemy.orm import Session

from . import crud, models
from .config import settings
from .db import get_db
from .errors import InvalidToken, NotAuthenticated

logger = logging.getLogger(__name__)

AUTH_REQUIRED = "Authentication required"
TOKEN_INVALID = "Invalid or expired token"


def hash_password(password: str) -> str:
    """
    Hash a password using bcrypt.

    Args:
        password (str): Plain text password

    Returns:
        str: Hashed password
    """
    salt = bcrypt.gensalt()
    hashed = bcrypt.hashpw(password.encode("utf-8"), salt)
    return hashed.decode("utf-8")


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """
    Verify a password against its hash.

    Args:
        plain_password (str): Plain text password
        hashed_password (str): Stored hashed password

    Returns:
        bool: True if password matches, False otherwise
    """
    return bcrypt.checkpw(
        plain_password.encode("utf-8"),
        hashed_password.encode("utf-8"),
    )


def create_access_token(user: models.User, expires_in: Optional[timedelta] = None) -> str:
    now = datetime.now(timezone.utc)
    if expires_in is None:
        expires_in = timedelta(hours=settings.jwt_expires_hours)
    payload = {
        "sub": str(user.id),
        "email": user.email,
        "iat": now,
        "exp": now + expires_in,
    }
    return jwt.encode(payload, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def decode_access_token(token: str) -> dict:
    """Return the token's claims; raise InvalidToken if it cannot be trusted."""
    try:
        payload = jwt.decode(
            token,
            settings.jwt_secret,
            algorithms=[settings.jwt_algorithm],
            options={"require": ["sub", "exp"]},
        )
    except jwt.PyJWTError as e:
        logger.debug("Rejected bearer token: %s", e)
        raise InvalidToken(TOKEN_INVALID) from e
    return payload


def bearer_token(request: Request) -> Optional[str]:
    header = request.headers.get("Authorization")
    if not header:
        return None
    scheme, _, token = header.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()


def get_current_user(request: Request, db: Session = Depends(get_db)) -> models.User:
    token = bearer_token(request)
    if not token:
        raise NotAuthenticated(AUTH_REQUIRED)
    payload = decode_access_token(token)
    try:
        user_id = int(payload["sub"])
    except (TypeError, ValueError) as e:
        raise InvalidToken(TOKEN_INVALID) from e
    user = crud.get_user(db, user_id)
    if user is None:
        raise InvalidToken(TOKEN_INVALID)
    return user
