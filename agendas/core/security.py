from __future__ import annotations

import enum
import logging
from datetime import datetime, timedelta, timezone
from uuid import UUID

import bcrypt
from jose import JWTError, jwt

from agendas.core.config import settings

logger = logging.getLogger(__name__)


class TokenType(str, enum.Enum):
    ACCESS = "access"
    REFRESH = "refresh"


class InvalidTokenError(ValueError):
    """The token is malformed, expired, of the wrong type or has no subject."""


def _lifetime(token_type: TokenType) -> timedelta:
    if token_type == TokenType.ACCESS:
        return timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    return timedelta(days=settings.REFRESH_TOKEN_EXPIRE_DAYS)


def encode_token(user_id: UUID | str, token_type: TokenType) -> str:
    issued_at = datetime.now(timezone.utc)
    claims = {
        "sub": str(user_id),
        "type": token_type.value,
        "iat": issued_at,
        "exp": issued_at + _lifetime(token_type),
    }
    return jwt.encode(claims, settings.SECRET_KEY, algorithm=settings.JWT_ALGORITHM)


def create_access_token(user_id: UUID | str) -> str:
    return encode_token(user_id, TokenType.ACCESS)


def create_refresh_token(user_id: UUID | str) -> str:
    return encode_token(user_id, TokenType.REFRESH)


def decode_token(token: str, expected: TokenType = TokenType.ACCESS) -> UUID:
    """Validate ``token`` and return the user id it was issued for."""
    try:
        claims = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.JWT_ALGORITHM])
    except JWTError as exc:
        raise InvalidTokenError("Invalid token") from exc

    if claims.get("type") != expected.value:
        raise InvalidTokenError(f"Expected a {expected.value} token")
    try:
        return UUID(str(claims["sub"]))
    except (KeyError, ValueError):
        raise InvalidTokenError("Token has no valid subject") from None


def _password_bytes(password: str) -> bytes:
    # bcrypt ignores everything past 72 bytes
    return password.encode("utf-8")[:72]


def hash_password(password: str) -> str:
    return bcrypt.hashpw(_password_bytes(password), bcrypt.gensalt(rounds=12)).decode("utf-8")


def verify_password(password: str, hashed_password: str) -> bool:
    try:
        return bcrypt.checkpw(_password_bytes(password), hashed_password.encode("utf-8"))
    except ValueError as exc:
        # Rows seeded without a real hash end up here
        logger.warning(f"Unusable password hash: {exc}")
        return False
