from .config import settings
from .errors import (
    AgendaError,
    ConflictError,
    ForbiddenError,
    InvalidError,
    NotFoundError,
)
from .security import (
    InvalidTokenError,
    TokenType,
    create_access_token,
    create_refresh_token,
    decode_token,
    hash_password,
    verify_password,
)

__all__ = [
    "settings",
    "AgendaError",
    "ConflictError",
    "ForbiddenError",
    "InvalidError",
    "NotFoundError",
    "InvalidTokenError",
    "TokenType",
    "create_access_token",
    "create_refresh_token",
    "decode_token",
    "hash_password",
    "verify_password",
]
