from __future__ import annotations

from typing import Annotated

from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer

from agendas.core.config import settings
from agendas.core.security import InvalidTokenError, TokenType, decode_token
from agendas.db import SessionDep
from agendas.models import User
from agendas.services.notifications import Notifier, get_notifier
from agendas.services.storage import SessionStorage

oauth2_scheme = OAuth2PasswordBearer(tokenUrl=f"{settings.API_V1_STR}/auth/login")


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def get_storage(session: SessionDep) -> SessionStorage:
    return SessionStorage(session)


StorageDep = Annotated[SessionStorage, Depends(get_storage)]


def get_current_user(
    storage: StorageDep,
    token: str = Depends(oauth2_scheme),
) -> User:
    try:
        user_id = decode_token(token, TokenType.ACCESS)
    except InvalidTokenError:
        raise _unauthorized("Could not validate credentials") from None

    user = storage.get_user(user_id)
    if user is None or not user.is_active:
        raise _unauthorized("Inactive or missing user")
    return user


def get_request_notifier(session: SessionDep) -> Notifier:
    return get_notifier(session)


CurrentUser = Annotated[User, Depends(get_current_user)]
NotifierDep = Annotated[Notifier, Depends(get_request_notifier)]
