from __future__ import annotations

import logging
from uuid import UUID

from fastapi import APIRouter, HTTPException, status

from agendas.api.deps import CurrentUser, StorageDep
from agendas.core.errors import ConflictError, ForbiddenError, InvalidError
from agendas.core.security import (
    InvalidTokenError,
    TokenType,
    create_access_token,
    create_refresh_token,
    decode_token,
    hash_password,
    verify_password,
)
from agendas.models import User
from agendas.schemas import (
    RefreshTokenRequest,
    TokenPair,
    UserCreate,
    UserLogin,
    UserRead,
)

logger = logging.getLogger(__name__)

router = APIRouter()


def _issue_tokens(user_id: UUID) -> TokenPair:
    return TokenPair(
        access_token=create_access_token(user_id),
        refresh_token=create_refresh_token(user_id),
    )


@router.post(
    "/register",
    response_model=UserRead,
    status_code=status.HTTP_201_CREATED,
    summary="Register a new user",
)
def register_user(payload: UserCreate, storage: StorageDep) -> User:
    if storage.get_user_by_email(payload.email):
        raise ConflictError("Email is already registered")

    user = User(
        email=payload.email.lower(),
        full_name=payload.full_name,
        avatar_url=payload.avatar_url,
        hashed_password=hash_password(payload.password),
    )
    storage.add_user(user)
    storage.commit()
    storage.refresh(user)
    logger.info(f"Registered user {user.id}")
    return user


@router.post("/login", response_model=TokenPair, summary="Login and obtain tokens")
def login(payload: UserLogin, storage: StorageDep) -> TokenPair:
    user = storage.get_user_by_email(payload.email)
    if user is None or not verify_password(payload.password, user.hashed_password):
        raise InvalidError("Incorrect email or password")
    if not user.is_active:
        raise ForbiddenError("User is inactive")
    return _issue_tokens(user.id)


@router.post("/refresh", response_model=TokenPair, summary="Refresh access token")
def refresh_tokens(payload: RefreshTokenRequest, storage: StorageDep) -> TokenPair:
    try:
        user_id = decode_token(payload.refresh_token, TokenType.REFRESH)
    except InvalidTokenError as exc:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=str(exc)) from None

    user = storage.get_user(user_id)
    if user is None or not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Inactive or missing user",
        )
    return _issue_tokens(user.id)


@router.get("/me", response_model=UserRead, summary="Current user")
def read_me(current_user: CurrentUser) -> User:
    return current_user
