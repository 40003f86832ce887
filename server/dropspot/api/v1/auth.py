# pyright: reportCallInDefaultInitializer=false
from __future__ import annotations

from datetime import datetime
from typing import NoReturn

from fastapi import APIRouter, Depends, HTTPException, Request, status
from pydantic import BaseModel, Field
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from dropspot.api.deps import get_current_user
from dropspot.core.config import settings
from dropspot.core.email import looks_like_email, normalize_email
from dropspot.core.security import (
    TokenIdentity,
    hash_password,
    issue_token,
    validate_password_policy,
    verify_password,
)
from dropspot.db.models import User
from dropspot.db.session import get_db
from dropspot.services.action_rate import ActionRateTracker, action_rate_key


router = APIRouter(prefix="/auth", tags=["auth"])


class SignupRequest(BaseModel):
    email: str = Field(..., examples=["user@example.com"])
    password: str = Field(..., min_length=6, examples=["password123"])


class LoginRequest(BaseModel):
    email: str = Field(..., examples=["user@example.com"])
    password: str = Field(..., examples=["password123"])


class UserOut(BaseModel):
    id: str
    email: str
    role: str
    created_at: datetime


class AuthResponse(BaseModel):
    user: UserOut
    access_token: str
    token_type: str = "bearer"


def _user_out(user: User) -> UserOut:
    return UserOut(id=user.id, email=user.email, role=user.role, created_at=user.created_at)


def _issue(user: User) -> AuthResponse:
    token = issue_token(
        TokenIdentity(user_id=user.id, role=user.role),
        secret=settings.auth_access_token_secret,
        expires_in_seconds=settings.auth_access_token_ttl_seconds,
    )
    return AuthResponse(user=_user_out(user), access_token=token)


def _login_limiter() -> ActionRateTracker:
    return ActionRateTracker(
        enabled=settings.auth_rate_limit_enabled,
        max_count=settings.auth_rate_limit_max_failures,
        window_seconds=settings.auth_rate_limit_window_seconds,
    )


def _client_ip(request: Request) -> str | None:
    if request.client is None:
        return None
    return request.client.host


def _raise_rate_limited(*, retry_after_seconds: int) -> NoReturn:
    headers: dict[str, str] | None = None
    if retry_after_seconds > 0:
        headers = {"Retry-After": str(int(retry_after_seconds))}
    raise HTTPException(
        status_code=status.HTTP_429_TOO_MANY_REQUESTS,
        detail="Too many attempts",
        headers=headers,
    )


@router.post(
    "/signup",
    response_model=AuthResponse,
    status_code=status.HTTP_201_CREATED,
    operation_id="auth_signup",
)
async def signup(payload: SignupRequest, db: Session = Depends(get_db)) -> AuthResponse:
    email = normalize_email(payload.email)
    if not looks_like_email(email):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid email format")
    try:
        validate_password_policy(payload.password)
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Password does not meet security requirements",
        )

    existing = db.execute(select(User.id).where(User.email == email)).scalar_one_or_none()
    if existing is not None:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Email already registered")

    user = User(email=email, password_hash=hash_password(payload.password), role="user")
    db.add(user)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Email already registered")
    db.refresh(user)
    return _issue(user)


@router.post(
    "/login",
    response_model=AuthResponse,
    operation_id="auth_login",
)
async def login(payload: LoginRequest, request: Request, db: Session = Depends(get_db)) -> AuthResponse:
    email = normalize_email(payload.email)
    limiter = _login_limiter()
    key = action_rate_key(scope="auth_login", identifier=email, ip=_client_ip(request))

    check = limiter.check(db, key=key)
    if check.blocked:
        _raise_rate_limited(retry_after_seconds=check.retry_after_seconds)

    user = db.execute(select(User).where(User.email == email)).scalar_one_or_none()
    if user is None or not verify_password(payload.password, user.password_hash):
        _ = limiter.record(db, key=key)
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid email or password")

    limiter.reset(db, key=key)
    return _issue(user)


@router.get("/me", response_model=UserOut, operation_id="auth_me")
async def me(user: User = Depends(get_current_user)) -> UserOut:
    return _user_out(user)
