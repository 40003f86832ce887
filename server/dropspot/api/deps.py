# pyright: reportCallInDefaultInitializer=false
from __future__ import annotations

from functools import lru_cache
from typing import NoReturn

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from dropspot.core.config import settings
from dropspot.core.security import identity_from_token
from dropspot.db.models import User
from dropspot.db.session import get_db
from dropspot.domain.priority import get_priority_coefficients
from dropspot.services.admin import AdminLifecycleManager
from dropspot.services.claims import ClaimLedger
from dropspot.services.drops import DropCatalog
from dropspot.services.ledger import get_ledger
from dropspot.services.waitlist import WaitlistLedger


_bearer_scheme = HTTPBearer(auto_error=False)


def _unauthorized(detail: str = "Unauthorized") -> NoReturn:
    raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=detail)


def _forbidden(detail: str = "Forbidden") -> NoReturn:
    raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=detail)


def _user_from_credentials(db: Session, creds: HTTPAuthorizationCredentials) -> User:
    if creds.scheme.lower() != "bearer" or creds.credentials == "":
        _unauthorized()
    try:
        identity = identity_from_token(creds.credentials, secret=settings.auth_access_token_secret)
    except ValueError:
        _unauthorized("Invalid or expired token")

    user = db.get(User, identity.user_id)
    if user is None:
        _unauthorized("User not found")
    return user


def get_current_user(
    db: Session = Depends(get_db),
    creds: HTTPAuthorizationCredentials | None = Depends(_bearer_scheme),
) -> User:
    if creds is None:
        _unauthorized()
    return _user_from_credentials(db, creds)


def get_optional_user(
    db: Session = Depends(get_db),
    creds: HTTPAuthorizationCredentials | None = Depends(_bearer_scheme),
) -> User | None:
    if creds is None:
        return None
    return _user_from_credentials(db, creds)


def require_admin(user: User = Depends(get_current_user)) -> User:
    if user.role != "admin":
        _forbidden("Requires admin")
    return user


@lru_cache
def get_waitlist_ledger() -> WaitlistLedger:
    return WaitlistLedger(get_ledger(), coefficients=get_priority_coefficients())


@lru_cache
def get_claim_ledger() -> ClaimLedger:
    return ClaimLedger(get_ledger(), max_code_attempts=settings.claim_code_max_attempts)


@lru_cache
def get_drop_catalog() -> DropCatalog:
    return DropCatalog(get_ledger())


@lru_cache
def get_admin_manager() -> AdminLifecycleManager:
    return AdminLifecycleManager(get_ledger())
