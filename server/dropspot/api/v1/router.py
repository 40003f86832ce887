from __future__ import annotations

from fastapi import APIRouter

from dropspot.api.v1.admin_drops import router as admin_drops_router
from dropspot.api.v1.auth import router as auth_router
from dropspot.api.v1.claims import router as claims_router
from dropspot.api.v1.drops import router as drops_router
from dropspot.api.v1.health import router as health_router
from dropspot.api.v1.waitlist import router as waitlist_router


api_router = APIRouter()
api_router.include_router(auth_router)
api_router.include_router(health_router)
api_router.include_router(drops_router)
api_router.include_router(waitlist_router)
api_router.include_router(claims_router)
api_router.include_router(admin_drops_router)
