"""Centralized v1 API router. Every module router is included here."""

from fastapi import APIRouter

from groupdesk.modules.auth.router import router as auth_router
from groupdesk.modules.booking.router import (
    dashboard_router,
    group_request_router,
    payment_router,
    public_router,
    quotation_router,
)
from groupdesk.modules.users.router import router as users_router

v1_router = APIRouter(prefix="/api/v1")
v1_router.include_router(auth_router)
v1_router.include_router(users_router)
v1_router.include_router(public_router)
v1_router.include_router(group_request_router)
v1_router.include_router(quotation_router)
v1_router.include_router(payment_router)
v1_router.include_router(dashboard_router)
