"""Versioned API router."""

from fastapi import APIRouter

from . import (
    audit,
    auth,
    bookings,
    customers,
    emails,
    health,
    portal,
    pricing,
    quotes,
    settings,
    templates,
)

router = APIRouter()
router.include_router(health.router, prefix="/health", tags=["health"])
router.include_router(auth.router, prefix="/auth", tags=["auth"])
router.include_router(audit.router, prefix="/audit", tags=["audit"])
router.include_router(customers.router, prefix="/customers", tags=["customers"])
router.include_router(quotes.router, prefix="/quotes", tags=["quotes"])
router.include_router(pricing.router, prefix="/pricing", tags=["pricing"])
router.include_router(settings.router, prefix="/settings", tags=["settings"])
router.include_router(bookings.router, prefix="/bookings", tags=["bookings"])
router.include_router(templates.router, prefix="/templates", tags=["templates"])
router.include_router(emails.router, prefix="/emails", tags=["emails"])
router.include_router(portal.router, prefix="/portal", tags=["portal"])
