"""Service layer exports."""
from backoffice.services import (
    audit_service,
    booking_service,
    customer_service,
    email_service,
    markup_policy_service,
    pricing_engine,
    quote_service,
    staff_service,
    template_service,
)

__all__ = [
    "audit_service",
    "booking_service",
    "customer_service",
    "email_service",
    "markup_policy_service",
    "pricing_engine",
    "quote_service",
    "staff_service",
    "template_service",
]
