"""ORM models package export."""

from backoffice.models.account import Account
from backoffice.models.audit_event import AuditEvent
from backoffice.models.booking import (
    Booking,
    BookingItem,
    BookingNotification,
    BookingOperation,
    BookingStatus,
    NotificationPriority,
    NotificationType,
    OperationStatus,
    OperationType,
    PaymentStatus,
)
from backoffice.models.comms import (
    EmailOutbox,
    EmailState,
    EmailTemplate,
    EmailTemplateHistory,
    TemplateCategory,
)
from backoffice.models.customer import Customer
from backoffice.models.markup_settings import MarkupSettings
from backoffice.models.quote import (
    ItemType,
    MarkupStrategy,
    MarkupType,
    Quote,
    QuoteItem,
    QuoteStatus,
)
from backoffice.models.user import User, UserRole, UserStatus

__all__ = [
    "Account",
    "AuditEvent",
    "Booking",
    "BookingItem",
    "BookingNotification",
    "BookingOperation",
    "BookingStatus",
    "Customer",
    "EmailOutbox",
    "EmailState",
    "EmailTemplate",
    "EmailTemplateHistory",
    "ItemType",
    "MarkupSettings",
    "MarkupStrategy",
    "MarkupType",
    "NotificationPriority",
    "NotificationType",
    "OperationStatus",
    "OperationType",
    "PaymentStatus",
    "Quote",
    "QuoteItem",
    "QuoteStatus",
    "TemplateCategory",
    "User",
    "UserRole",
    "UserStatus",
]
