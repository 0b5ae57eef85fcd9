"""Schema exports."""

from backoffice.schemas.audit import AuditEventRead
from backoffice.schemas.auth import Token
from backoffice.schemas.booking import (
    BookingCreate,
    BookingItemRead,
    BookingNotificationRead,
    BookingOperationCreate,
    BookingOperationRead,
    BookingOperationUpdate,
    BookingPaymentCreate,
    BookingRead,
    BookingStatusUpdate,
)
from backoffice.schemas.comms import (
    EmailOutboxRead,
    EmailSendRequest,
    EmailSendResultRead,
    EmailTemplateCreate,
    EmailTemplateHistoryRead,
    EmailTemplateRead,
    EmailTemplateUpdate,
    TemplatePreviewRead,
    TemplatePreviewRequest,
)
from backoffice.schemas.customer import (
    CustomerCreate,
    CustomerRead,
    CustomerSummary,
    CustomerUpdate,
)
from backoffice.schemas.markup_settings import MarkupSettingsRead, MarkupSettingsUpdate
from backoffice.schemas.portal import PortalQuoteItemRead, PortalQuoteRead
from backoffice.schemas.pricing import (
    DayBreakdownRead,
    PricingLineRead,
    PricingPreviewItem,
    PricingPreviewRequest,
    QuotePricingRead,
)
from backoffice.schemas.quote import (
    HotelDetails,
    ItemDetails,
    QuoteCreate,
    QuoteItemCreate,
    QuoteItemRead,
    QuoteItemReorder,
    QuoteItemUpdate,
    QuoteRead,
    QuoteSendRequest,
    QuoteStatusUpdate,
    QuoteSummary,
    QuoteUpdate,
    parse_item_details,
)
from backoffice.schemas.staff import StaffCreate, StaffRead

__all__ = [
    "AuditEventRead",
    "BookingCreate",
    "BookingItemRead",
    "BookingNotificationRead",
    "BookingOperationCreate",
    "BookingOperationRead",
    "BookingOperationUpdate",
    "BookingPaymentCreate",
    "BookingRead",
    "BookingStatusUpdate",
    "CustomerCreate",
    "CustomerRead",
    "CustomerSummary",
    "CustomerUpdate",
    "DayBreakdownRead",
    "EmailOutboxRead",
    "EmailSendRequest",
    "EmailSendResultRead",
    "EmailTemplateCreate",
    "EmailTemplateHistoryRead",
    "EmailTemplateRead",
    "EmailTemplateUpdate",
    "HotelDetails",
    "ItemDetails",
    "MarkupSettingsRead",
    "MarkupSettingsUpdate",
    "PortalQuoteItemRead",
    "PortalQuoteRead",
    "PricingLineRead",
    "PricingPreviewItem",
    "PricingPreviewRequest",
    "QuoteCreate",
    "QuoteItemCreate",
    "QuoteItemRead",
    "QuoteItemReorder",
    "QuoteItemUpdate",
    "QuoteRead",
    "QuoteSendRequest",
    "QuoteStatusUpdate",
    "QuoteSummary",
    "QuoteUpdate",
    "StaffCreate",
    "StaffRead",
    "Token",
    "parse_item_details",
]
