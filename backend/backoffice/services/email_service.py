"""Outgoing email: outbox persistence, SMTP delivery and template sends."""

from __future__ import annotations

import asyncio
import logging
import smtplib
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from datetime import UTC, datetime
from email.message import EmailMessage
from email.utils import make_msgid
from typing import Any
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from backoffice.core.config import get_settings
from backoffice.models import Booking, EmailOutbox, EmailState, EmailTemplate, Quote, User
from backoffice.services import pricing_engine, template_service

logger = logging.getLogger(__name__)

__all__ = [
    "EmailSendResult",
    "build_booking_context",
    "build_quote_context",
    "send_email",
    "send_template",
]


@dataclass(slots=True)
class EmailSendResult:
    success: bool
    message_id: str | None = None
    error: str | None = None
    outbox_id: UUID | None = None


def _deliver_email(
    recipients: Sequence[str], subject: str, html_body: str, text_body: str | None
) -> str | None:
    """Attempt to deliver an email immediately.

    Returns the Message-ID if a send was attempted (and succeeded), None if
    skipped due to missing SMTP configuration. Raises on transport errors.
    """
    settings = get_settings()
    if not settings.smtp_host or not settings.smtp_port:
        logger.info("SMTP configuration missing; skipping email to %s", ", ".join(recipients))
        return None

    sender = settings.smtp_from or settings.smtp_username or "no-reply@backoffice.local"
    message = EmailMessage()
    message["Subject"] = subject
    message["To"] = ", ".join(recipients)
    message["From"] = sender
    message["Message-ID"] = make_msgid(domain=sender.rpartition("@")[2] or None)
    message.set_content(text_body or "This message contains HTML content.")
    message.add_alternative(html_body, subtype="html")

    try:
        with smtplib.SMTP(settings.smtp_host, settings.smtp_port, timeout=5) as server:
            if settings.smtp_username and settings.smtp_password:
                try:
                    server.starttls()
                except smtplib.SMTPException:
                    logger.debug("SMTP server does not support STARTTLS")
                server.login(settings.smtp_username, settings.smtp_password)
            server.send_message(message)
    except Exception as exc:  # pragma: no cover - network dependent
        logger.exception("Failed to send email to %s: %s", ", ".join(recipients), exc)
        raise
    return message["Message-ID"]


async def send_email(
    session: AsyncSession,
    *,
    account_id: UUID,
    to: Sequence[str],
    subject: str,
    body: str,
    text_body: str | None = None,
    template: EmailTemplate | None = None,
    customer_id: UUID | None = None,
    quote_id: UUID | None = None,
    booking_id: UUID | None = None,
) -> EmailSendResult:
    """Record the message in the outbox and deliver it.

    Transport failures are reported in the result, not raised.
    """
    recipients = [address.strip() for address in to if address and address.strip()]
    if not recipients:
        raise ValueError("At least one recipient is required")
    if not subject.strip():
        raise ValueError("Subject is required")

    outbox = EmailOutbox(
        account_id=account_id,
        recipients=recipients,
        subject=subject,
        body=body,
        template_id=template.id if template else None,
        customer_id=customer_id,
        quote_id=quote_id,
        booking_id=booking_id,
        state=EmailState.QUEUED,
    )
    session.add(outbox)
    await session.flush()

    result = EmailSendResult(success=False, outbox_id=outbox.id)
    try:
        message_id = await asyncio.to_thread(
            _deliver_email, recipients, subject, body, text_body
        )
    except Exception as exc:
        outbox.state = EmailState.FAILED
        outbox.error = str(exc)
        result.error = str(exc)
    else:
        outbox.state = EmailState.SENT
        outbox.sent_at = datetime.now(UTC)
        outbox.provider_message_id = message_id
        if message_id is None:
            outbox.error = "delivery skipped (no SMTP configured)"
        result.success = True
        result.message_id = message_id
    await session.commit()
    return result


def build_quote_context(
    quote: Quote, agent: User | None = None, extra: Mapping[str, Any] | None = None
) -> dict[str, Any]:
    """Template variables for a quote. The total comes from the pricing engine."""
    settings = get_settings()
    customer = quote.customer
    context: dict[str, Any] = {
        "customerName": customer.full_name if customer else "",
        "quoteId": quote.quote_reference,
        "quoteTotal": pricing_engine.format_price(
            pricing_engine.calculate_quote_total(quote), settings.default_currency
        ),
        "clientPortalUrl": (
            f"{settings.client_portal_base_url.rstrip('/')}/quotes/{quote.quote_reference}"
        ),
        "validityDays": settings.quote_validity_days,
        "agentName": agent.full_name if agent else "",
        "agencyName": settings.agency_name,
    }
    context.update(extra or {})
    return context


def build_booking_context(
    booking: Booking, agent: User | None = None, extra: Mapping[str, Any] | None = None
) -> dict[str, Any]:
    settings = get_settings()
    customer = booking.customer
    context: dict[str, Any] = {
        "customerName": customer.full_name if customer else "",
        "bookingReference": booking.booking_reference,
        "travelDates": (
            f"{booking.travel_start_date:%d %b %Y} - {booking.travel_end_date:%d %b %Y}"
        ),
        "bookingTotal": pricing_engine.format_price(
            booking.total_price, settings.default_currency
        ),
        "agentName": agent.full_name if agent else "",
        "agencyName": settings.agency_name,
    }
    context.update(extra or {})
    return context


async def send_template(
    session: AsyncSession,
    *,
    account_id: UUID,
    template_key: str,
    to: Sequence[str],
    context: Mapping[str, Any] | None = None,
    customer_id: UUID | None = None,
    quote_id: UUID | None = None,
    booking_id: UUID | None = None,
) -> EmailSendResult:
    template = await template_service.get_template_by_key(
        session, account_id=account_id, template_key=template_key
    )
    if template is None:
        raise LookupError(f"Email template '{template_key}' not found")
    rendered = template_service.render(template, context)
    if rendered.missing_variables:
        logger.warning(
            "Template %s rendered without %s",
            template_key,
            ", ".join(rendered.missing_variables),
        )
    return await send_email(
        session,
        account_id=account_id,
        to=to,
        subject=rendered.subject,
        body=rendered.body_html,
        text_body=rendered.body_text,
        template=template,
        customer_id=customer_id,
        quote_id=quote_id,
        booking_id=booking_id,
    )
