"""Audit trail for sign-ins and quote/booking changes."""

from __future__ import annotations

import uuid
from collections.abc import Sequence
from typing import Any

from fastapi import Request
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from backoffice.models.audit_event import AuditEvent
from backoffice.models.user import User

LOGIN = "auth.login"
QUOTE_STATUS_CHANGED = "quote.status_changed"
BOOKING_CREATED = "booking.created"


def client_ip(request: Request | None) -> str | None:
    if request is None or request.client is None:
        return None
    return request.client.host


async def record_event(
    session: AsyncSession,
    *,
    actor: User,
    event_type: str,
    subject_id: uuid.UUID | str | None = None,
    description: str | None = None,
    payload: dict[str, Any] | None = None,
    request: Request | None = None,
) -> AuditEvent:
    """Persist an event attributed to ``actor`` within their account."""
    event = AuditEvent(
        account_id=actor.account_id,
        user_id=actor.id,
        event_type=event_type,
        subject_id=None if subject_id is None else str(subject_id),
        description=description,
        payload=payload,
        ip_address=client_ip(request),
    )
    session.add(event)
    await session.commit()
    await session.refresh(event)
    return event


async def list_events(
    session: AsyncSession,
    *,
    account_id: uuid.UUID,
    event_type: str | None = None,
    subject_id: uuid.UUID | str | None = None,
    limit: int = 50,
) -> Sequence[AuditEvent]:
    """Newest first."""
    stmt = select(AuditEvent).where(AuditEvent.account_id == account_id)
    if event_type:
        stmt = stmt.where(AuditEvent.event_type == event_type)
    if subject_id is not None:
        stmt = stmt.where(AuditEvent.subject_id == str(subject_id))
    stmt = stmt.order_by(AuditEvent.created_at.desc(), AuditEvent.id).limit(limit)
    result = await session.execute(stmt)
    return result.scalars().all()
