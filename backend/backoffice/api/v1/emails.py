"""Outgoing email API."""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from backoffice.api import deps
from backoffice.models.user import User
from backoffice.schemas.comms import EmailSendRequest, EmailSendResultRead
from backoffice.services import email_service

router = APIRouter()


@router.post("/send", response_model=EmailSendResultRead, summary="Send email")
async def send_email(
    payload: EmailSendRequest,
    session: Annotated[AsyncSession, Depends(deps.get_db_session)],
    current_user: Annotated[User, Depends(deps.get_current_active_user)],
) -> EmailSendResultRead:
    """Send a raw message, or render ``template_key`` with ``variables``."""
    links = {
        "customer_id": payload.customer_id,
        "quote_id": payload.quote_id,
        "booking_id": payload.booking_id,
    }
    try:
        if payload.template_key:
            result = await email_service.send_template(
                session,
                account_id=current_user.account_id,
                template_key=payload.template_key,
                to=payload.to,
                context=payload.variables,
                **links,
            )
        else:
            if not payload.subject or not payload.body:
                raise ValueError("subject and body are required without a template")
            result = await email_service.send_email(
                session,
                account_id=current_user.account_id,
                to=payload.to,
                subject=payload.subject,
                body=payload.body,
                **links,
            )
    except LookupError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    except ValueError as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)
        ) from exc
    return EmailSendResultRead(
        success=result.success,
        message_id=result.message_id,
        error=result.error,
        outbox_id=result.outbox_id,
    )
