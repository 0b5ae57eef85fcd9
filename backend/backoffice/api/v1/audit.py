"""Audit trail API for agency managers."""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from backoffice.api import deps
from backoffice.models.user import User
from backoffice.schemas.audit import AuditEventRead
from backoffice.services import audit_service

router = APIRouter()


@router.get("/events", response_model=list[AuditEventRead], summary="List audit events")
async def list_audit_events(
    session: Annotated[AsyncSession, Depends(deps.get_db_session)],
    current_user: Annotated[User, Depends(deps.get_current_manager)],
    event_type: str | None = None,
    subject_id: str | None = None,
    limit: Annotated[int, Query(ge=1, le=200)] = 50,
) -> list[AuditEventRead]:
    events = await audit_service.list_events(
        session,
        account_id=current_user.account_id,
        event_type=event_type,
        subject_id=subject_id,
        limit=limit,
    )
    return [AuditEventRead.model_validate(event) for event in events]
