"""Agency settings API."""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from backoffice.api import deps
from backoffice.models.user import User
from backoffice.schemas.markup_settings import MarkupSettingsRead, MarkupSettingsUpdate
from backoffice.services import markup_policy_service

router = APIRouter()


@router.get("/markup", response_model=MarkupSettingsRead, summary="Markup policy")
async def get_markup_settings(
    session: Annotated[AsyncSession, Depends(deps.get_db_session)],
    current_user: Annotated[User, Depends(deps.get_current_active_user)],
) -> MarkupSettingsRead:
    settings = await markup_policy_service.get_markup_settings(
        session, account_id=current_user.account_id
    )
    return MarkupSettingsRead.model_validate(settings)


@router.put("/markup", response_model=MarkupSettingsRead, summary="Update markup policy")
async def update_markup_settings(
    payload: MarkupSettingsUpdate,
    session: Annotated[AsyncSession, Depends(deps.get_db_session)],
    current_user: Annotated[User, Depends(deps.get_current_manager)],
) -> MarkupSettingsRead:
    settings = await markup_policy_service.update_markup_settings(
        session,
        account_id=current_user.account_id,
        **payload.model_dump(exclude_unset=True),
    )
    return MarkupSettingsRead.model_validate(settings)
