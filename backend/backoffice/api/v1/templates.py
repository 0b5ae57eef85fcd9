"""Email template management API."""

from __future__ import annotations

import uuid
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from backoffice.api import deps
from backoffice.models.comms import EmailTemplate, TemplateCategory
from backoffice.models.user import User
from backoffice.schemas.comms import (
    EmailTemplateCreate,
    EmailTemplateHistoryRead,
    EmailTemplateRead,
    EmailTemplateUpdate,
    TemplatePreviewRead,
    TemplatePreviewRequest,
)
from backoffice.services import template_service

router = APIRouter()


async def _get_template_or_404(
    session: AsyncSession, current_user: User, template_id: uuid.UUID
) -> EmailTemplate:
    template = await template_service.get_template(
        session, account_id=current_user.account_id, template_id=template_id
    )
    if template is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND, detail="Template not found"
        )
    return template


@router.get("", response_model=list[EmailTemplateRead], summary="List templates")
async def list_templates(
    session: Annotated[AsyncSession, Depends(deps.get_db_session)],
    current_user: Annotated[User, Depends(deps.get_current_active_user)],
    category: TemplateCategory | None = None,
    active_only: bool = False,
) -> list[EmailTemplateRead]:
    templates = await template_service.list_templates(
        session,
        account_id=current_user.account_id,
        category=category,
        active_only=active_only,
    )
    return [EmailTemplateRead.model_validate(obj) for obj in templates]


@router.post(
    "",
    response_model=EmailTemplateRead,
    status_code=status.HTTP_201_CREATED,
    summary="Create template",
)
async def create_template(
    payload: EmailTemplateCreate,
    session: Annotated[AsyncSession, Depends(deps.get_db_session)],
    current_user: Annotated[User, Depends(deps.get_current_active_user)],
) -> EmailTemplateRead:
    try:
        template = await template_service.create_template(
            session, account_id=current_user.account_id, **payload.model_dump()
        )
    except IntegrityError as exc:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="A template with this key already exists",
        ) from exc
    return EmailTemplateRead.model_validate(template)


@router.get("/{template_id}", response_model=EmailTemplateRead, summary="Get template")
async def get_template(
    template_id: uuid.UUID,
    session: Annotated[AsyncSession, Depends(deps.get_db_session)],
    current_user: Annotated[User, Depends(deps.get_current_active_user)],
) -> EmailTemplateRead:
    template = await _get_template_or_404(session, current_user, template_id)
    return EmailTemplateRead.model_validate(template)


@router.put("/{template_id}", response_model=EmailTemplateRead, summary="Update template")
async def update_template(
    template_id: uuid.UUID,
    payload: EmailTemplateUpdate,
    session: Annotated[AsyncSession, Depends(deps.get_db_session)],
    current_user: Annotated[User, Depends(deps.get_current_active_user)],
) -> EmailTemplateRead:
    template = await _get_template_or_404(session, current_user, template_id)
    updated = await template_service.update_template(
        session,
        template,
        changed_by=current_user.id,
        **payload.model_dump(exclude_unset=True),
    )
    return EmailTemplateRead.model_validate(updated)


@router.delete(
    "/{template_id}", status_code=status.HTTP_204_NO_CONTENT, summary="Delete template"
)
async def delete_template(
    template_id: uuid.UUID,
    session: Annotated[AsyncSession, Depends(deps.get_db_session)],
    current_user: Annotated[User, Depends(deps.get_current_active_user)],
) -> None:
    template = await _get_template_or_404(session, current_user, template_id)
    await template_service.delete_template(session, template)
    return None


@router.post(
    "/{template_id}/duplicate",
    response_model=EmailTemplateRead,
    status_code=status.HTTP_201_CREATED,
    summary="Duplicate template",
)
async def duplicate_template(
    template_id: uuid.UUID,
    session: Annotated[AsyncSession, Depends(deps.get_db_session)],
    current_user: Annotated[User, Depends(deps.get_current_active_user)],
) -> EmailTemplateRead:
    template = await _get_template_or_404(session, current_user, template_id)
    copy = await template_service.duplicate_template(session, template)
    return EmailTemplateRead.model_validate(copy)


@router.post(
    "/{template_id}/preview", response_model=TemplatePreviewRead, summary="Preview template"
)
async def preview_template(
    template_id: uuid.UUID,
    payload: TemplatePreviewRequest,
    session: Annotated[AsyncSession, Depends(deps.get_db_session)],
    current_user: Annotated[User, Depends(deps.get_current_active_user)],
) -> TemplatePreviewRead:
    template = await _get_template_or_404(session, current_user, template_id)
    rendered = template_service.render(template, payload.variables)
    return TemplatePreviewRead(
        subject=rendered.subject,
        body_html=rendered.body_html,
        body_text=rendered.body_text,
        missing_variables=rendered.missing_variables,
    )


@router.get(
    "/{template_id}/history",
    response_model=list[EmailTemplateHistoryRead],
    summary="Template version history",
)
async def template_history(
    template_id: uuid.UUID,
    session: Annotated[AsyncSession, Depends(deps.get_db_session)],
    current_user: Annotated[User, Depends(deps.get_current_active_user)],
) -> list[EmailTemplateHistoryRead]:
    template = await _get_template_or_404(session, current_user, template_id)
    history = await template_service.list_history(session, template)
    return [EmailTemplateHistoryRead.model_validate(entry) for entry in history]


@router.post(
    "/{template_id}/restore/{history_id}",
    response_model=EmailTemplateRead,
    summary="Restore template version",
)
async def restore_template_version(
    template_id: uuid.UUID,
    history_id: uuid.UUID,
    session: Annotated[AsyncSession, Depends(deps.get_db_session)],
    current_user: Annotated[User, Depends(deps.get_current_active_user)],
) -> EmailTemplateRead:
    template = await _get_template_or_404(session, current_user, template_id)
    try:
        restored = await template_service.restore_version(
            session, template, history_id, changed_by=current_user.id
        )
    except LookupError as exc:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)
        ) from exc
    return EmailTemplateRead.model_validate(restored)
