"""Email template management: CRUD, versioning, preview and seeding."""

from __future__ import annotations

import logging
import uuid
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from jinja2 import Environment, FileSystemLoader, meta, select_autoescape
from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from backoffice.models.comms import EmailTemplate, EmailTemplateHistory, TemplateCategory

logger = logging.getLogger(__name__)

_TEMPLATE_DIR = Path(__file__).resolve().parents[1] / "templates"
_ENV = Environment(
    loader=FileSystemLoader(_TEMPLATE_DIR),
    autoescape=select_autoescape(["html", "xml"]),
)
_STRING_ENV = Environment(autoescape=select_autoescape(["html", "xml"]))
_TEXT_ENV = Environment(autoescape=False)

_VERSIONED_FIELDS = ("subject", "body_html", "body_text", "variables")

DEFAULT_TEMPLATES: tuple[dict[str, Any], ...] = (
    {
        "template_key": "welcome",
        "name": "Welcome",
        "subject": "Welcome to {{ agencyName }}, {{ customerName }}",
        "file": "welcome.html",
        "category": TemplateCategory.WELCOME,
    },
    {
        "template_key": "quote-ready",
        "name": "Quote Ready",
        "subject": "Your Travel Quote is Ready - {{ quoteId }}",
        "file": "quote_ready.html",
        "category": TemplateCategory.QUOTE,
    },
    {
        "template_key": "booking-confirmed",
        "name": "Booking Confirmed",
        "subject": "Your Trip is Confirmed! - Booking {{ bookingReference }}",
        "file": "booking_confirmed.html",
        "category": TemplateCategory.BOOKING,
    },
)


@dataclass(slots=True)
class RenderedTemplate:
    subject: str
    body_html: str
    body_text: str | None = None
    missing_variables: list[str] = field(default_factory=list)


def extract_variables(*sources: str | None) -> list[str]:
    """Names referenced as ``{{ name }}`` across the given template sources."""
    names: set[str] = set()
    for source in sources:
        if source:
            names |= meta.find_undeclared_variables(_STRING_ENV.parse(source))
    return sorted(names)


def render(
    template: EmailTemplate, context: Mapping[str, Any] | None = None
) -> RenderedTemplate:
    """Render subject and bodies. Unknown variables render as empty text."""
    ctx = dict(context or {})
    declared = template.variables or extract_variables(
        template.subject, template.body_html, template.body_text
    )
    return RenderedTemplate(
        subject=_TEXT_ENV.from_string(template.subject).render(**ctx).strip(),
        body_html=_STRING_ENV.from_string(template.body_html).render(**ctx),
        body_text=(
            _TEXT_ENV.from_string(template.body_text).render(**ctx)
            if template.body_text
            else None
        ),
        missing_variables=[name for name in declared if name not in ctx],
    )


def _snapshot(
    template: EmailTemplate,
    *,
    changed_by: uuid.UUID | None,
    change_description: str | None,
) -> EmailTemplateHistory:
    return EmailTemplateHistory(
        template_id=template.id,
        version=template.version,
        subject=template.subject,
        body_html=template.body_html,
        body_text=template.body_text,
        variables=list(template.variables or []),
        change_description=change_description,
        changed_by=changed_by,
    )


async def _commit(session: AsyncSession, template: EmailTemplate) -> EmailTemplate:
    try:
        await session.commit()
    except IntegrityError:
        await session.rollback()
        raise
    await session.refresh(template)
    return template


async def list_templates(
    session: AsyncSession,
    *,
    account_id: uuid.UUID,
    category: TemplateCategory | None = None,
    active_only: bool = False,
) -> Sequence[EmailTemplate]:
    stmt = select(EmailTemplate).where(EmailTemplate.account_id == account_id)
    if category is not None:
        stmt = stmt.where(EmailTemplate.category == category)
    if active_only:
        stmt = stmt.where(EmailTemplate.is_active.is_(True))
    result = await session.execute(stmt.order_by(EmailTemplate.name))
    return result.scalars().all()


async def get_template(
    session: AsyncSession, *, account_id: uuid.UUID, template_id: uuid.UUID
) -> EmailTemplate | None:
    result = await session.execute(
        select(EmailTemplate).where(
            EmailTemplate.id == template_id, EmailTemplate.account_id == account_id
        )
    )
    return result.scalar_one_or_none()


async def get_template_by_key(
    session: AsyncSession,
    *,
    account_id: uuid.UUID,
    template_key: str,
    active_only: bool = True,
) -> EmailTemplate | None:
    stmt = select(EmailTemplate).where(
        EmailTemplate.account_id == account_id,
        EmailTemplate.template_key == template_key,
    )
    if active_only:
        stmt = stmt.where(EmailTemplate.is_active.is_(True))
    result = await session.execute(stmt)
    return result.scalar_one_or_none()


async def create_template(
    session: AsyncSession,
    *,
    account_id: uuid.UUID,
    template_key: str,
    name: str,
    subject: str,
    body_html: str,
    body_text: str | None = None,
    category: TemplateCategory = TemplateCategory.CUSTOM,
    variables: list[str] | None = None,
    is_active: bool = True,
    is_default: bool = False,
) -> EmailTemplate:
    template = EmailTemplate(
        account_id=account_id,
        template_key=template_key,
        name=name,
        subject=subject,
        body_html=body_html,
        body_text=body_text,
        category=category,
        variables=variables or extract_variables(subject, body_html, body_text),
        is_active=is_active,
        is_default=is_default,
        version=1,
    )
    session.add(template)
    return await _commit(session, template)


async def update_template(
    session: AsyncSession,
    template: EmailTemplate,
    *,
    changed_by: uuid.UUID | None = None,
    change_description: str | None = None,
    **updates: Any,
) -> EmailTemplate:
    """Apply ``updates``, archiving the previous content when it changes."""
    updates = {key: value for key, value in updates.items() if value is not None}
    content_changed = any(
        key in updates and updates[key] != getattr(template, key)
        for key in _VERSIONED_FIELDS
    )
    if content_changed:
        session.add(
            _snapshot(
                template, changed_by=changed_by, change_description=change_description
            )
        )
        template.version += 1
        if "variables" not in updates:
            updates["variables"] = extract_variables(
                updates.get("subject", template.subject),
                updates.get("body_html", template.body_html),
                updates.get("body_text", template.body_text),
            )
    for key, value in updates.items():
        setattr(template, key, value)
    return await _commit(session, template)


async def delete_template(session: AsyncSession, template: EmailTemplate) -> None:
    await session.execute(
        delete(EmailTemplateHistory).where(
            EmailTemplateHistory.template_id == template.id
        )
    )
    await session.delete(template)
    await session.commit()


async def duplicate_template(
    session: AsyncSession, template: EmailTemplate
) -> EmailTemplate:
    existing = await session.execute(
        select(EmailTemplate.template_key).where(
            EmailTemplate.account_id == template.account_id
        )
    )
    taken = set(existing.scalars().all())
    key = f"{template.template_key}-copy"
    suffix = 2
    while key in taken:
        key = f"{template.template_key}-copy-{suffix}"
        suffix += 1
    return await create_template(
        session,
        account_id=template.account_id,
        template_key=key,
        name=f"{template.name} (Copy)",
        subject=template.subject,
        body_html=template.body_html,
        body_text=template.body_text,
        category=template.category,
        variables=list(template.variables or []),
        is_active=False,
    )


async def list_history(
    session: AsyncSession, template: EmailTemplate
) -> Sequence[EmailTemplateHistory]:
    result = await session.execute(
        select(EmailTemplateHistory)
        .where(EmailTemplateHistory.template_id == template.id)
        .order_by(EmailTemplateHistory.version.desc())
    )
    return result.scalars().all()


async def restore_version(
    session: AsyncSession,
    template: EmailTemplate,
    history_id: uuid.UUID,
    *,
    changed_by: uuid.UUID | None = None,
) -> EmailTemplate:
    result = await session.execute(
        select(EmailTemplateHistory).where(
            EmailTemplateHistory.id == history_id,
            EmailTemplateHistory.template_id == template.id,
        )
    )
    entry = result.scalar_one_or_none()
    if entry is None:
        raise LookupError("Template version not found")
    return await update_template(
        session,
        template,
        changed_by=changed_by,
        change_description=f"Restored version {entry.version}",
        subject=entry.subject,
        body_html=entry.body_html,
        body_text=entry.body_text,
        variables=list(entry.variables or []),
    )


def _default_source(filename: str) -> str:
    source, _, _ = _ENV.loader.get_source(_ENV, filename)
    return source


async def ensure_default_templates(
    session: AsyncSession, *, account_id: uuid.UUID
) -> list[EmailTemplate]:
    """Create any missing built-in templates for the account."""
    created: list[EmailTemplate] = []
    for default in DEFAULT_TEMPLATES:
        existing = await get_template_by_key(
            session,
            account_id=account_id,
            template_key=default["template_key"],
            active_only=False,
        )
        if existing is not None:
            continue
        created.append(
            await create_template(
                session,
                account_id=account_id,
                template_key=default["template_key"],
                name=default["name"],
                subject=default["subject"],
                body_html=_default_source(default["file"]),
                category=default["category"],
                is_default=True,
            )
        )
    if created:
        logger.info(
            "Seeded %d default email templates for account %s", len(created), account_id
        )
    return created
