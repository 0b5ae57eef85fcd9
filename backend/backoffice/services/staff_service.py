"""Staff accounts: lookup, creation, sign-in and agent assignment."""
from __future__ import annotations

import logging
import uuid

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from backoffice.core.security import (
    hash_password,
    issue_access_token,
    token_lifetime,
    verify_password,
)
from backoffice.models.user import User, UserStatus
from backoffice.schemas.auth import Token
from backoffice.schemas.staff import StaffCreate

logger = logging.getLogger(__name__)


async def get_staff_by_email(session: AsyncSession, email: str) -> User | None:
    result = await session.execute(
        select(User).where(User.email == email.strip().lower())
    )
    return result.scalar_one_or_none()


async def get_staff_member(session: AsyncSession, user_id: uuid.UUID) -> User | None:
    return await session.get(User, user_id)


async def create_staff_member(session: AsyncSession, payload: StaffCreate) -> User:
    """Persist a staff member with a bcrypt password hash."""
    user = User(
        account_id=payload.account_id,
        email=payload.email.lower(),
        hashed_password=hash_password(payload.password),
        first_name=payload.first_name,
        last_name=payload.last_name,
        phone_number=payload.phone_number,
        role=payload.role,
        status=payload.status,
    )
    session.add(user)
    try:
        await session.commit()
    except IntegrityError:
        await session.rollback()
        raise
    await session.refresh(user)
    return user


async def authenticate(
    session: AsyncSession, *, email: str, password: str
) -> User | None:
    """Return the active staff member matching the credentials."""
    user = await get_staff_by_email(session, email)
    if user is None or not verify_password(password, user.hashed_password):
        return None
    if user.status != UserStatus.ACTIVE:
        logger.info("Rejected sign-in for %s staff member %s", user.status.value, user.id)
        return None
    return user


def issue_token(user: User) -> Token:
    lifetime = token_lifetime()
    access_token = issue_access_token(
        user_id=user.id,
        account_id=user.account_id,
        role=user.role.value,
        expires_in=lifetime,
    )
    return Token(
        access_token=access_token,
        expires_in=int(lifetime.total_seconds()),
        role=user.role,
    )


async def resolve_agent(
    session: AsyncSession, *, account_id: uuid.UUID, agent_id: uuid.UUID
) -> User:
    """Return the agent a customer or quote may be assigned to.

    Raises ``ValueError`` when the agent belongs to another account or is not
    active.
    """
    agent = await session.get(User, agent_id)
    if agent is None or agent.account_id != account_id:
        raise ValueError("Agent not found for account")
    if agent.status != UserStatus.ACTIVE:
        raise ValueError("Agent is not active")
    return agent
