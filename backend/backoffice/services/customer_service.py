"""Customer management service helpers."""
from __future__ import annotations

import uuid
from collections.abc import Sequence
from typing import Any

from sqlalchemy import func, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from backoffice.models.customer import Customer
from backoffice.models.quote import Quote
from backoffice.services import staff_service


async def _ensure_agent(
    session: AsyncSession, *, account_id: uuid.UUID, agent_id: uuid.UUID | None
) -> None:
    if agent_id is not None:
        await staff_service.resolve_agent(
            session, account_id=account_id, agent_id=agent_id
        )


async def list_customers(
    session: AsyncSession,
    *,
    account_id: uuid.UUID,
    search: str | None = None,
    skip: int = 0,
    limit: int = 50,
) -> Sequence[Customer]:
    stmt = select(Customer).where(Customer.account_id == account_id)
    if search:
        pattern = f"%{search.strip().lower()}%"
        stmt = stmt.where(
            or_(
                func.lower(Customer.first_name).like(pattern),
                func.lower(Customer.last_name).like(pattern),
                func.lower(Customer.email).like(pattern),
            )
        )
    stmt = stmt.order_by(Customer.last_name, Customer.first_name).offset(skip).limit(limit)
    result = await session.execute(stmt)
    return result.scalars().all()


async def get_customer(
    session: AsyncSession, *, account_id: uuid.UUID, customer_id: uuid.UUID
) -> Customer | None:
    result = await session.execute(
        select(Customer).where(
            Customer.id == customer_id, Customer.account_id == account_id
        )
    )
    return result.scalar_one_or_none()


async def create_customer(
    session: AsyncSession,
    *,
    account_id: uuid.UUID,
    first_name: str,
    last_name: str,
    email: str | None = None,
    agent_id: uuid.UUID | None = None,
    **fields: Any,
) -> Customer:
    """Create a customer. Email addresses are unique per account."""
    await _ensure_agent(session, account_id=account_id, agent_id=agent_id)
    customer = Customer(
        account_id=account_id,
        first_name=first_name.strip(),
        last_name=last_name.strip(),
        email=email.lower() if email else None,
        agent_id=agent_id,
        **fields,
    )
    session.add(customer)
    try:
        await session.commit()
    except IntegrityError:
        await session.rollback()
        raise
    await session.refresh(customer)
    return customer


async def update_customer(
    session: AsyncSession, customer: Customer, **updates: Any
) -> Customer:
    if "agent_id" in updates:
        await _ensure_agent(
            session, account_id=customer.account_id, agent_id=updates["agent_id"]
        )
    if updates.get("email"):
        updates["email"] = updates["email"].lower()
    for field, value in updates.items():
        setattr(customer, field, value)
    try:
        await session.commit()
    except IntegrityError:
        await session.rollback()
        raise
    await session.refresh(customer)
    return customer


async def delete_customer(session: AsyncSession, customer: Customer) -> None:
    """Delete a customer that has no quotes."""
    quote_count = await session.scalar(
        select(func.count(Quote.id)).where(Quote.customer_id == customer.id)
    )
    if quote_count:
        raise ValueError("Customer has quotes and cannot be deleted")
    await session.delete(customer)
    await session.commit()
