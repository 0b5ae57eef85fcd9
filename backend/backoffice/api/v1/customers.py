"""Customer management API."""

from __future__ import annotations

import uuid
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from backoffice.api import deps
from backoffice.models.customer import Customer
from backoffice.models.user import User
from backoffice.schemas.customer import CustomerCreate, CustomerRead, CustomerUpdate
from backoffice.services import customer_service

router = APIRouter()


async def _get_customer_or_404(
    session: AsyncSession, current_user: User, customer_id: uuid.UUID
) -> Customer:
    customer = await customer_service.get_customer(
        session, account_id=current_user.account_id, customer_id=customer_id
    )
    if customer is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND, detail="Customer not found"
        )
    return customer


@router.get("", response_model=list[CustomerRead], summary="List customers")
async def list_customers(
    session: Annotated[AsyncSession, Depends(deps.get_db_session)],
    current_user: Annotated[User, Depends(deps.get_current_active_user)],
    search: Annotated[str | None, Query(max_length=120)] = None,
    skip: int = 0,
    limit: int = 50,
) -> list[CustomerRead]:
    customers = await customer_service.list_customers(
        session,
        account_id=current_user.account_id,
        search=search,
        skip=skip,
        limit=min(limit, 100),
    )
    return [CustomerRead.model_validate(obj) for obj in customers]


@router.post(
    "",
    response_model=CustomerRead,
    status_code=status.HTTP_201_CREATED,
    summary="Create customer",
)
async def create_customer(
    payload: CustomerCreate,
    session: Annotated[AsyncSession, Depends(deps.get_db_session)],
    current_user: Annotated[User, Depends(deps.get_current_active_user)],
) -> CustomerRead:
    data = payload.model_dump()
    if data.get("agent_id") is None:
        data["agent_id"] = current_user.id
    try:
        customer = await customer_service.create_customer(
            session, account_id=current_user.account_id, **data
        )
    except IntegrityError as exc:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="A customer with this email already exists",
        ) from exc
    except ValueError as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)
        ) from exc
    return CustomerRead.model_validate(customer)


@router.get("/{customer_id}", response_model=CustomerRead, summary="Get customer")
async def get_customer(
    customer_id: uuid.UUID,
    session: Annotated[AsyncSession, Depends(deps.get_db_session)],
    current_user: Annotated[User, Depends(deps.get_current_active_user)],
) -> CustomerRead:
    customer = await _get_customer_or_404(session, current_user, customer_id)
    return CustomerRead.model_validate(customer)


@router.patch("/{customer_id}", response_model=CustomerRead, summary="Update customer")
async def update_customer(
    customer_id: uuid.UUID,
    payload: CustomerUpdate,
    session: Annotated[AsyncSession, Depends(deps.get_db_session)],
    current_user: Annotated[User, Depends(deps.get_current_active_user)],
) -> CustomerRead:
    customer = await _get_customer_or_404(session, current_user, customer_id)
    try:
        updated = await customer_service.update_customer(
            session, customer, **payload.model_dump(exclude_unset=True)
        )
    except IntegrityError as exc:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="A customer with this email already exists",
        ) from exc
    except ValueError as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)
        ) from exc
    return CustomerRead.model_validate(updated)


@router.delete(
    "/{customer_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete customer",
)
async def delete_customer(
    customer_id: uuid.UUID,
    session: Annotated[AsyncSession, Depends(deps.get_db_session)],
    current_user: Annotated[User, Depends(deps.get_current_active_user)],
) -> None:
    customer = await _get_customer_or_404(session, current_user, customer_id)
    try:
        await customer_service.delete_customer(session, customer)
    except ValueError as exc:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT, detail=str(exc)
        ) from exc
    return None
