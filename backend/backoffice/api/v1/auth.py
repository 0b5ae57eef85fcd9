"""Authentication endpoints."""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Request, Response, status
from fastapi.security import OAuth2PasswordRequestForm
from fastapi_limiter import FastAPILimiter
from fastapi_limiter.depends import RateLimiter
from sqlalchemy.ext.asyncio import AsyncSession

from backoffice.api import deps
from backoffice.core.config import get_settings
from backoffice.models.user import User
from backoffice.schemas.auth import Token
from backoffice.schemas.staff import StaffRead
from backoffice.services import audit_service, staff_service

router = APIRouter()

_settings = get_settings()

_SECONDS_PER_WINDOW = {
    "second": 1,
    "seconds": 1,
    "minute": 60,
    "minutes": 60,
    "hour": 3600,
    "hours": 3600,
    "day": 86400,
    "days": 86400,
}


def _parse_rate(value: str, *, fallback: tuple[int, int]) -> tuple[int, int]:
    try:
        count_str, window_str = value.split("/", 1)
        count = int(count_str.strip())
    except ValueError:
        return fallback
    seconds = _SECONDS_PER_WINDOW.get(window_str.strip().lower(), fallback[1])
    return count, seconds


_LOGIN_LIMIT = _parse_rate(_settings.rate_limit_login, fallback=(10, 60))


def _rate_dependency(limit: tuple[int, int]):
    async def _dependency(request: Request, response: Response) -> None:
        if FastAPILimiter.redis is None:
            return None
        limiter = RateLimiter(times=limit[0], seconds=limit[1])
        await limiter(request, response)

    return Depends(_dependency)


_LOGIN_RATE_DEP = _rate_dependency(_LOGIN_LIMIT)


def _login_payload(user: User) -> dict[str, str]:
    return {"email": user.email, "role": user.role.value}


@router.post(
    "/token",
    response_model=Token,
    summary="Obtain access token",
    dependencies=[_LOGIN_RATE_DEP],
)
async def login_for_access_token(
    form_data: Annotated[OAuth2PasswordRequestForm, Depends()],
    session: Annotated[AsyncSession, Depends(deps.get_db_session)],
    request: Request,
) -> Token:
    """Validate staff credentials and issue a bearer token."""
    user = await staff_service.authenticate(
        session, email=form_data.username, password=form_data.password
    )
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Incorrect email or password",
            headers={"WWW-Authenticate": "Bearer"},
        )
    token = staff_service.issue_token(user)
    await audit_service.record_event(
        session,
        actor=user,
        subject_id=user.id,
        event_type=audit_service.LOGIN,
        description="Successful login",
        payload=_login_payload(user),
        request=request,
    )
    return token


@router.get("/me", response_model=StaffRead, summary="Current staff member")
async def read_current_user(
    current_user: Annotated[User, Depends(deps.get_current_active_user)],
) -> StaffRead:
    return StaffRead.model_validate(current_user)
