"""Test fixtures for the back-office API."""
from __future__ import annotations

import os
import uuid
from collections.abc import AsyncIterator

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import create_async_engine

os.environ.setdefault("JWT_SECRET_KEY", "test-secret-key")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///./test.db")

from backoffice.core.config import get_settings
from backoffice.core.security import hash_password
from backoffice.db.base import Base
from backoffice.db.session import dispose_engine, get_sessionmaker
from backoffice.main import app
from backoffice.models import Account, Customer, User, UserRole, UserStatus
from backoffice.services import template_service


@pytest.fixture(scope="session")
def db_url(tmp_path_factory: pytest.TempPathFactory) -> str:
    """Provide a temporary SQLite database URL for the test session."""
    db_path = tmp_path_factory.mktemp("db") / "test.db"
    return f"sqlite+aiosqlite:///{db_path}"


@pytest_asyncio.fixture()
async def reset_database(db_url: str) -> AsyncIterator[None]:
    """Drop and recreate the database schema for an isolated test."""
    os.environ["DATABASE_URL"] = db_url
    get_settings.cache_clear()
    get_settings()

    await dispose_engine(db_url)
    engine = create_async_engine(db_url, future=True)
    async with engine.begin() as connection:
        await connection.run_sync(Base.metadata.drop_all)
        await connection.run_sync(Base.metadata.create_all)
    await engine.dispose()
    yield
    await dispose_engine(db_url)


@pytest_asyncio.fixture()
async def app_context(
    reset_database: AsyncIterator[None], db_url: str
) -> AsyncIterator[dict[str, object]]:
    """Yield an async client and seeded account data."""
    sessionmaker = get_sessionmaker(db_url)
    manager_password = "Passw0rd!"
    agent_password = "Ag3ntPass!"

    async with sessionmaker() as session:
        account = Account(name="Test Travel", slug=f"test-{uuid.uuid4().hex[:8]}")
        session.add(account)
        await session.flush()

        manager = User(
            account_id=account.id,
            email="manager@example.com",
            hashed_password=hash_password(manager_password),
            first_name="Casey",
            last_name="Manager",
            role=UserRole.MANAGER,
            status=UserStatus.ACTIVE,
        )
        agent = User(
            account_id=account.id,
            email="agent@example.com",
            hashed_password=hash_password(agent_password),
            first_name="Alex",
            last_name="Agent",
            role=UserRole.AGENT,
            status=UserStatus.ACTIVE,
        )
        session.add_all([manager, agent])
        await session.flush()

        customer = Customer(
            account_id=account.id,
            agent_id=agent.id,
            first_name="Jordan",
            last_name="Traveller",
            email="jordan@example.com",
        )
        session.add(customer)
        await session.commit()

        await template_service.ensure_default_templates(session, account_id=account.id)

        context = {
            "account_id": account.id,
            "customer_id": customer.id,
            "manager_email": manager.email,
            "manager_password": manager_password,
            "agent_id": agent.id,
            "agent_email": agent.email,
            "agent_password": agent_password,
        }

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        context["client"] = client
        yield context
