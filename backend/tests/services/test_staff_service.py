from __future__ import annotations

import pytest
from jose import JWTError
from sqlalchemy.exc import IntegrityError

from backoffice.core.security import read_access_token
from backoffice.db.session import get_sessionmaker
from backoffice.models import Account, UserRole, UserStatus
from backoffice.schemas.staff import StaffCreate
from backoffice.services import customer_service, staff_service


def _staff(account: Account, email: str, **overrides) -> StaffCreate:
    data = {
        "account_id": account.id,
        "email": email,
        "password": "s3cure-pass",
        "first_name": "Robin",
        "last_name": "Hale",
    }
    data.update(overrides)
    return StaffCreate(**data)


@pytest.mark.asyncio
async def test_staff_sign_in_and_token_claims(reset_database, db_url: str) -> None:
    sessionmaker = get_sessionmaker(db_url)
    async with sessionmaker() as session:
        account = Account(name="Staff Travel", slug="staff-travel")
        session.add(account)
        await session.commit()
        account_id = account.id

        manager = await staff_service.create_staff_member(
            session, _staff(account, "Robin@Staff.example.com", role=UserRole.MANAGER)
        )
        assert manager.email == "robin@staff.example.com"
        assert manager.hashed_password != "s3cure-pass"
        manager_id = manager.id

        with pytest.raises(IntegrityError):
            await staff_service.create_staff_member(
                session, _staff(account, "robin@staff.example.com")
            )

        assert (
            await staff_service.authenticate(
                session, email="robin@staff.example.com", password="wrong-pass"
            )
            is None
        )
        user = await staff_service.authenticate(
            session, email=" ROBIN@staff.example.com ", password="s3cure-pass"
        )
        assert user is not None and user.id == manager_id

        token = staff_service.issue_token(user)
        assert token.role is UserRole.MANAGER
        claims = read_access_token(token.access_token)
        assert claims.user_id == manager_id
        assert claims.account_id == account_id
        assert claims.role == "manager"

        with pytest.raises(JWTError):
            read_access_token(token.access_token + "tampered")


@pytest.mark.asyncio
async def test_customers_only_assign_active_agents_of_the_account(
    reset_database, db_url: str
) -> None:
    sessionmaker = get_sessionmaker(db_url)
    async with sessionmaker() as session:
        home = Account(name="Home Travel", slug="home-travel")
        other = Account(name="Other Travel", slug="other-travel")
        session.add_all([home, other])
        await session.commit()

        agent = await staff_service.create_staff_member(
            session, _staff(home, "agent@home.example.com")
        )
        invited = await staff_service.create_staff_member(
            session,
            _staff(home, "new@home.example.com", status=UserStatus.INVITED),
        )
        outsider = await staff_service.create_staff_member(
            session, _staff(other, "agent@other.example.com")
        )

        assert (
            await staff_service.authenticate(
                session, email="new@home.example.com", password="s3cure-pass"
            )
            is None
        )

        with pytest.raises(ValueError, match="not found"):
            await customer_service.create_customer(
                session,
                account_id=home.id,
                first_name="Sam",
                last_name="Reyes",
                agent_id=outsider.id,
            )
        with pytest.raises(ValueError, match="not active"):
            await staff_service.resolve_agent(
                session, account_id=home.id, agent_id=invited.id
            )

        customer = await customer_service.create_customer(
            session,
            account_id=home.id,
            first_name=" Sam ",
            last_name="Reyes",
            agent_id=agent.id,
        )
        assert customer.agent_id == agent.id
        assert customer.first_name == "Sam"
