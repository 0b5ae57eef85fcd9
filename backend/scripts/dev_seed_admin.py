from __future__ import annotations

import asyncio

from sqlalchemy import select

from backoffice.core.config import get_settings
from backoffice.db.session import get_sessionmaker
from backoffice.models import Account, User, UserRole
from backoffice.schemas.staff import StaffCreate
from backoffice.services import staff_service, template_service

EMAIL = "admin@agency.example.com"
PASSWORD = "admin1234"
ACCOUNT_SLUG = "dev-agency"


async def main() -> None:
    settings = get_settings()
    sessionmaker = get_sessionmaker(settings.database_url)
    async with sessionmaker() as session:
        existing = await session.scalar(select(User).where(User.email == EMAIL))
        if existing is not None:
            print(f"User {EMAIL} already exists")
            return

        account = Account(name=settings.agency_name, slug=ACCOUNT_SLUG)
        session.add(account)
        await session.commit()

        await staff_service.create_staff_member(
            session,
            StaffCreate(
                email=EMAIL,
                password=PASSWORD,
                first_name="Dev",
                last_name="Admin",
                role=UserRole.ADMIN,
                account_id=account.id,
            ),
        )
        await template_service.ensure_default_templates(session, account_id=account.id)
        print(f"Created account {ACCOUNT_SLUG} and admin {EMAIL} / {PASSWORD}")


if __name__ == "__main__":
    asyncio.run(main())
