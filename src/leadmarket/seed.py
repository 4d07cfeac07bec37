"""Demo data: an admin, a seller with a listing, and a verified agent.

Idempotent; existing usernames are left untouched.
"""

import asyncio
import logging
from datetime import timedelta

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from leadmarket.domain.enums import PropertyStatus, PropertyType, UserRole, VerificationStatus
from leadmarket.domain.models import AgentProfile, Property, User
from leadmarket.domain.timeutil import utcnow
from leadmarket.infra.database import async_session, init_db
from leadmarket.services.auth_service import hash_password

logger = logging.getLogger(__name__)

DEMO_USERS = [
    {
        "username": "admin",
        "password": "admin123",
        "email": "admin@leadmarket.example",
        "first_name": "System",
        "last_name": "Administrator",
        "phone": "+263771234567",
        "role": UserRole.ADMIN,
        "whatsapp_preferred": False,
    },
    {
        "username": "seller",
        "password": "seller123",
        "email": "seller@example.com",
        "first_name": "Tendai",
        "last_name": "Moyo",
        "phone": "+263772345678",
        "role": UserRole.SELLER,
        "whatsapp_preferred": True,
    },
    {
        "username": "agent",
        "password": "agent123",
        "email": "agent@example.com",
        "first_name": "Faith",
        "last_name": "Ncube",
        "phone": "+263773456789",
        "role": UserRole.AGENT,
        "whatsapp_preferred": False,
    },
]

DEMO_AGENT_BALANCE = 500.0


async def _get_or_create_user(db: AsyncSession, account: dict) -> tuple[User, bool]:
    result = await db.execute(select(User).where(User.username == account["username"]))
    user = result.scalar_one_or_none()
    if user is not None:
        return user, False
    user = User(
        username=account["username"],
        password_hash=hash_password(account["password"]),
        email=account["email"],
        first_name=account["first_name"],
        last_name=account["last_name"],
        phone=account["phone"],
        role=account["role"].value,
        whatsapp_preferred=account["whatsapp_preferred"],
    )
    db.add(user)
    await db.flush()
    return user, True


async def seed_demo_data(db: AsyncSession) -> dict[str, int]:
    """Create demo accounts and a listing. Returns a count of created rows."""
    created = {"users": 0, "agent_profiles": 0, "properties": 0}
    users = {}
    for account in DEMO_USERS:
        user, is_new = await _get_or_create_user(db, account)
        users[account["role"]] = user
        created["users"] += int(is_new)

    agent = users[UserRole.AGENT]
    profile = await db.scalar(select(AgentProfile).where(AgentProfile.user_id == agent.id))
    if profile is None:
        db.add(AgentProfile(
            user_id=agent.id,
            agency_name="Harare Realty",
            license_document="demo-license.pdf",
            verification_status=VerificationStatus.APPROVED.value,
            verification_date=utcnow(),
            balance=DEMO_AGENT_BALANCE,
        ))
        created["agent_profiles"] += 1

    seller = users[UserRole.SELLER]
    has_listing = await db.scalar(select(Property.id).where(Property.seller_id == seller.id).limit(1))
    if has_listing is None:
        now = utcnow()
        db.add(Property(
            seller_id=seller.id,
            type=PropertyType.RESIDENTIAL.value,
            location="harare",
            address="12 Borrowdale Road",
            price=120000,
            size=350,
            description="3 bedroom house with a large garden and borehole.",
            photos=[],
            status=PropertyStatus.ACTIVE.value,
            created_at=now,
            expires_at=now + timedelta(days=30),
        ))
        created["properties"] += 1

    await db.commit()
    return created


async def _main() -> None:
    await init_db()
    async with async_session() as db:
        created = await seed_demo_data(db)
    logger.info("Seed complete: %s", created)


def run() -> None:
    """Entry point for the ``leadmarket-seed`` console script."""
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    asyncio.run(_main())


if __name__ == "__main__":
    run()
