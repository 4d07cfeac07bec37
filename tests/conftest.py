"""Shared test infrastructure for the LeadMarket test suite.

Provides:
- db_session: async SQLite in-memory session with all tables created
- client: httpx AsyncClient bound to the app, sharing db_session
- make_user / make_agent / make_property: row factories
- login: helper that signs a user in and keeps the session cookie
"""

from datetime import timedelta

import httpx
import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from leadmarket.app.main import app
from leadmarket.domain.enums import PropertyStatus, UserRole, VerificationStatus
from leadmarket.domain.models import AgentProfile, Property, User
from leadmarket.domain.timeutil import utcnow
from leadmarket.infra.database import Base, engine_options, get_db, init_db
from leadmarket.services.auth_service import hash_password

DEFAULT_PASSWORD = "secret123"


# ---------------------------------------------------------------------------
# Database session fixture
# ---------------------------------------------------------------------------

@pytest.fixture
async def db_session():
    """Async SQLite in-memory session with all tables created.

    Creates a fresh engine + tables for each test, yields a session,
    then rolls back and tears down.
    """
    url = "sqlite+aiosqlite://"
    engine = create_async_engine(url, poolclass=StaticPool, **engine_options(url))

    await init_db(engine)

    session_factory = async_sessionmaker(
        engine, class_=AsyncSession, expire_on_commit=False,
    )

    async with session_factory() as session:
        yield session
        await session.rollback()

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


# ---------------------------------------------------------------------------
# HTTP client
# ---------------------------------------------------------------------------

@pytest.fixture
async def client(db_session):
    """AsyncClient against the ASGI app; every request uses db_session."""

    async def _override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = _override_get_db
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://testserver") as ac:
        yield ac
    app.dependency_overrides.clear()


@pytest.fixture
def login(client):
    """Sign in through the API; the cookie stays on the client.

    Usage:
        await login("faith")
    """
    async def _login(username: str, password: str = DEFAULT_PASSWORD) -> httpx.Response:
        client.cookies.clear()
        resp = await client.post("/api/login", json={"username": username, "password": password})
        assert resp.status_code == 200, resp.text
        return resp

    return _login


# ---------------------------------------------------------------------------
# Row factories
# ---------------------------------------------------------------------------

@pytest.fixture
def make_user(db_session):
    """Factory for User rows.

    Usage:
        seller = await make_user("tendai", UserRole.SELLER, first_name="Tendai")
    """
    async def _factory(
        username: str,
        role: UserRole = UserRole.SELLER,
        password: str = DEFAULT_PASSWORD,
        **overrides,
    ) -> User:
        fields = {
            "email": f"{username}@example.com",
            "first_name": username.capitalize(),
            "last_name": "Test",
            "phone": "+263770000000",
            "whatsapp_preferred": False,
        }
        fields.update(overrides)
        user = User(
            username=username,
            password_hash=hash_password(password),
            role=role.value,
            **fields,
        )
        db_session.add(user)
        await db_session.commit()
        return user

    return _factory


@pytest.fixture
def make_agent(db_session, make_user):
    """Factory for an agent User plus AgentProfile.

    Returns (user, profile).
    """
    async def _factory(
        username: str = "faith",
        balance: float = 0.0,
        status: VerificationStatus = VerificationStatus.APPROVED,
        **overrides,
    ) -> tuple[User, AgentProfile]:
        user = await make_user(username, UserRole.AGENT, **overrides)
        profile = AgentProfile(
            user_id=user.id,
            agency_name=f"{username.capitalize()} Realty",
            license_document="license.pdf",
            verification_status=status.value,
            balance=balance,
        )
        db_session.add(profile)
        await db_session.commit()
        return user, profile

    return _factory


@pytest.fixture
def make_property(db_session):
    """Factory for Property rows owned by ``seller``."""
    async def _factory(seller: User, **overrides) -> Property:
        now = utcnow()
        fields = {
            "type": "residential",
            "location": "harare",
            "address": "12 Borrowdale Road",
            "price": 120000.0,
            "size": 350.0,
            "description": "3 bedroom house with a large garden.",
            "photos": [],
            "status": PropertyStatus.ACTIVE.value,
            "created_at": now,
            "expires_at": now + timedelta(days=30),
        }
        fields.update(overrides)
        prop = Property(seller_id=seller.id, **fields)
        db_session.add(prop)
        await db_session.commit()
        return prop

    return _factory
