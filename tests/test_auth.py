"""Tests for registration, login, sessions and the current-user endpoints."""

from sqlalchemy import select

from leadmarket.app.config import get_settings
from leadmarket.domain.enums import UserRole
from leadmarket.domain.models import AgentProfile, Notification, UserSession


def _registration(**overrides) -> dict:
    body = {
        "username": "tendai",
        "password": "seller123",
        "confirmPassword": "seller123",
        "email": "tendai@example.com",
        "firstName": "Tendai",
        "lastName": "Moyo",
        "phone": "+263772345678",
        "role": "seller",
    }
    body.update(overrides)
    return body


class TestRegister:
    async def test_seller_registration_logs_in(self, client):
        resp = await client.post("/api/register", json=_registration())
        assert resp.status_code == 201
        data = resp.json()
        assert data["username"] == "tendai"
        assert data["firstName"] == "Tendai"
        assert data["role"] == "seller"
        assert "passwordHash" not in data
        assert get_settings().session_cookie_name in resp.cookies

        me = await client.get("/api/user")
        assert me.status_code == 200
        assert me.json()["id"] == data["id"]

    async def test_agent_registration_creates_pending_profile_and_alerts_admins(
        self, client, db_session, make_user
    ):
        admin = await make_user("admin", UserRole.ADMIN)
        resp = await client.post("/api/register", json=_registration(
            username="faith",
            email="faith@example.com",
            firstName="Faith",
            lastName="Ncube",
            role="agent",
            agencyName="Ncube Realty",
            licenseDocument="license.pdf",
        ))
        assert resp.status_code == 201

        profile = (await db_session.execute(
            select(AgentProfile).where(AgentProfile.user_id == resp.json()["id"])
        )).scalar_one()
        assert profile.verification_status == "pending"
        assert profile.balance == 0.0

        notes = (await db_session.execute(
            select(Notification).where(Notification.user_id == admin.id)
        )).scalars().all()
        assert [n.type for n in notes] == ["agent_verification"]

        status_resp = await client.get("/api/user/agent-status")
        assert status_resp.json() == {"status": "pending"}

    async def test_agent_without_agency_is_rejected(self, client):
        resp = await client.post("/api/register", json=_registration(role="agent"))
        assert resp.status_code == 400
        assert resp.json()["detail"] == "Validation error"

    async def test_password_mismatch_is_rejected(self, client):
        resp = await client.post("/api/register", json=_registration(confirmPassword="other"))
        assert resp.status_code == 400

    async def test_admin_cannot_self_register(self, client):
        resp = await client.post("/api/register", json=_registration(role="admin"))
        assert resp.status_code == 400

    async def test_short_phone_is_rejected(self, client):
        resp = await client.post("/api/register", json=_registration(phone="123"))
        assert resp.status_code == 400
        locs = [e["loc"] for e in resp.json()["errors"]]
        assert ["body", "phone"] in locs

    async def test_duplicate_username(self, client, make_user):
        await make_user("tendai")
        resp = await client.post("/api/register", json=_registration(email="new@example.com"))
        assert resp.status_code == 400
        assert resp.json()["detail"] == "Username already exists"

    async def test_duplicate_email(self, client, make_user):
        await make_user("someone", email="tendai@example.com")
        resp = await client.post("/api/register", json=_registration())
        assert resp.status_code == 400
        assert resp.json()["detail"] == "Email already exists"


class TestLogin:
    async def test_login_sets_session(self, client, make_user):
        await make_user("tendai")
        resp = await client.post("/api/login", json={"username": "tendai", "password": "secret123"})
        assert resp.status_code == 200
        assert resp.json()["username"] == "tendai"
        assert (await client.get("/api/user")).status_code == 200

    async def test_wrong_password(self, client, make_user):
        await make_user("tendai")
        resp = await client.post("/api/login", json={"username": "tendai", "password": "nope"})
        assert resp.status_code == 401
        assert resp.json()["detail"] == "Invalid username or password"

    async def test_unknown_user_gets_same_error(self, client):
        resp = await client.post("/api/login", json={"username": "ghost", "password": "nope"})
        assert resp.status_code == 401
        assert resp.json()["detail"] == "Invalid username or password"

    async def test_logout_revokes_session(self, client, db_session, make_user, login):
        await make_user("tendai")
        await login("tendai")
        assert (await db_session.execute(select(UserSession))).scalars().all()

        resp = await client.post("/api/logout")
        assert resp.json() == {"ok": True}
        assert (await db_session.execute(select(UserSession))).scalars().all() == []

        client.cookies.clear()
        assert (await client.get("/api/user")).status_code == 401


class TestCurrentUser:
    async def test_requires_session(self, client):
        resp = await client.get("/api/user")
        assert resp.status_code == 401
        assert resp.json()["detail"] == "Not authenticated"

    async def test_forged_cookie_is_rejected(self, client):
        client.cookies.set(get_settings().session_cookie_name, "not-a-token")
        assert (await client.get("/api/user")).status_code == 401

    async def test_update_profile(self, client, make_user, login):
        await make_user("tendai")
        await login("tendai")
        resp = await client.patch("/api/user", json={"phone": "+263779999999", "whatsappPreferred": True})
        assert resp.status_code == 200
        assert resp.json()["phone"] == "+263779999999"
        assert resp.json()["whatsappPreferred"] is True

    async def test_agent_status_for_non_agent(self, client, make_user, login):
        await make_user("tendai")
        await login("tendai")
        resp = await client.get("/api/user/agent-status")
        assert resp.status_code == 403


async def test_health(client):
    resp = await client.get("/health")
    assert resp.json() == {"status": "ok", "service": "leadmarket"}
