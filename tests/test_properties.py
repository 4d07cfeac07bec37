"""Tests for listing creation, browse filters and contact masking."""

from datetime import datetime, timedelta

import pytest
from sqlalchemy import select

from leadmarket.domain.enums import UserRole
from leadmarket.domain.models import LeadPurchase, Notification, Subscription
from leadmarket.domain.timeutil import utcnow
from leadmarket.services.marketplace_service import MASK


LISTING = {
    "type": "residential",
    "location": "harare",
    "address": "12 Borrowdale Road",
    "price": 120000,
    "size": 350,
    "description": "3 bedroom house with a large garden.",
}


class TestCreateListing:
    async def test_listing_is_active_for_thirty_days(self, client, make_user, login):
        await make_user("tendai", UserRole.SELLER, first_name="Tendai", last_name="Moyo")
        await login("tendai")

        resp = await client.post("/api/properties", json=LISTING)
        assert resp.status_code == 201
        data = resp.json()
        assert data["status"] == "active"
        assert data["location"] == "harare"
        created = datetime.fromisoformat(data["createdAt"])
        expires = datetime.fromisoformat(data["expiresAt"])
        assert expires - created == timedelta(days=30)

        mine = await client.get("/api/properties/my-listings")
        assert [p["id"] for p in mine.json()] == [data["id"]]

    async def test_agents_cannot_list(self, client, make_agent, login):
        await make_agent("faith")
        await login("faith")
        resp = await client.post("/api/properties", json=LISTING)
        assert resp.status_code == 403

    async def test_short_description_rejected(self, client, make_user, login):
        await make_user("tendai")
        await login("tendai")
        resp = await client.post("/api/properties", json={**LISTING, "description": "tiny"})
        assert resp.status_code == 400

    async def test_non_positive_price_rejected(self, client, make_user, login):
        await make_user("tendai")
        await login("tendai")
        resp = await client.post("/api/properties", json={**LISTING, "price": 0})
        assert resp.status_code == 400

    async def test_subscribed_agents_are_notified(
        self, client, db_session, make_user, make_agent, login
    ):
        subscribed, _ = await make_agent("faith")
        lapsed, _ = await make_agent("rudo")
        now = utcnow()
        db_session.add_all([
            Subscription(agent_id=subscribed.id, type="unlimited", price=50,
                         start_date=now, end_date=now + timedelta(days=30)),
            Subscription(agent_id=lapsed.id, type="unlimited", price=50,
                         start_date=now - timedelta(days=60), end_date=now - timedelta(days=30)),
        ])
        await db_session.commit()

        await make_user("tendai")
        await login("tendai")
        assert (await client.post("/api/properties", json=LISTING)).status_code == 201

        notes = (await db_session.execute(
            select(Notification).where(Notification.type == "new_property")
        )).scalars().all()
        assert [n.user_id for n in notes] == [subscribed.id]


class TestBrowse:
    @pytest.fixture
    async def listings(self, make_user, make_property):
        seller = await make_user("tendai")
        return [
            await make_property(seller, type="residential", location="harare", price=100),
            await make_property(seller, type="land", location="bulawayo", price=200),
            await make_property(seller, type="residential", location="bulawayo", price=300),
        ]

    async def test_sellers_cannot_browse(self, client, listings, login):
        await login("tendai")
        assert (await client.get("/api/properties")).status_code == 403

    async def test_filter_by_type_and_location(self, client, listings, make_agent, login):
        await make_agent("faith")
        await login("faith")
        resp = await client.get("/api/properties", params={"type": "residential", "location": "bulawayo"})
        assert [p["id"] for p in resp.json()] == [listings[2].id]

    async def test_all_disables_filters(self, client, listings, make_agent, login):
        await make_agent("faith")
        await login("faith")
        resp = await client.get("/api/properties", params={"type": "all", "location": "all"})
        assert len(resp.json()) == 3

    async def test_price_range_excludes_upper_bound(self, client, listings, make_agent, login):
        await make_agent("faith")
        await login("faith")
        resp = await client.get("/api/properties", params={"minPrice": 100, "maxPrice": 300})
        assert sorted(p["price"] for p in resp.json()) == [100, 200]

    async def test_newest_first(self, client, db_session, listings, make_agent, login):
        listings[0].created_at = utcnow() + timedelta(minutes=5)
        await db_session.commit()
        await make_agent("faith")
        await login("faith")
        resp = await client.get("/api/properties")
        assert resp.json()[0]["id"] == listings[0].id


class TestDetail:
    @pytest.fixture
    async def listing(self, make_user, make_property):
        seller = await make_user(
            "tendai", first_name="Tendai", last_name="Moyo",
            email="tendai@example.com", phone="+263772345678",
        )
        return await make_property(seller)

    async def test_contact_masked_before_purchase(self, client, listing, make_agent, login):
        await make_agent("faith")
        await login("faith")
        resp = await client.get(f"/api/properties/{listing.id}")
        assert resp.status_code == 200
        data = resp.json()
        assert data["purchased"] is False
        assert data["seller"]["firstName"] == "Tendai"
        assert data["seller"]["email"] == MASK
        assert data["seller"]["phone"] == MASK

    async def test_contact_visible_after_purchase(
        self, client, db_session, listing, make_agent, login
    ):
        agent, _ = await make_agent("faith")
        db_session.add(LeadPurchase(agent_id=agent.id, property_id=listing.id, price=30))
        await db_session.commit()
        await login("faith")
        data = (await client.get(f"/api/properties/{listing.id}")).json()
        assert data["purchased"] is True
        assert data["seller"]["email"] == "tendai@example.com"
        assert data["seller"]["phone"] == "+263772345678"

    async def test_seller_sees_own_contact(self, client, listing, login):
        await login("tendai")
        data = (await client.get(f"/api/properties/{listing.id}")).json()
        assert data["seller"]["email"] == "tendai@example.com"

    async def test_missing_property(self, client, make_agent, login):
        await make_agent("faith")
        await login("faith")
        resp = await client.get("/api/properties/999")
        assert resp.status_code == 404
        assert resp.json()["detail"] == "Property not found"
