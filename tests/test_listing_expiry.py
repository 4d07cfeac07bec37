"""Tests for the listing expiry sweep."""

import asyncio
from datetime import timedelta
from unittest.mock import AsyncMock

from sqlalchemy import select

from leadmarket.app import main
from leadmarket.app.config import get_settings
from leadmarket.domain.models import Property
from leadmarket.domain.timeutil import utcnow
from leadmarket.services.listing_expiry import expire_listings


async def test_expires_only_past_due_active_listings(db_session, make_user, make_property):
    seller = await make_user("tendai")
    now = utcnow()
    overdue = await make_property(seller, expires_at=now - timedelta(minutes=1))
    fresh = await make_property(seller, expires_at=now + timedelta(days=5))
    archived = await make_property(seller, status="archived", expires_at=now - timedelta(days=1))

    assert await expire_listings(db_session) == 1

    statuses = dict((await db_session.execute(select(Property.id, Property.status))).all())
    assert statuses[overdue.id] == "expired"
    assert statuses[fresh.id] == "active"
    assert statuses[archived.id] == "archived"


async def test_nothing_to_do(db_session):
    assert await expire_listings(db_session) == 0


async def test_expired_listing_stays_browsable_by_status(
    client, db_session, make_user, make_property, make_agent, login
):
    seller = await make_user("tendai")
    await make_property(seller, expires_at=utcnow() - timedelta(days=1))
    await expire_listings(db_session)

    await make_agent("faith")
    await login("faith")
    active = (await client.get("/api/properties", params={"status": "active"})).json()
    expired = (await client.get("/api/properties", params={"status": "expired"})).json()
    assert active == []
    assert len(expired) == 1


async def test_lifespan_runs_and_stops_sweep(monkeypatch):
    sweep = AsyncMock(return_value=0)
    monkeypatch.setattr(main, "init_db", AsyncMock())
    monkeypatch.setattr(main, "expire_listings", sweep)
    monkeypatch.setattr(get_settings(), "listing_expiry_sweep_minutes", 5)

    async with main.lifespan(main.app):
        await asyncio.sleep(0.05)

    sweep.assert_awaited_once()
    running = [
        t for t in asyncio.all_tasks()
        if t.get_coro().__name__ == "listing_expiry_loop"
    ]
    assert running == []


async def test_lifespan_without_sweep(monkeypatch):
    sweep = AsyncMock(return_value=0)
    monkeypatch.setattr(main, "init_db", AsyncMock())
    monkeypatch.setattr(main, "expire_listings", sweep)
    monkeypatch.setattr(get_settings(), "listing_expiry_sweep_minutes", 0)

    async with main.lifespan(main.app):
        await asyncio.sleep(0)

    sweep.assert_not_awaited()
