"""Background job that retires listings past their expiry date."""

import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from leadmarket.domain.enums import PropertyStatus
from leadmarket.domain.models import Property
from leadmarket.domain.timeutil import utcnow
from leadmarket.services.state_machine import validate_property_transition

logger = logging.getLogger(__name__)


async def expire_listings(db: AsyncSession) -> int:
    """Move active listings whose ``expires_at`` has passed to expired."""
    now = utcnow()
    result = await db.execute(
        select(Property).where(
            Property.status == PropertyStatus.ACTIVE.value,
            Property.expires_at.isnot(None),
            Property.expires_at <= now,
        )
    )
    listings = result.scalars().all()

    for prop in listings:
        prop.status = validate_property_transition(prop.status, PropertyStatus.EXPIRED.value).value
        logger.info("Listing %s expired (expires_at=%s)", prop.id, prop.expires_at)

    if listings:
        await db.commit()
    return len(listings)
