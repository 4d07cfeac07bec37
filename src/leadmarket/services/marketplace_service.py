"""Lead marketplace: listings, browsing, and the purchase-and-unlock flow.

Purchase invariants:
- an agent holds at most one purchase per property (unique constraint);
- the balance debit is a guarded UPDATE, so concurrent purchases by the
  same agent cannot push the balance below zero;
- debit, purchase row, payment row and seller notification commit together
  or not at all.
"""

import logging
from dataclasses import dataclass
from datetime import timedelta

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from leadmarket.app.config import get_settings
from leadmarket.domain.enums import (
    LeadFlagStatus,
    LeadPurchaseStatus,
    NotificationType,
    PaymentMethod,
    PaymentStatus,
    PropertyStatus,
    UserRole,
    VerificationStatus,
)
from leadmarket.domain.models import (
    AgentProfile,
    LeadFlag,
    LeadPurchase,
    Payment,
    Property,
    Subscription,
    User,
)
from leadmarket.domain.schemas import LeadFlagRequest, LeadUpdate, PropertyCreate
from leadmarket.domain.timeutil import utcnow
from leadmarket.services.errors import (
    ConflictError,
    InsufficientBalanceError,
    NotFoundError,
    PermissionDeniedError,
    ValidationFailed,
)
from leadmarket.services.notification_service import NotificationService

logger = logging.getLogger(__name__)

MASK = "********"


@dataclass
class PropertyFilters:
    """Optional browse filters. ``"all"`` disables the type/location filter."""

    type: str | None = None
    location: str | None = None
    min_price: float | None = None
    max_price: float | None = None
    status: str | None = None


class MarketplaceService:
    """Seller listings and agent lead purchases."""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.notifications = NotificationService(db)

    # ------------------------------------------------------------------
    # Listings
    # ------------------------------------------------------------------

    async def create_listing(self, seller: User, data: PropertyCreate) -> Property:
        """Publish a listing as active and broadcast it to subscribed agents."""
        settings = get_settings()
        created_at = utcnow()
        prop = Property(
            seller_id=seller.id,
            type=data.type.value,
            location=data.location,
            address=data.address,
            price=data.price,
            size=data.size,
            description=data.description,
            photos=list(data.photos),
            status=PropertyStatus.ACTIVE.value,
            created_at=created_at,
            expires_at=created_at + timedelta(days=settings.listing_lifetime_days),
        )
        self.db.add(prop)
        await self.db.flush()

        # Broadcast to every subscriber; no location/type matching yet.
        for agent_id in await self._subscribed_agent_ids():
            await self.notifications.notify(
                user_id=agent_id,
                title="New Property Listing",
                message=(
                    f"A new {prop.type} property is available in {prop.location} "
                    f"for ${prop.price:,.2f}."
                ),
                type=NotificationType.NEW_PROPERTY,
                link_url=f"/agent/property/{prop.id}",
            )

        await self.db.commit()
        logger.info("Seller %s listed property %s in %s", seller.id, prop.id, prop.location)
        return prop

    async def _subscribed_agent_ids(self) -> list[int]:
        result = await self.db.execute(
            select(Subscription.agent_id)
            .where(
                Subscription.is_active.is_(True),
                Subscription.end_date > utcnow(),
            )
            .distinct()
        )
        return list(result.scalars().all())

    async def listings_for_seller(self, seller_id: int) -> list[Property]:
        result = await self.db.execute(
            select(Property)
            .where(Property.seller_id == seller_id)
            .order_by(Property.created_at.desc(), Property.id.desc())
        )
        return list(result.scalars().all())

    async def browse(self, filters: PropertyFilters) -> list[Property]:
        """Filtered listing browse: min price inclusive, max price exclusive."""
        query = select(Property)
        if filters.type and filters.type != "all":
            query = query.where(Property.type == filters.type)
        if filters.location and filters.location != "all":
            query = query.where(Property.location == filters.location)
        if filters.min_price is not None:
            query = query.where(Property.price >= filters.min_price)
        if filters.max_price is not None:
            query = query.where(Property.price < filters.max_price)
        if filters.status:
            query = query.where(Property.status == filters.status)
        result = await self.db.execute(
            query.order_by(Property.created_at.desc(), Property.id.desc())
        )
        return list(result.scalars().all())

    async def get_property(self, property_id: int) -> Property:
        result = await self.db.execute(
            select(Property)
            .options(selectinload(Property.seller))
            .where(Property.id == property_id)
        )
        prop = result.scalar_one_or_none()
        if prop is None:
            raise NotFoundError("Property not found")
        return prop

    async def property_detail(self, property_id: int, viewer: User) -> dict:
        """Property with seller contact, masked unless the viewer may see it."""
        prop = await self.get_property(property_id)
        seller = prop.seller
        if seller is None:
            raise NotFoundError("Seller not found")

        purchased = False
        if viewer.role == UserRole.AGENT.value:
            purchased = await self._purchase_for(viewer.id, prop.id) is not None
        can_see_contact = (
            purchased
            or viewer.id == prop.seller_id
            or viewer.role == UserRole.ADMIN.value
        )

        return {
            "property": prop,
            "purchased": purchased,
            "seller": {
                "id": seller.id,
                "first_name": seller.first_name,
                "last_name": seller.last_name,
                "email": seller.email if can_see_contact else MASK,
                "phone": seller.phone if can_see_contact else MASK,
                "whatsapp_preferred": seller.whatsapp_preferred,
            },
        }

    # ------------------------------------------------------------------
    # Purchase
    # ------------------------------------------------------------------

    async def _purchase_for(self, agent_id: int, property_id: int) -> LeadPurchase | None:
        result = await self.db.execute(
            select(LeadPurchase).where(
                LeadPurchase.agent_id == agent_id,
                LeadPurchase.property_id == property_id,
            )
        )
        return result.scalar_one_or_none()

    async def debit_balance(self, agent_id: int, amount: float) -> AgentProfile:
        """Atomically subtract ``amount`` if the balance covers it."""
        result = await self.db.execute(
            update(AgentProfile)
            .where(
                AgentProfile.user_id == agent_id,
                AgentProfile.balance >= amount,
            )
            .values(balance=AgentProfile.balance - amount)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            raise InsufficientBalanceError()
        return await self._reload_profile(agent_id)

    async def credit_balance(self, agent_id: int, amount: float) -> AgentProfile | None:
        result = await self.db.execute(
            update(AgentProfile)
            .where(AgentProfile.user_id == agent_id)
            .values(balance=AgentProfile.balance + amount)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            return None
        return await self._reload_profile(agent_id)

    async def _reload_profile(self, agent_id: int) -> AgentProfile:
        result = await self.db.execute(
            select(AgentProfile)
            .where(AgentProfile.user_id == agent_id)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one()

    async def purchase_lead(
        self,
        agent: User,
        property_id: int | None,
        price: float | None,
    ) -> LeadPurchase:
        """Debit the agent and unlock the property's seller contact."""
        if not property_id or not price:
            raise ValidationFailed("Property ID and price are required")

        prop = await self.db.get(Property, property_id)
        if prop is None:
            raise NotFoundError("Property not found")
        if prop.status != PropertyStatus.ACTIVE.value:
            raise ConflictError("This lead is no longer available")

        if await self._purchase_for(agent.id, property_id) is not None:
            raise ConflictError("You have already purchased this lead")

        result = await self.db.execute(
            select(AgentProfile).where(AgentProfile.user_id == agent.id)
        )
        profile = result.scalar_one_or_none()
        if profile is None:
            raise NotFoundError("Agent profile not found")
        if profile.verification_status != VerificationStatus.APPROVED.value:
            raise PermissionDeniedError("Agent account is not verified")
        if profile.balance < price:
            raise InsufficientBalanceError()

        try:
            await self.debit_balance(agent.id, price)

            purchase = LeadPurchase(
                agent_id=agent.id,
                property_id=property_id,
                price=price,
                purchase_date=utcnow(),
                contacted=False,
                status=LeadPurchaseStatus.PENDING.value,
            )
            self.db.add(purchase)
            await self.db.flush()

            self.db.add(Payment(
                user_id=agent.id,
                amount=price,
                method=PaymentMethod.BALANCE.value,
                status=PaymentStatus.COMPLETED.value,
                description=f"Lead purchase for property #{property_id}",
                lead_purchase_id=purchase.id,
            ))

            await self.notifications.notify(
                user_id=prop.seller_id,
                title="Lead Purchased",
                message="An agent has purchased your property listing and will contact you soon.",
                type=NotificationType.LEAD_PURCHASE,
                link_url=f"/seller/property/{property_id}",
            )
            await self.db.commit()
        except IntegrityError:
            await self.db.rollback()
            raise ConflictError("You have already purchased this lead")
        except Exception:
            await self.db.rollback()
            raise

        logger.info(
            "Agent %s purchased lead for property %s at %.2f",
            purchase.agent_id, property_id, price,
        )
        return purchase

    # ------------------------------------------------------------------
    # Purchased leads
    # ------------------------------------------------------------------

    async def purchases_for_agent(self, agent_id: int) -> list[LeadPurchase]:
        result = await self.db.execute(
            select(LeadPurchase)
            .options(selectinload(LeadPurchase.property))
            .where(LeadPurchase.agent_id == agent_id)
            .order_by(LeadPurchase.purchase_date.desc(), LeadPurchase.id.desc())
        )
        return list(result.scalars().all())

    async def owned_purchase(self, purchase_id: int, agent: User) -> LeadPurchase:
        """Load a purchase, enforcing that ``agent`` owns it."""
        result = await self.db.execute(
            select(LeadPurchase)
            .options(selectinload(LeadPurchase.property))
            .where(LeadPurchase.id == purchase_id)
        )
        purchase = result.scalar_one_or_none()
        if purchase is None:
            raise NotFoundError("Lead not found")
        if purchase.agent_id != agent.id:
            raise PermissionDeniedError("Unauthorized")
        return purchase

    async def update_purchase(
        self, purchase_id: int, agent: User, data: LeadUpdate
    ) -> LeadPurchase:
        purchase = await self.owned_purchase(purchase_id, agent)
        changes = data.model_dump(exclude_unset=True)
        if "contacted" in changes and data.contacted is not None:
            purchase.contacted = data.contacted
        if "status" in changes and data.status is not None:
            purchase.status = data.status.value
        if "seller_rating" in changes:
            purchase.seller_rating = data.seller_rating
        if "feedback" in changes:
            purchase.feedback = data.feedback
        await self.db.commit()
        logger.info("Agent %s updated lead %s: %s", agent.id, purchase_id, sorted(changes))
        return purchase

    async def flag_purchase(
        self, purchase_id: int, agent: User, data: LeadFlagRequest
    ) -> LeadFlag:
        """Report a purchased lead to moderators."""
        purchase = await self.owned_purchase(purchase_id, agent)

        result = await self.db.execute(
            select(LeadFlag).where(
                LeadFlag.property_id == purchase.property_id,
                LeadFlag.reporter_id == agent.id,
                LeadFlag.status == LeadFlagStatus.OPEN.value,
            )
        )
        if result.scalar_one_or_none() is not None:
            raise ConflictError("You have already flagged this lead")

        flag = LeadFlag(
            property_id=purchase.property_id,
            lead_purchase_id=purchase.id,
            reporter_id=agent.id,
            reason=data.reason,
            note=data.note,
            status=LeadFlagStatus.OPEN.value,
        )
        self.db.add(flag)
        await self.db.flush()

        await self.notifications.notify_admins(
            title="Lead Flagged",
            message=f"Property #{purchase.property_id} was flagged: {data.reason}",
            type=NotificationType.LEAD_FLAGGED,
            link_url="/admin/leads",
        )
        await self.db.commit()
        logger.info("Agent %s flagged property %s (%s)", agent.id, purchase.property_id, data.reason)
        return flag
