"""Admin moderation: agent verification, flagged leads and platform statistics."""

import logging

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from leadmarket.domain.enums import (
    LeadFlagStatus,
    NotificationType,
    PaymentMethod,
    PaymentStatus,
    PropertyStatus,
    VerificationStatus,
)
from leadmarket.domain.models import (
    AgentProfile,
    LeadFlag,
    LeadPurchase,
    Payment,
    Property,
    User,
)
from leadmarket.domain.timeutil import utcnow
from leadmarket.services.errors import NotFoundError
from leadmarket.services.notification_service import NotificationService
from leadmarket.services.state_machine import (
    validate_property_transition,
    validate_verification_transition,
)

logger = logging.getLogger(__name__)

# Top-ups are excluded: that money is counted when spent from the balance
REVENUE_METHODS = (PaymentMethod.STRIPE.value, PaymentMethod.BALANCE.value)


class ModerationService:
    """Single-step admin decisions over agents and listings."""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.notifications = NotificationService(db)

    # ------------------------------------------------------------------
    # Agent verification
    # ------------------------------------------------------------------

    async def pending_agents(self) -> list[AgentProfile]:
        result = await self.db.execute(
            select(AgentProfile)
            .options(selectinload(AgentProfile.user))
            .where(AgentProfile.verification_status == VerificationStatus.PENDING.value)
            .order_by(AgentProfile.id.desc())
        )
        return list(result.scalars().all())

    async def decide_verification(
        self,
        agent_user_id: int,
        status: VerificationStatus,
        note: str | None,
        admin: User,
    ) -> AgentProfile:
        """Approve or reject a pending agent and tell them the outcome."""
        result = await self.db.execute(
            select(AgentProfile).where(AgentProfile.user_id == agent_user_id)
        )
        profile = result.scalar_one_or_none()
        if profile is None:
            raise NotFoundError("Agent profile not found")

        target = validate_verification_transition(profile.verification_status, status.value)
        profile.verification_status = target.value
        profile.verification_date = utcnow()
        profile.verification_note = note or ""

        if target == VerificationStatus.APPROVED:
            title = "Account Verification Approved"
            message = "Your agent account has been verified. You can now purchase leads."
        else:
            title = "Account Verification Rejected"
            message = (
                "Your agent account verification was rejected. "
                f"Reason: {note or 'No reason provided'}"
            )
        await self.notifications.notify(
            user_id=agent_user_id,
            title=title,
            message=message,
            type=NotificationType.VERIFICATION_UPDATE,
        )
        await self.db.commit()
        logger.info("Admin %s %s agent %s", admin.id, target.value, agent_user_id)
        return profile

    # ------------------------------------------------------------------
    # Flagged leads
    # ------------------------------------------------------------------

    async def open_flags(self) -> list[LeadFlag]:
        result = await self.db.execute(
            select(LeadFlag)
            .options(
                selectinload(LeadFlag.property).selectinload(Property.seller),
                selectinload(LeadFlag.reporter),
            )
            .where(LeadFlag.status == LeadFlagStatus.OPEN.value)
            .order_by(LeadFlag.created_at.desc(), LeadFlag.id.desc())
        )
        return list(result.scalars().all())

    async def _resolve_flags(
        self, property_id: int, status: LeadFlagStatus, admin: User, note: str | None
    ) -> int:
        result = await self.db.execute(
            update(LeadFlag)
            .where(
                LeadFlag.property_id == property_id,
                LeadFlag.status == LeadFlagStatus.OPEN.value,
            )
            .values(
                status=status.value,
                resolved_at=utcnow(),
                resolved_by=admin.id,
                resolution_note=note,
            )
        )
        return result.rowcount or 0

    async def _get_property(self, property_id: int) -> Property:
        prop = await self.db.get(Property, property_id)
        if prop is None:
            raise NotFoundError("Property not found")
        return prop

    async def approve_lead(self, property_id: int, admin: User, note: str | None = None) -> Property:
        """Dismiss open flags; the listing stays as it is."""
        prop = await self._get_property(property_id)
        resolved = await self._resolve_flags(property_id, LeadFlagStatus.APPROVED, admin, note)
        await self.db.commit()
        logger.info("Admin %s approved property %s (%d flags cleared)", admin.id, property_id, resolved)
        return prop

    async def remove_lead(self, property_id: int, reason: str, admin: User) -> Property:
        """Archive a listing with the admin's reason and notify the seller."""
        prop = await self._get_property(property_id)
        target = validate_property_transition(prop.status, PropertyStatus.ARCHIVED.value)
        prop.status = target.value
        prop.removal_reason = reason
        await self._resolve_flags(property_id, LeadFlagStatus.REMOVED, admin, reason)

        await self.notifications.notify(
            user_id=prop.seller_id,
            title="Listing Removed",
            message=f"Your property listing #{prop.id} was removed by an administrator. Reason: {reason}",
            type=NotificationType.LEAD_REMOVED,
            link_url=f"/seller/property/{prop.id}",
        )
        await self.db.commit()
        logger.info("Admin %s removed property %s: %s", admin.id, property_id, reason)
        return prop

    async def set_property_status(
        self, property_id: int, status: PropertyStatus, admin: User
    ) -> Property:
        prop = await self._get_property(property_id)
        target = validate_property_transition(prop.status, status.value)
        prop.status = target.value
        await self.db.commit()
        logger.info("Admin %s moved property %s to %s", admin.id, property_id, target.value)
        return prop

    # ------------------------------------------------------------------
    # Stats
    # ------------------------------------------------------------------

    async def stats(self) -> dict:
        pending_agents = await self.db.scalar(
            select(func.count())
            .select_from(AgentProfile)
            .where(AgentProfile.verification_status == VerificationStatus.PENDING.value)
        )
        active_leads = await self.db.scalar(
            select(func.count())
            .select_from(Property)
            .where(Property.status == PropertyStatus.ACTIVE.value)
        )
        lead_purchases = await self.db.scalar(select(func.count()).select_from(LeadPurchase))
        total_revenue = await self.db.scalar(
            select(func.coalesce(func.sum(Payment.amount), 0.0))
            .where(
                Payment.status == PaymentStatus.COMPLETED.value,
                Payment.method.in_(REVENUE_METHODS),
            )
        )
        flagged_leads = await self.db.scalar(
            select(func.count(func.distinct(LeadFlag.property_id)))
            .where(LeadFlag.status == LeadFlagStatus.OPEN.value)
        )
        return {
            "pending_agents": pending_agents or 0,
            "active_leads": active_leads or 0,
            "lead_purchases": lead_purchases or 0,
            "total_revenue": round(float(total_revenue or 0.0), 2),
            "flagged_leads": flagged_leads or 0,
        }
