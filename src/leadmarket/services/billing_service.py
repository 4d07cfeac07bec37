"""Billing bridge: subscriptions, balance top-ups and Stripe webhook reconciliation."""

import logging

from dateutil.relativedelta import relativedelta
import stripe
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from leadmarket.app.config import get_settings
from leadmarket.domain.enums import (
    NotificationType,
    PaymentMethod,
    PaymentStatus,
    SubscriptionType,
    UserRole,
)
from leadmarket.domain.models import Payment, ProcessedWebhookEvent, Subscription, User
from leadmarket.domain.timeutil import utcnow
from leadmarket.infra import stripe_client
from leadmarket.services.errors import PaymentProviderError, PaymentProviderUnavailable
from leadmarket.services.marketplace_service import MarketplaceService
from leadmarket.services.notification_service import NotificationService

logger = logging.getLogger(__name__)

PAYMENT_SUCCEEDED = "payment_intent.succeeded"
PAYMENT_FAILED = "payment_intent.payment_failed"


def plan_description(plan_type: str, months: int) -> str:
    return f"{plan_type} subscription ({months} month{'s' if months > 1 else ''})"


class BillingService:
    """Subscription lifecycle and payment records for agents."""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.notifications = NotificationService(db)

    # ------------------------------------------------------------------
    # Subscriptions
    # ------------------------------------------------------------------

    async def current_subscription(self, agent_id: int) -> Subscription | None:
        result = await self.db.execute(
            select(Subscription)
            .where(
                Subscription.agent_id == agent_id,
                Subscription.is_active.is_(True),
            )
            .order_by(Subscription.end_date.desc(), Subscription.id.desc())
            .limit(1)
        )
        return result.scalar_one_or_none()

    async def set_subscription(
        self, agent: User, plan_type: SubscriptionType, price: float, months: int
    ) -> Subscription:
        """Create or replace the agent's plan, running ``months`` from now."""
        now = utcnow()
        end_date = now + relativedelta(months=months)
        subscription = await self.current_subscription(agent.id)
        if subscription is not None:
            subscription.type = plan_type.value
            subscription.price = price
            subscription.end_date = end_date
            subscription.is_active = True
        else:
            subscription = Subscription(
                agent_id=agent.id,
                type=plan_type.value,
                price=price,
                start_date=now,
                end_date=end_date,
                is_active=True,
                auto_renew=True,
            )
            self.db.add(subscription)
        await self.db.commit()
        logger.info("Agent %s set %s plan until %s", agent.id, plan_type.value, end_date)
        return subscription

    async def extend_subscription(
        self, agent_id: int, plan_type: str, price: float, months: int
    ) -> Subscription:
        """Add ``months`` to the active plan, or start one. Does not commit."""
        now = utcnow()
        subscription = await self.current_subscription(agent_id)
        if subscription is not None:
            base = subscription.end_date if subscription.end_date > now else now
            subscription.type = plan_type
            subscription.price = price
            subscription.end_date = base + relativedelta(months=months)
            subscription.is_active = True
        else:
            subscription = Subscription(
                agent_id=agent_id,
                type=plan_type,
                price=price,
                start_date=now,
                end_date=now + relativedelta(months=months),
                is_active=True,
                auto_renew=True,
            )
            self.db.add(subscription)
        await self.db.flush()
        return subscription

    # ------------------------------------------------------------------
    # Checkout
    # ------------------------------------------------------------------

    async def start_checkout(
        self, agent: User, plan_type: SubscriptionType, price: float, months: int
    ) -> str:
        """Create a PaymentIntent for a plan and return its client secret."""
        if not stripe_client.is_configured():
            raise PaymentProviderUnavailable("Payment processor is not configured")

        metadata = {
            "userId": str(agent.id),
            "planType": plan_type.value,
            "months": str(months),
            "description": plan_description(plan_type.value, months),
        }
        try:
            intent = await stripe_client.create_payment_intent(
                amount_cents=round(price * 100),
                currency=get_settings().stripe_currency,
                metadata=metadata,
            )
        except stripe.StripeError as e:
            logger.error("Stripe error creating PaymentIntent for agent %s: %s", agent.id, e)
            raise PaymentProviderError(e.user_message or "Failed to create payment intent")
        return intent["client_secret"]

    # ------------------------------------------------------------------
    # Webhooks
    # ------------------------------------------------------------------

    async def handle_event(self, event: dict) -> bool:
        """Apply a verified processor event exactly once.

        Returns True if the event id was already processed (nothing changed).
        """
        event_id = event["id"]
        event_type = event["type"]

        existing = await self.db.get(ProcessedWebhookEvent, event_id)
        if existing is not None:
            logger.info("Ignoring replayed webhook event %s (%s)", event_id, event_type)
            return True

        self.db.add(ProcessedWebhookEvent(event_id=event_id, event_type=event_type))
        try:
            await self.db.flush()
        except IntegrityError:
            # A concurrent delivery of the same event claimed the id first
            await self.db.rollback()
            logger.info("Webhook event %s was processed concurrently", event_id)
            return True

        intent = (event.get("data") or {}).get("object") or {}
        if event_type == PAYMENT_SUCCEEDED:
            await self._apply_payment_succeeded(intent)
        elif event_type == PAYMENT_FAILED:
            logger.warning(
                "PaymentIntent %s failed for user %s",
                intent.get("id"), (intent.get("metadata") or {}).get("userId"),
            )
        else:
            logger.info("Unhandled webhook event type %s", event_type)

        await self.db.commit()
        return False

    async def _apply_payment_succeeded(self, intent: dict) -> None:
        metadata = intent.get("metadata") or {}
        user_id = metadata.get("userId")
        plan_type = metadata.get("planType")
        months = metadata.get("months")
        if not (user_id and plan_type and months):
            logger.warning("PaymentIntent %s has no subscription metadata", intent.get("id"))
            return

        try:
            user_id, months = int(user_id), int(months)
            plan_type = SubscriptionType(plan_type).value
        except ValueError:
            logger.warning("PaymentIntent %s has malformed metadata: %s", intent.get("id"), metadata)
            return

        user = await self.db.get(User, user_id)
        if user is None or user.role != UserRole.AGENT.value:
            logger.warning("PaymentIntent %s references non-agent user %s", intent.get("id"), user_id)
            return

        amount = (intent.get("amount") or 0) / 100
        subscription = await self.extend_subscription(user_id, plan_type, amount, months)

        self.db.add(Payment(
            user_id=user_id,
            amount=amount,
            method=PaymentMethod.STRIPE.value,
            status=PaymentStatus.COMPLETED.value,
            reference_id=intent.get("id"),
            description=metadata.get("description") or f"Subscription payment: {plan_type}",
            subscription_id=subscription.id,
        ))

        await self.notifications.notify(
            user_id=user_id,
            title="Subscription Activated",
            message=(
                f"Your {plan_type.replace('_', ' ')} subscription has been activated "
                f"and is valid until {subscription.end_date:%Y-%m-%d}."
            ),
            type=NotificationType.SUBSCRIPTION_ACTIVATED,
        )
        logger.info(
            "Agent %s subscription %s extended to %s", user_id, subscription.id, subscription.end_date
        )

    # ------------------------------------------------------------------
    # Payments
    # ------------------------------------------------------------------

    async def top_up(
        self, user: User, amount: float, method: PaymentMethod, description: str | None
    ) -> Payment:
        """Record a completed payment; agents have their balance credited."""
        payment = Payment(
            user_id=user.id,
            amount=amount,
            method=method.value,
            status=PaymentStatus.COMPLETED.value,
            description=description or "Account top-up",
        )
        self.db.add(payment)
        await self.db.flush()

        if user.role == UserRole.AGENT.value:
            profile = await MarketplaceService(self.db).credit_balance(user.id, amount)
            if profile is None:
                logger.warning("Top-up by agent %s without a profile; balance not credited", user.id)

        await self.db.commit()
        logger.info("User %s topped up %.2f via %s", user.id, amount, method.value)
        return payment

    async def payment_history(self, user_id: int) -> list[Payment]:
        result = await self.db.execute(
            select(Payment)
            .where(Payment.user_id == user_id)
            .order_by(Payment.created_at.desc(), Payment.id.desc())
        )
        return list(result.scalars().all())
