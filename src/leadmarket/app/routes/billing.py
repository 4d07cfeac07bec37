"""Subscription and checkout routes for agents."""

import logging

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from leadmarket.app.config import get_settings
from leadmarket.app.routes.auth import http_error, require_role
from leadmarket.domain.enums import UserRole
from leadmarket.domain.models import User
from leadmarket.domain.schemas import (
    BillingConfigResponse,
    CheckoutRequest,
    CheckoutResponse,
    SubscriptionRequest,
    SubscriptionResponse,
)
from leadmarket.infra.database import get_db
from leadmarket.services.billing_service import BillingService
from leadmarket.services.errors import MarketplaceError

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["billing"])

agent_only = require_role(UserRole.AGENT)


@router.post("/subscriptions", response_model=SubscriptionResponse, status_code=201)
async def create_or_update_subscription(
    data: SubscriptionRequest,
    user: User = Depends(agent_only),
    db: AsyncSession = Depends(get_db),
):
    subscription = await BillingService(db).set_subscription(user, data.type, data.price, data.months)
    return SubscriptionResponse.model_validate(subscription)


@router.get("/subscriptions/current", response_model=SubscriptionResponse)
async def current_subscription(
    user: User = Depends(agent_only),
    db: AsyncSession = Depends(get_db),
):
    subscription = await BillingService(db).current_subscription(user.id)
    if subscription is None:
        raise HTTPException(status_code=404, detail="No active subscription found")
    return SubscriptionResponse.model_validate(subscription)


@router.post("/create-subscription", response_model=CheckoutResponse)
async def create_subscription_checkout(
    data: CheckoutRequest,
    user: User = Depends(agent_only),
    db: AsyncSession = Depends(get_db),
):
    """Start a card payment for a plan; the client completes it with the secret."""
    try:
        client_secret = await BillingService(db).start_checkout(
            user, data.plan_type, data.price, data.months
        )
    except MarketplaceError as e:
        raise http_error(e)
    return CheckoutResponse(client_secret=client_secret)


@router.get("/billing/config", response_model=BillingConfigResponse)
async def billing_config():
    return BillingConfigResponse(publishable_key=get_settings().stripe_publishable_key)
