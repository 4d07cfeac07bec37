"""Lead routes: purchase, purchase history, follow-up updates and flagging."""

import logging

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from leadmarket.app.routes.auth import http_error, require_role
from leadmarket.domain.enums import UserRole
from leadmarket.domain.models import User
from leadmarket.domain.schemas import (
    LeadFlagRequest,
    LeadFlagResponse,
    LeadPurchaseRequest,
    LeadPurchaseResponse,
    LeadPurchaseWithProperty,
    LeadUpdate,
)
from leadmarket.infra.database import get_db
from leadmarket.services.errors import MarketplaceError
from leadmarket.services.marketplace_service import MarketplaceService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/leads", tags=["leads"])

agent_only = require_role(UserRole.AGENT)


@router.post("/purchase", response_model=LeadPurchaseResponse, status_code=201)
async def purchase_lead(
    data: LeadPurchaseRequest,
    user: User = Depends(agent_only),
    db: AsyncSession = Depends(get_db),
):
    try:
        purchase = await MarketplaceService(db).purchase_lead(user, data.property_id, data.price)
    except MarketplaceError as e:
        raise http_error(e)
    return LeadPurchaseResponse.model_validate(purchase)


@router.get("/purchased", response_model=list[LeadPurchaseWithProperty])
async def purchased_leads(
    user: User = Depends(agent_only),
    db: AsyncSession = Depends(get_db),
):
    purchases = await MarketplaceService(db).purchases_for_agent(user.id)
    return [LeadPurchaseWithProperty.model_validate(p) for p in purchases]


@router.get("/purchased/{purchase_id}", response_model=LeadPurchaseWithProperty)
async def purchased_lead(
    purchase_id: int,
    user: User = Depends(agent_only),
    db: AsyncSession = Depends(get_db),
):
    try:
        purchase = await MarketplaceService(db).owned_purchase(purchase_id, user)
    except MarketplaceError as e:
        raise http_error(e)
    return LeadPurchaseWithProperty.model_validate(purchase)


@router.patch("/{purchase_id}", response_model=LeadPurchaseResponse)
async def update_lead(
    purchase_id: int,
    data: LeadUpdate,
    user: User = Depends(agent_only),
    db: AsyncSession = Depends(get_db),
):
    """Record follow-up (contacted, status, rating, feedback) on an owned lead."""
    try:
        purchase = await MarketplaceService(db).update_purchase(purchase_id, user, data)
    except MarketplaceError as e:
        raise http_error(e)
    return LeadPurchaseResponse.model_validate(purchase)


@router.patch("/{purchase_id}/flag", response_model=LeadFlagResponse)
async def flag_lead(
    purchase_id: int,
    data: LeadFlagRequest,
    user: User = Depends(agent_only),
    db: AsyncSession = Depends(get_db),
):
    try:
        flag = await MarketplaceService(db).flag_purchase(purchase_id, user, data)
    except MarketplaceError as e:
        raise http_error(e)
    return LeadFlagResponse.model_validate(flag)
