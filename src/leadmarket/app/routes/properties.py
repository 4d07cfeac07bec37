"""Property listing routes: create, seller listings, agent browse, detail."""

import logging

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from leadmarket.app.routes.auth import get_current_user_dep, http_error, require_role
from leadmarket.domain.enums import UserRole
from leadmarket.domain.models import User
from leadmarket.domain.schemas import (
    PropertyCreate,
    PropertyDetailResponse,
    PropertyResponse,
    SellerContact,
)
from leadmarket.infra.database import get_db
from leadmarket.services.errors import MarketplaceError
from leadmarket.services.marketplace_service import MarketplaceService, PropertyFilters

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/properties", tags=["properties"])


@router.post("", response_model=PropertyResponse, status_code=201)
async def create_property(
    data: PropertyCreate,
    user: User = Depends(require_role(UserRole.SELLER)),
    db: AsyncSession = Depends(get_db),
):
    prop = await MarketplaceService(db).create_listing(user, data)
    return PropertyResponse.model_validate(prop)


@router.get("/my-listings", response_model=list[PropertyResponse])
async def my_listings(
    user: User = Depends(require_role(UserRole.SELLER)),
    db: AsyncSession = Depends(get_db),
):
    listings = await MarketplaceService(db).listings_for_seller(user.id)
    return [PropertyResponse.model_validate(p) for p in listings]


@router.get("", response_model=list[PropertyResponse])
async def browse_properties(
    type: str | None = Query(default=None),
    location: str | None = Query(default=None),
    min_price: float | None = Query(default=None, alias="minPrice"),
    max_price: float | None = Query(default=None, alias="maxPrice"),
    status: str | None = Query(default=None),
    user: User = Depends(require_role(UserRole.AGENT, UserRole.ADMIN)),
    db: AsyncSession = Depends(get_db),
):
    """Filtered browse for agents and admins, newest first."""
    filters = PropertyFilters(
        type=type,
        location=location,
        min_price=min_price,
        max_price=max_price,
        status=status,
    )
    listings = await MarketplaceService(db).browse(filters)
    return [PropertyResponse.model_validate(p) for p in listings]


@router.get("/{property_id}", response_model=PropertyDetailResponse)
async def get_property(
    property_id: int,
    user: User = Depends(get_current_user_dep),
    db: AsyncSession = Depends(get_db),
):
    """Property detail; seller email/phone stay masked until the lead is unlocked."""
    try:
        detail = await MarketplaceService(db).property_detail(property_id, user)
    except MarketplaceError as e:
        raise http_error(e)

    base = PropertyResponse.model_validate(detail["property"])
    return PropertyDetailResponse(
        **base.model_dump(),
        seller=SellerContact(**detail["seller"]),
        purchased=detail["purchased"],
    )
