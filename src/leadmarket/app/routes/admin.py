"""Admin routes: agent verification, flagged-lead moderation, listing status, stats."""

import logging

from fastapi import APIRouter, Body, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from leadmarket.app.routes.auth import http_error, require_role
from leadmarket.domain.enums import UserRole
from leadmarket.domain.models import LeadFlag, User
from leadmarket.domain.schemas import (
    AgentProfileResponse,
    FlaggedLeadResponse,
    FlagResolution,
    LeadFlagResponse,
    LeadRemovalRequest,
    PendingAgentResponse,
    PropertyResponse,
    PropertyStatusUpdate,
    StatsResponse,
    VerificationDecision,
)
from leadmarket.infra.database import get_db
from leadmarket.services.errors import MarketplaceError
from leadmarket.services.moderation_service import ModerationService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/admin", tags=["admin"])

admin_only = require_role(UserRole.ADMIN)


def _flagged_lead(flag: LeadFlag) -> FlaggedLeadResponse:
    reporter = flag.reporter
    seller = flag.property.seller
    return FlaggedLeadResponse(
        **LeadFlagResponse.model_validate(flag).model_dump(),
        flag_source="agent" if flag.reporter_id is not None else "system",
        reporter_name=f"{reporter.first_name} {reporter.last_name}" if reporter else None,
        seller_name=f"{seller.first_name} {seller.last_name}" if seller else None,
        property=PropertyResponse.model_validate(flag.property),
    )


@router.get("/agent-verifications", response_model=list[PendingAgentResponse])
async def pending_verifications(
    admin: User = Depends(admin_only),
    db: AsyncSession = Depends(get_db),
):
    profiles = await ModerationService(db).pending_agents()
    return [PendingAgentResponse.model_validate(p) for p in profiles]


@router.patch("/agent-verifications/{agent_id}", response_model=AgentProfileResponse)
async def decide_verification(
    agent_id: int,
    data: VerificationDecision,
    admin: User = Depends(admin_only),
    db: AsyncSession = Depends(get_db),
):
    """Approve or reject a pending agent. ``agent_id`` is the agent's user id."""
    try:
        profile = await ModerationService(db).decide_verification(
            agent_id, data.status, data.note, admin
        )
    except MarketplaceError as e:
        raise http_error(e)
    return AgentProfileResponse.model_validate(profile)


@router.get("/flagged-leads", response_model=list[FlaggedLeadResponse])
async def flagged_leads(
    admin: User = Depends(admin_only),
    db: AsyncSession = Depends(get_db),
):
    flags = await ModerationService(db).open_flags()
    return [_flagged_lead(f) for f in flags]


@router.patch("/leads/{property_id}/approve", response_model=PropertyResponse)
async def approve_lead(
    property_id: int,
    data: FlagResolution | None = Body(default=None),
    admin: User = Depends(admin_only),
    db: AsyncSession = Depends(get_db),
):
    try:
        prop = await ModerationService(db).approve_lead(
            property_id, admin, data.note if data else None
        )
    except MarketplaceError as e:
        raise http_error(e)
    return PropertyResponse.model_validate(prop)


@router.delete("/leads/{property_id}", response_model=PropertyResponse)
async def remove_lead(
    property_id: int,
    data: LeadRemovalRequest,
    admin: User = Depends(admin_only),
    db: AsyncSession = Depends(get_db),
):
    """Archive a listing; its seller is told why."""
    try:
        prop = await ModerationService(db).remove_lead(property_id, data.reason, admin)
    except MarketplaceError as e:
        raise http_error(e)
    return PropertyResponse.model_validate(prop)


@router.patch("/properties/{property_id}/status", response_model=PropertyResponse)
async def set_property_status(
    property_id: int,
    data: PropertyStatusUpdate,
    admin: User = Depends(admin_only),
    db: AsyncSession = Depends(get_db),
):
    try:
        prop = await ModerationService(db).set_property_status(property_id, data.status, admin)
    except MarketplaceError as e:
        raise http_error(e)
    return PropertyResponse.model_validate(prop)


@router.get("/stats", response_model=StatsResponse)
async def stats(
    admin: User = Depends(admin_only),
    db: AsyncSession = Depends(get_db),
):
    return StatsResponse(**await ModerationService(db).stats())
