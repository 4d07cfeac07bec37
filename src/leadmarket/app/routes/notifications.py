"""Notification routes: list and acknowledge."""

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from leadmarket.app.routes.auth import get_current_user_dep
from leadmarket.domain.models import User
from leadmarket.domain.schemas import MarkAllReadResponse, NotificationResponse
from leadmarket.infra.database import get_db
from leadmarket.services.notification_service import NotificationService

router = APIRouter(prefix="/api/notifications", tags=["notifications"])


@router.get("", response_model=list[NotificationResponse])
async def list_notifications(
    user: User = Depends(get_current_user_dep),
    db: AsyncSession = Depends(get_db),
):
    notifications = await NotificationService(db).list_for_user(user.id)
    return [NotificationResponse.model_validate(n) for n in notifications]


@router.patch("", response_model=MarkAllReadResponse)
async def mark_all_read(
    user: User = Depends(get_current_user_dep),
    db: AsyncSession = Depends(get_db),
):
    updated = await NotificationService(db).mark_all_read(user.id)
    await db.commit()
    return MarkAllReadResponse(updated=updated)


@router.patch("/{notification_id}", response_model=NotificationResponse)
async def mark_read(
    notification_id: int,
    user: User = Depends(get_current_user_dep),
    db: AsyncSession = Depends(get_db),
):
    notification = await NotificationService(db).mark_read(notification_id, user.id)
    if notification is None:
        raise HTTPException(status_code=404, detail="Notification not found")
    await db.commit()
    return NotificationResponse.model_validate(notification)
