"""Notification sink: append-only user alerts and read acknowledgement."""

import logging

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from leadmarket.domain.enums import NotificationType, UserRole
from leadmarket.domain.models import Notification, User

logger = logging.getLogger(__name__)


class NotificationService:
    """Creates and acknowledges notifications within the caller's transaction.

    Nothing here commits; the caller owns the unit of work.
    """

    def __init__(self, db: AsyncSession):
        self.db = db

    async def notify(
        self,
        user_id: int,
        title: str,
        message: str,
        type: NotificationType,
        link_url: str | None = None,
    ) -> Notification:
        notification = Notification(
            user_id=user_id,
            title=title,
            message=message,
            type=type.value,
            link_url=link_url,
        )
        self.db.add(notification)
        await self.db.flush()
        return notification

    async def admin_ids(self) -> list[int]:
        result = await self.db.execute(
            select(User.id).where(User.role == UserRole.ADMIN.value).order_by(User.id)
        )
        return list(result.scalars().all())

    async def notify_admins(
        self,
        title: str,
        message: str,
        type: NotificationType,
        link_url: str | None = None,
    ) -> list[Notification]:
        """Fan a notification out to every admin account."""
        admin_ids = await self.admin_ids()
        if not admin_ids:
            logger.warning("No admin accounts to notify: %s", title)
        return [
            await self.notify(admin_id, title, message, type, link_url)
            for admin_id in admin_ids
        ]

    async def list_for_user(self, user_id: int) -> list[Notification]:
        result = await self.db.execute(
            select(Notification)
            .where(Notification.user_id == user_id)
            .order_by(Notification.created_at.desc(), Notification.id.desc())
        )
        return list(result.scalars().all())

    async def mark_read(self, notification_id: int, user_id: int) -> Notification | None:
        """Flip one notification to read. Other users' notifications count as missing."""
        result = await self.db.execute(
            select(Notification).where(
                Notification.id == notification_id,
                Notification.user_id == user_id,
            )
        )
        notification = result.scalar_one_or_none()
        if notification is None:
            return None
        notification.read = True
        await self.db.flush()
        return notification

    async def mark_all_read(self, user_id: int) -> int:
        result = await self.db.execute(
            update(Notification)
            .where(Notification.user_id == user_id, Notification.read.is_(False))
            .values(read=True)
        )
        return result.rowcount or 0
