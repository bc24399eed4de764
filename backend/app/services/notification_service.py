"""Notification inbox - durable per-user log written by the change feed."""

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.errors import NotFoundError, UnauthorizedError
from app.db.database import utcnow
from app.models.notification import Notification
from app.services.partner_service import partner_service


class NotificationService:
    @staticmethod
    async def list_notifications(
        db: AsyncSession, identifier: str, unread_only: bool = False, limit: int = 50
    ) -> tuple[list[Notification], int]:
        """Newest notifications first, plus the user's total unread count."""
        user = await partner_service.find_by_identifier(db, identifier)

        query = select(Notification).where(Notification.user_id == user.id)
        if unread_only:
            query = query.where(Notification.read_at.is_(None))
        result = await db.execute(
            query.order_by(Notification.created_at.desc(), Notification.id.desc()).limit(limit)
        )

        unread = await db.execute(
            select(func.count(Notification.id)).where(
                Notification.user_id == user.id, Notification.read_at.is_(None)
            )
        )
        return list(result.scalars().all()), unread.scalar_one()

    @staticmethod
    async def mark_read(db: AsyncSession, notification_id: int, identifier: str) -> Notification:
        user = await partner_service.find_by_identifier(db, identifier)
        notification = await db.get(Notification, notification_id)
        if notification is None:
            raise NotFoundError(f"Notification not found: {notification_id}")
        if notification.user_id != user.id:
            raise UnauthorizedError("Notification belongs to another user")

        if notification.read_at is None:
            notification.read_at = utcnow()
            await db.flush()
        return notification

    @staticmethod
    async def mark_all_read(db: AsyncSession, identifier: str) -> int:
        user = await partner_service.find_by_identifier(db, identifier)
        result = await db.execute(
            update(Notification)
            .where(Notification.user_id == user.id, Notification.read_at.is_(None))
            .values(read_at=utcnow())
            .execution_options(synchronize_session=False)
        )
        return result.rowcount


notification_service = NotificationService()
