"""Notification repository - per-user inbox queries."""

from sqlalchemy import select

from marketbook.db.models.notification import Notification
from marketbook.db.repositories.base_repository import BaseRepository


class NotificationRepository(BaseRepository[Notification]):
    def __init__(self, session):
        super().__init__(session, Notification)

    async def list_for_user(self, user_id: int, limit: int = 50) -> list[Notification]:
        """Most recent notifications first."""
        result = await self.session.execute(
            select(Notification)
            .where(Notification.user_id == user_id)
            .order_by(Notification.created_at.desc(), Notification.id.desc())
            .limit(limit)
        )
        return list(result.scalars().all())
