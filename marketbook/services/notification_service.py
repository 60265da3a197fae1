"""
Notifications: the issuer writes them (best effort, own SAVEPOINT),
the service serves the owner's inbox and read acknowledgements.
"""

from sqlalchemy.ext.asyncio import AsyncSession

from marketbook.core.errors import AuthorizationError, NotFoundError
from marketbook.core.guard import Decision, decide
from marketbook.core.timeutils import utcnow
from marketbook.db.models import Notification, User
from marketbook.db.models.enums import Severity
from marketbook.db.repositories.notification_repository import NotificationRepository
from marketbook.schemas.notification import NotificationResponse


class NotificationIssuer:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def issue(
        self,
        user_id: int,
        title: str,
        message: str,
        severity: Severity = Severity.INFO,
        action_url: str | None = None,
    ) -> Notification:
        notification = Notification(
            user_id=user_id,
            title=title,
            message=message,
            type=severity.value,
            action_url=action_url,
        )
        async with self.session.begin_nested():
            self.session.add(notification)
            await self.session.flush()
        return notification


class NotificationService:
    def __init__(self, repo: NotificationRepository, limit: int = 50):
        self.repo = repo
        self.limit = limit

    async def list_for_user(self, user: User) -> list[NotificationResponse]:
        notifications = await self.repo.list_for_user(user.id, limit=self.limit)
        return [NotificationResponse.model_validate(n) for n in notifications]

    async def mark_read(self, user: User, notification_id: int) -> NotificationResponse:
        """Owner-only and idempotent; a missing id is 404 before ownership is checked."""
        notification = await self.repo.get_by_id(notification_id)
        if notification is None:
            raise NotFoundError("Notification not found")
        if decide(user, notification, admin_override=False) is Decision.DENY:
            raise AuthorizationError()
        if not notification.read:
            notification.read = True
            notification.updated_at = utcnow()
            await self.repo.save(notification)
        return NotificationResponse.model_validate(notification)
