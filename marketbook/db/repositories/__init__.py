# Repository pattern: data access behind one class per model

from marketbook.db.repositories.audit_log_repository import AuditLogRepository
from marketbook.db.repositories.item_repository import ItemRepository
from marketbook.db.repositories.notification_repository import NotificationRepository
from marketbook.db.repositories.user_repository import UserRepository

__all__ = ["UserRepository", "ItemRepository", "AuditLogRepository", "NotificationRepository"]
