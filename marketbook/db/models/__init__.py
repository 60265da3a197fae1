from marketbook.db.models.audit_log import AuditLog
from marketbook.db.models.item import Item
from marketbook.db.models.notification import Notification
from marketbook.db.models.user import User

__all__ = ["User", "Item", "AuditLog", "Notification"]
